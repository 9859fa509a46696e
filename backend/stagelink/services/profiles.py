from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_profile, crud_user
from ..utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from ..utils.notifications import notify_profile_deleted, safe_notify
from ..utils.redis_cache import invalidate_availability_cache

logger = logging.getLogger(__name__)


def grace_period() -> timedelta:
    return timedelta(days=settings.PROFILE_DELETION_GRACE_DAYS)


def register_user(
    db: Session,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
) -> models.User:
    """Create the account plus its audience profile, which starts active."""
    if crud_user.get_user_by_email(db, email):
        raise ValidationError(
            "That email already has an account. Sign in instead.",
            {"email": "already_registered"},
        )
    user = crud_user.create_user(db, email, password, first_name, last_name)
    audience = crud_profile.create_profile(
        db,
        user.id,
        models.ProfileType.AUDIENCE,
        user.full_name or user.email,
    )
    user.active_profile_id = audience.id
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s with audience profile %s", user.id, audience.id)
    return user


def can_manage(db: Session, user: models.User, profile: models.Profile) -> bool:
    if profile.user_id == user.id:
        return True
    return user.id in crud_profile.owning_user_ids(db, profile.id)


def is_owner(user: models.User, profile: models.Profile) -> bool:
    if profile.user_id == user.id:
        return True
    return any(
        m.user_id == user.id
        and m.role == models.MembershipRole.OWNER
        and m.status == models.MembershipStatus.ACTIVE
        for m in profile.memberships
    )


def get_profile(db: Session, profile_id: int) -> models.Profile:
    profile = crud_profile.get_profile(db, profile_id)
    if profile is None:
        raise NotFoundError("Profile not found", {"profile_id": "not_found"})
    return profile


def get_active_profile(db: Session, user: models.User) -> models.Profile:
    profile = crud_profile.get_active_profile(db, user)
    if profile is None:
        raise NotFoundError("No active profile", {"profile": "no_active_profile"})
    return profile


def list_my_profiles(db: Session, user: models.User) -> List[models.Profile]:
    return crud_profile.profiles_for_user(db, user.id)


def create_profile(
    db: Session,
    user: models.User,
    type: models.ProfileType,
    name: str,
    **fields,
) -> models.Profile:
    """Create an artist, venue or audience profile for ``user``.

    A user keeps at most one non-deleted audience profile. Artist and venue
    profiles get an owner membership so they can be shared later.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Profile name is required", {"name": "required"})
    if type == models.ProfileType.AUDIENCE and crud_profile.get_audience_profile(db, user.id):
        raise ValidationError(
            "You already have an audience profile",
            {"type": "audience_profile_exists"},
        )
    profile = crud_profile.create_profile(db, user.id, type, name, **fields)
    if type != models.ProfileType.AUDIENCE:
        crud_profile.add_membership(db, profile.id, user.id, role=models.MembershipRole.OWNER)
    if crud_profile.get_active_profile(db, user) is None:
        user.active_profile_id = profile.id
    db.commit()
    db.refresh(profile)
    logger.info("User %s created %s profile %s", user.id, type.value, profile.id)
    return profile


def activate_profile(db: Session, user: models.User, profile_id: int) -> models.Profile:
    """Switch the profile the user acts as; all others become inactive."""
    profile = get_profile(db, profile_id)
    if not can_manage(db, user, profile):
        raise PermissionDeniedError(
            "You cannot act as this profile", {"profile_id": "forbidden"}
        )
    user.active_profile_id = profile.id
    db.commit()
    db.refresh(user)
    logger.info("User %s switched to profile %s", user.id, profile.id)
    return profile


def _fallback_profile_id(db: Session, user_id: int, excluding: int) -> Optional[int]:
    audience = crud_profile.get_audience_profile(db, user_id)
    if audience is not None and audience.id != excluding:
        return audience.id
    return None


def soft_delete_profile(
    db: Session,
    user: models.User,
    profile_id: int,
    reason: Optional[str] = None,
) -> models.Profile:
    """Hide a profile for the grace period; it can be restored until purge."""
    profile = get_profile(db, profile_id)
    if not is_owner(user, profile):
        raise PermissionDeniedError(
            "Only the profile owner can delete it", {"profile_id": "forbidden"}
        )
    now = datetime.utcnow()
    profile.deleted_at = now
    profile.deleted_by = user.id
    profile.deletion_reason = reason
    # Anyone acting as this profile falls back to their audience profile
    for acting_user in crud_profile.users_acting_as(db, profile.id):
        acting_user.active_profile_id = _fallback_profile_id(db, acting_user.id, profile.id)
    db.commit()
    db.refresh(profile)
    logger.info("Profile %s soft-deleted by user %s", profile.id, user.id)
    invalidate_availability_cache([profile.id])

    restore_until = (now + grace_period()).date().isoformat()
    safe_notify(notify_profile_deleted, db, profile, user, restore_until)
    return profile


def restore_profile(db: Session, user: models.User, profile_id: int) -> models.Profile:
    profile = crud_profile.get_profile(db, profile_id, include_deleted=True)
    if profile is None:
        raise NotFoundError("Profile not found", {"profile_id": "not_found"})
    if profile.deleted_at is None:
        raise StateError("Profile is not deleted", current_status="active")
    if profile.user_id != user.id and profile.deleted_by != user.id:
        raise PermissionDeniedError(
            "Only the profile owner can restore it", {"profile_id": "forbidden"}
        )
    if datetime.utcnow() - profile.deleted_at > grace_period():
        raise StateError("The restore window has passed", current_status="deleted")
    if profile.type == models.ProfileType.AUDIENCE and profile.user_id is not None:
        if crud_profile.get_audience_profile(db, profile.user_id):
            raise ValidationError(
                "You already have an audience profile",
                {"type": "audience_profile_exists"},
            )
    profile.deleted_at = None
    profile.deleted_by = None
    profile.deletion_reason = None
    db.commit()
    db.refresh(profile)
    logger.info("Profile %s restored by user %s", profile.id, user.id)
    invalidate_availability_cache([profile.id])
    return profile


def purge_deleted_profiles(db: Session, now: Optional[datetime] = None) -> int:
    """Hard-delete profiles whose grace window has elapsed."""
    cutoff = (now or datetime.utcnow()) - grace_period()
    expired = crud_profile.expired_deleted_profiles(db, cutoff)
    touched = set()
    for profile in expired:
        for acting_user in crud_profile.users_acting_as(db, profile.id):
            acting_user.active_profile_id = None
        # Dependent rows go explicitly so SQLite without FK enforcement stays consistent
        for br in crud_profile.booking_requests_involving(db, profile.id):
            touched.update((br.artist_profile_id, br.venue_profile_id))
            db.delete(br)
        db.query(models.Notification).filter(
            models.Notification.profile_id == profile.id
        ).delete(synchronize_session=False)
        touched.add(profile.id)
        db.delete(profile)
    if expired:
        db.commit()
        invalidate_availability_cache(touched)
        logger.info("Purged %s deleted profile(s)", len(expired))
    return len(expired)
