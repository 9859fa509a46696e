from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models


def get_profile(
    db: Session, profile_id: Optional[int], include_deleted: bool = False
) -> Optional[models.Profile]:
    if profile_id is None:
        return None
    query = db.query(models.Profile).filter(models.Profile.id == profile_id)
    if not include_deleted:
        query = query.filter(models.Profile.deleted_at.is_(None))
    return query.first()


def get_profiles(db: Session, profile_ids: List[int]) -> List[models.Profile]:
    if not profile_ids:
        return []
    return (
        db.query(models.Profile)
        .filter(
            models.Profile.id.in_(profile_ids),
            models.Profile.deleted_at.is_(None),
        )
        .all()
    )


def profiles_for_user(
    db: Session, user_id: int, include_deleted: bool = False
) -> List[models.Profile]:
    """Profiles the user owns or holds an active membership on."""
    member_profile_ids = (
        db.query(models.ProfileMembership.profile_id)
        .filter(
            models.ProfileMembership.user_id == user_id,
            models.ProfileMembership.status == models.MembershipStatus.ACTIVE,
        )
    )
    query = db.query(models.Profile).filter(
        or_(
            models.Profile.user_id == user_id,
            models.Profile.id.in_(member_profile_ids),
        )
    )
    if not include_deleted:
        query = query.filter(models.Profile.deleted_at.is_(None))
    return query.order_by(models.Profile.id.asc()).all()


def get_active_profile(db: Session, user: models.User) -> Optional[models.Profile]:
    if user.active_profile_id is None:
        return None
    for profile in profiles_for_user(db, user.id):
        if profile.id == user.active_profile_id:
            return profile
    return None


def get_audience_profile(db: Session, user_id: int) -> Optional[models.Profile]:
    return (
        db.query(models.Profile)
        .filter(
            models.Profile.user_id == user_id,
            models.Profile.type == models.ProfileType.AUDIENCE,
            models.Profile.deleted_at.is_(None),
        )
        .first()
    )


def create_profile(
    db: Session,
    user_id: Optional[int],
    type: models.ProfileType,
    name: str,
    **fields,
) -> models.Profile:
    """Add a profile to the session without committing."""
    db_profile = models.Profile(user_id=user_id, type=type, name=name, **fields)
    db.add(db_profile)
    db.flush()
    return db_profile


def add_membership(
    db: Session,
    profile_id: int,
    user_id: int,
    role: models.MembershipRole = models.MembershipRole.MEMBER,
    status: models.MembershipStatus = models.MembershipStatus.ACTIVE,
) -> models.ProfileMembership:
    membership = models.ProfileMembership(
        profile_id=profile_id, user_id=user_id, role=role, status=status
    )
    db.add(membership)
    db.flush()
    return membership


def owning_user_ids(db: Session, profile_id: int) -> List[int]:
    """Owner plus active members of a profile, without duplicates."""
    profile = db.query(models.Profile).filter(models.Profile.id == profile_id).first()
    if profile is None:
        return []
    ids: List[int] = []
    if profile.user_id is not None:
        ids.append(profile.user_id)
    rows = (
        db.query(models.ProfileMembership.user_id)
        .filter(
            models.ProfileMembership.profile_id == profile_id,
            models.ProfileMembership.status == models.MembershipStatus.ACTIVE,
        )
        .order_by(models.ProfileMembership.id.asc())
        .all()
    )
    for (uid,) in rows:
        if uid not in ids:
            ids.append(uid)
    return ids


def users_acting_as(db: Session, profile_id: int) -> List[models.User]:
    return db.query(models.User).filter(models.User.active_profile_id == profile_id).all()


def expired_deleted_profiles(db: Session, cutoff: datetime) -> List[models.Profile]:
    return (
        db.query(models.Profile)
        .filter(
            models.Profile.deleted_at.isnot(None),
            models.Profile.deleted_at < cutoff,
        )
        .all()
    )


def booking_requests_involving(db: Session, profile_id: int) -> List[models.BookingRequest]:
    return (
        db.query(models.BookingRequest)
        .filter(
            or_(
                models.BookingRequest.artist_profile_id == profile_id,
                models.BookingRequest.venue_profile_id == profile_id,
            )
        )
        .all()
    )


def list_public_profiles(
    db: Session,
    type: Optional[models.ProfileType] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[models.Profile]:
    query = db.query(models.Profile).filter(
        models.Profile.deleted_at.is_(None),
        models.Profile.visibility == models.ProfileVisibility.PUBLIC,
    )
    if type is not None:
        query = query.filter(models.Profile.type == type)
    return query.order_by(models.Profile.name.asc(), models.Profile.id.asc()).offset(skip).limit(limit).all()
