"""Booking request lifecycle: pending -> accepted | rejected.

Every operation takes the acting profile explicitly. Validation happens
before any write, and notifications go out only after the commit.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_booking_request, crud_profile
from ..utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from ..utils.notifications import (
    notify_booking_request,
    notify_booking_response,
    retract_booking_request_notifications,
    safe_notify,
)
from ..utils.redis_cache import invalidate_availability_cache

logger = logging.getLogger(__name__)

RESPONSE_STATUSES = (
    models.BookingRequestStatus.ACCEPTED,
    models.BookingRequestStatus.REJECTED,
)


def _require_profile(db: Session, profile_id: int, field: str = "profile_id") -> models.Profile:
    profile = crud_profile.get_profile(db, profile_id)
    if profile is None:
        raise NotFoundError("Profile not found", {field: "not_found"})
    return profile


def create_booking_request(
    db: Session,
    acting_profile_id: int,
    venue_profile_id: int,
    event_date: Optional[date] = None,
    event_time: Optional[str] = None,
    budget: Optional[float] = None,
    requirements: Optional[str] = None,
    message: Optional[str] = None,
) -> models.BookingRequest:
    """Send a booking inquiry from the acting artist to a venue."""
    artist = crud_profile.get_profile(db, acting_profile_id)
    if artist is None or artist.type != models.ProfileType.ARTIST:
        raise ValidationError(
            "Only artist profiles can send booking requests",
            {"profile": "must_be_artist"},
        )
    venue = crud_profile.get_profile(db, venue_profile_id)
    if venue is None or venue.type != models.ProfileType.VENUE:
        raise ValidationError("Venue not found", {"venue_id": "must_be_venue"})
    if budget is not None and budget < 0:
        raise ValidationError("Budget cannot be negative", {"budget": "negative"})

    booking_request = crud_booking_request.create_booking_request(
        db,
        artist.id,
        venue.id,
        event_date=event_date,
        event_time=event_time,
        budget=budget,
        requirements=requirements,
        message=message,
    )
    db.commit()
    db.refresh(booking_request)
    logger.info(
        "Booking request %s created by artist %s for venue %s",
        booking_request.id,
        artist.id,
        venue.id,
    )

    safe_notify(notify_booking_request, db, booking_request)
    invalidate_availability_cache([artist.id, venue.id])
    return booking_request


def update_status(
    db: Session,
    request_id: int,
    new_status: models.BookingRequestStatus | str,
    acting_profile_id: int,
    decline_message: Optional[str] = None,
) -> models.BookingRequest:
    """Accept or reject a pending request as the addressed venue.

    The status change is a conditional update guarded on ``pending`` so two
    concurrent responses cannot both succeed.
    """
    try:
        new_status = models.BookingRequestStatus(str(getattr(new_status, "value", new_status)).lower())
    except ValueError:
        raise ValidationError("Invalid status", {"status": "must be accepted or rejected"})
    if new_status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status", {"status": "must be accepted or rejected"})

    booking_request = crud_booking_request.get_booking_request(db, request_id)
    if booking_request is None:
        raise NotFoundError("Booking request not found", {"request_id": "not_found"})
    if booking_request.venue_profile_id != acting_profile_id:
        logger.warning(
            "Profile %s tried to respond to booking request %s addressed to %s",
            acting_profile_id,
            request_id,
            booking_request.venue_profile_id,
        )
        raise PermissionDeniedError(
            "Only the venue can respond to this booking request",
            {"request_id": "forbidden"},
        )
    if booking_request.status != models.BookingRequestStatus.PENDING:
        raise StateError(
            f"Booking request is already {booking_request.status.value}",
            current_status=booking_request.status.value,
        )

    values = {
        "status": new_status,
        "responded_at": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    if new_status == models.BookingRequestStatus.REJECTED:
        values["decline_message"] = decline_message
    updated = crud_booking_request.transition_status(
        db, request_id, [models.BookingRequestStatus.PENDING], values
    )
    if updated != 1:
        db.rollback()
        db.refresh(booking_request)
        raise StateError(
            f"Booking request is already {booking_request.status.value}",
            current_status=booking_request.status.value,
        )
    db.commit()
    db.refresh(booking_request)
    logger.info(
        "Booking request %s %s by profile %s",
        request_id,
        new_status.value,
        acting_profile_id,
    )

    if new_status == models.BookingRequestStatus.REJECTED:
        safe_notify(retract_booking_request_notifications, db, booking_request)
    safe_notify(notify_booking_response, db, booking_request)
    invalidate_availability_cache(
        [booking_request.artist_profile_id, booking_request.venue_profile_id]
    )
    return booking_request


def _counterpart(br: models.BookingRequest, profile_id: int) -> Optional[models.Profile]:
    return br.venue_profile if br.artist_profile_id == profile_id else br.artist_profile


def list_for_profile(db: Session, profile_id: int) -> List[dict]:
    """Requests an artist sent, or requests addressed to a venue.

    Each item carries the other party's display fields under ``counterpart``.
    """
    profile = _require_profile(db, profile_id)
    if profile.type == models.ProfileType.ARTIST:
        rows = crud_booking_request.get_booking_requests_by_artist(db, profile.id)
    elif profile.type == models.ProfileType.VENUE:
        rows = crud_booking_request.get_booking_requests_by_venue(db, profile.id)
    else:
        return []
    return [{"booking_request": br, "counterpart": _counterpart(br, profile.id)} for br in rows]


def get_booking_request(
    db: Session, request_id: int, acting_profile_id: int
) -> models.BookingRequest:
    booking_request = crud_booking_request.get_booking_request(db, request_id)
    if booking_request is None:
        raise NotFoundError("Booking request not found", {"request_id": "not_found"})
    if acting_profile_id not in (
        booking_request.artist_profile_id,
        booking_request.venue_profile_id,
    ):
        raise PermissionDeniedError(
            "You are not a party to this booking request",
            {"request_id": "forbidden"},
        )
    return booking_request
