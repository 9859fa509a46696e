from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stagelink import models
from stagelink.crud import crud_notification, crud_profile
from stagelink.models import NotificationType
from stagelink.utils.errors import NotificationDeliveryFailure
from stagelink.utils.notifications import format_notification_message, notify_profile

logger = logging.getLogger(__name__)


@dataclass
class BookingRequestContext:
    booking_request: models.BookingRequest
    artist: Optional[models.Profile]
    venue: Optional[models.Profile]

    @property
    def link(self) -> str:
        return f"/booking-requests/{self.booking_request.id}"


def _build_context(db: Session, booking_request: models.BookingRequest) -> BookingRequestContext:
    """Load both parties, including soft-deleted ones, for message text."""
    return BookingRequestContext(
        booking_request=booking_request,
        artist=crud_profile.get_profile(db, booking_request.artist_profile_id, include_deleted=True),
        venue=crud_profile.get_profile(db, booking_request.venue_profile_id, include_deleted=True),
    )


def send_booking_request_notification(db: Session, booking_request: models.BookingRequest) -> None:
    """Tell the venue's users that an artist wants to book them."""
    ctx = _build_context(db, booking_request)
    artist_name = ctx.artist.name if ctx.artist else "An artist"
    event_date = booking_request.event_date.isoformat() if booking_request.event_date else None
    message = format_notification_message(
        NotificationType.BOOKING_REQUEST,
        artist_name=artist_name,
        event_date=event_date,
    )
    notify_profile(
        db,
        booking_request.venue_profile_id,
        NotificationType.BOOKING_REQUEST,
        message,
        ctx.link,
        booking_request_id=booking_request.id,
        artist_profile_id=booking_request.artist_profile_id,
        artist_name=artist_name,
        event_date=event_date,
    )
    logger.info("Notify venue profile %s: %s", booking_request.venue_profile_id, message)


def send_booking_response_notification(db: Session, booking_request: models.BookingRequest) -> None:
    """Tell the artist's users the venue accepted or declined."""
    ctx = _build_context(db, booking_request)
    venue_name = ctx.venue.name if ctx.venue else "The venue"
    accepted = booking_request.status == models.BookingRequestStatus.ACCEPTED
    ntype = NotificationType.BOOKING_CONFIRMED if accepted else NotificationType.BOOKING_DECLINED
    message = format_notification_message(
        ntype,
        venue_name=venue_name,
        decline_message=None if accepted else booking_request.decline_message,
    )
    notify_profile(
        db,
        booking_request.artist_profile_id,
        ntype,
        message,
        ctx.link,
        booking_request_id=booking_request.id,
        venue_profile_id=booking_request.venue_profile_id,
        venue_name=venue_name,
        status=booking_request.status.value,
        decline_message=None if accepted else booking_request.decline_message,
    )
    logger.info("Notify artist profile %s: %s", booking_request.artist_profile_id, message)


def retract_booking_request_notification(db: Session, booking_request: models.BookingRequest) -> int:
    """Remove the actionable "new booking request" notice once it is answered."""
    user_ids = crud_profile.owning_user_ids(db, booking_request.venue_profile_id)
    try:
        deleted = crud_notification.delete_by_link(
            db,
            user_ids,
            NotificationType.BOOKING_REQUEST,
            f"/booking-requests/{booking_request.id}",
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise NotificationDeliveryFailure(
            f"could not retract notifications for booking request {booking_request.id}"
        ) from exc
    logger.info(
        "Retracted %s booking request notification(s) for request %s",
        deleted,
        booking_request.id,
    )
    return deleted
