from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload

from .. import models


def create_booking_request(
    db: Session,
    artist_profile_id: int,
    venue_profile_id: int,
    *,
    event_date: Optional[date] = None,
    event_time: Optional[str] = None,
    budget: Optional[float] = None,
    requirements: Optional[str] = None,
    message: Optional[str] = None,
    requested_at: Optional[datetime] = None,
) -> models.BookingRequest:
    """Add a pending request to the session; the caller commits."""
    db_request = models.BookingRequest(
        artist_profile_id=artist_profile_id,
        venue_profile_id=venue_profile_id,
        status=models.BookingRequestStatus.PENDING,
        requested_at=requested_at or datetime.utcnow(),
        event_date=event_date,
        event_time=event_time,
        budget=budget,
        requirements=requirements,
        message=message,
    )
    db.add(db_request)
    db.flush()
    return db_request


def get_booking_request(db: Session, request_id: int) -> Optional[models.BookingRequest]:
    return (
        db.query(models.BookingRequest)
        .options(
            joinedload(models.BookingRequest.artist_profile),
            joinedload(models.BookingRequest.venue_profile),
        )
        .filter(models.BookingRequest.id == request_id)
        .first()
    )


def get_booking_requests_by_artist(db: Session, artist_profile_id: int) -> List[models.BookingRequest]:
    return (
        db.query(models.BookingRequest)
        .options(joinedload(models.BookingRequest.venue_profile))
        .filter(models.BookingRequest.artist_profile_id == artist_profile_id)
        .order_by(models.BookingRequest.requested_at.desc(), models.BookingRequest.id.desc())
        .all()
    )


def get_booking_requests_by_venue(db: Session, venue_profile_id: int) -> List[models.BookingRequest]:
    return (
        db.query(models.BookingRequest)
        .options(joinedload(models.BookingRequest.artist_profile))
        .filter(models.BookingRequest.venue_profile_id == venue_profile_id)
        .order_by(models.BookingRequest.requested_at.desc(), models.BookingRequest.id.desc())
        .all()
    )


def transition_status(
    db: Session,
    request_id: int,
    expected: Iterable[models.BookingRequestStatus],
    values: dict,
) -> int:
    """Conditionally update a request still in one of ``expected`` statuses.

    Returns the affected row count; 0 means another writer moved it first.
    Does not commit.
    """
    return (
        db.query(models.BookingRequest)
        .filter(
            models.BookingRequest.id == request_id,
            models.BookingRequest.status.in_(list(expected)),
        )
        .update(values, synchronize_session=False)
    )


def get_calendar_bookings(
    db: Session,
    profile_ids: List[int],
    start: date,
    end: date,
) -> List[models.BookingRequest]:
    """Pending/accepted requests with an event date in [start, end) touching any profile."""
    if not profile_ids:
        return []
    return (
        db.query(models.BookingRequest)
        .options(
            joinedload(models.BookingRequest.artist_profile),
            joinedload(models.BookingRequest.venue_profile),
        )
        .filter(
            or_(
                models.BookingRequest.artist_profile_id.in_(profile_ids),
                models.BookingRequest.venue_profile_id.in_(profile_ids),
            ),
            models.BookingRequest.status.in_(
                [models.BookingRequestStatus.PENDING, models.BookingRequestStatus.ACCEPTED]
            ),
            and_(
                models.BookingRequest.event_date.isnot(None),
                models.BookingRequest.event_date >= start,
                models.BookingRequest.event_date < end,
            ),
        )
        .order_by(models.BookingRequest.event_date.asc(), models.BookingRequest.id.asc())
        .all()
    )
