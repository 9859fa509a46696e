"""Merged month availability for an artist/venue pair.

Booking requests are projected into calendar entries on the fly and combined
with each profile's stored calendar events. Nothing here writes to the
database; projected entries only exist in the response.
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from .. import models
from ..core.config import settings
from ..crud import crud_booking_request, crud_calendar_event, crud_profile
from ..schemas.availability import DayStatus
from ..utils.errors import ValidationError
from ..utils.redis_cache import cache_availability, get_cached_availability

logger = logging.getLogger(__name__)

BLOCKING_TYPES = {
    models.CalendarEventType.BOOKING.value,
    models.CalendarEventType.EVENT.value,
}


def month_window(year: int, month: int) -> Tuple[date, date]:
    """Return [first day of month, first day of next month)."""
    if not 1 <= month <= 12:
        raise ValidationError("Invalid month", {"month": "must be between 1 and 12"})
    if not 1 <= year <= 9998:
        raise ValidationError("Invalid year", {"year": "out of range"})
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def _value(v) -> Optional[str]:
    if v is None:
        return None
    return v.value if hasattr(v, "value") else str(v)


def event_to_dict(event: models.CalendarEvent) -> dict:
    return {
        "id": event.id,
        "profile_id": event.profile_id,
        "title": event.title,
        "date": event.date.isoformat(),
        "start_time": event.start_time,
        "end_time": event.end_time,
        "type": _value(event.type),
        "status": _value(event.status),
        "client": event.client,
        "location": event.location,
        "notes": event.notes,
        "budget": event.budget,
        "is_private": bool(event.is_private),
        "booking_request_id": None,
        "synthetic": False,
    }


def project_booking_events(
    booking_requests: Iterable[models.BookingRequest],
    profile_ids: Sequence[Optional[int]],
    default_time: Optional[str] = None,
) -> List[dict]:
    """Synthesize calendar entries from booking requests.

    Each request yields one entry for its artist and one for its venue, but
    only for sides that belong to ``profile_ids``. Requests without an event
    date, or in a terminal non-accepted status, are skipped.
    """
    wanted = {pid for pid in profile_ids if pid is not None}
    start_time_default = default_time or settings.DEFAULT_EVENT_TIME
    events: List[dict] = []
    for br in booking_requests:
        if br.event_date is None:
            continue
        if br.status not in (models.BookingRequestStatus.PENDING, models.BookingRequestStatus.ACCEPTED):
            continue
        status = (
            models.CalendarEventStatus.CONFIRMED.value
            if br.status == models.BookingRequestStatus.ACCEPTED
            else models.CalendarEventStatus.PENDING.value
        )
        artist = br.artist_profile
        venue = br.venue_profile
        artist_name = artist.name if artist else "Artist"
        venue_name = venue.name if venue else "Venue"
        common = {
            "date": br.event_date.isoformat(),
            "start_time": br.event_time or start_time_default,
            "end_time": None,
            "type": models.CalendarEventType.BOOKING.value,
            "status": status,
            "location": venue.location if venue else None,
            "notes": br.message,
            "budget": br.budget,
            "is_private": False,
            "booking_request_id": br.id,
            "synthetic": True,
        }
        if br.artist_profile_id in wanted:
            events.append({
                **common,
                "id": f"booking-artist-{br.id}",
                "profile_id": br.artist_profile_id,
                "title": f"Booking at {venue_name}",
                "client": venue_name,
            })
        if br.venue_profile_id in wanted:
            events.append({
                **common,
                "id": f"booking-venue-{br.id}",
                "profile_id": br.venue_profile_id,
                "title": f"Booking with {artist_name}",
                "client": artist_name,
            })
    return events


def is_unavailable_event(event: dict) -> bool:
    """An explicit block, or a confirmed booking/event."""
    if event.get("type") == models.CalendarEventType.UNAVAILABLE.value:
        return True
    return (
        event.get("status") == models.CalendarEventStatus.CONFIRMED.value
        and event.get("type") in BLOCKING_TYPES
    )


def classify_day(
    artist_events: Sequence[dict], venue_events: Sequence[dict]
) -> Tuple[DayStatus, bool, bool]:
    """Return (status, artist_unavailable, venue_unavailable) for one date."""
    artist_blocked = any(is_unavailable_event(e) for e in artist_events)
    venue_blocked = any(is_unavailable_event(e) for e in venue_events)
    if artist_blocked and venue_blocked:
        status = DayStatus.BOTH_UNAVAILABLE
    elif artist_blocked:
        status = DayStatus.ARTIST_UNAVAILABLE
    elif venue_blocked:
        status = DayStatus.VENUE_UNAVAILABLE
    elif artist_events or venue_events:
        status = DayStatus.HAS_EVENTS
    else:
        status = DayStatus.AVAILABLE
    return status, artist_blocked, venue_blocked


def build_availability(
    year: int,
    month: int,
    artist_profile_id: Optional[int],
    venue_profile_id: Optional[int],
    events: Iterable[dict],
) -> dict:
    """Group events by date and classify every day of the month."""
    start, _ = month_window(year, month)
    by_day: Dict[str, Dict[str, List[dict]]] = defaultdict(lambda: {"artist": [], "venue": [], "all": []})
    for event in events:
        bucket = by_day[event["date"]]
        bucket["all"].append(event)
        pid = event.get("profile_id")
        if artist_profile_id is not None and pid == artist_profile_id:
            bucket["artist"].append(event)
        if venue_profile_id is not None and pid == venue_profile_id:
            bucket["venue"].append(event)

    days: Dict[str, dict] = {}
    for day_num in range(1, calendar.monthrange(year, month)[1] + 1):
        key = date(year, month, day_num).isoformat()
        bucket = by_day.get(key) or {"artist": [], "venue": [], "all": []}
        status, artist_blocked, venue_blocked = classify_day(bucket["artist"], bucket["venue"])
        days[key] = {
            "date": key,
            "status": status.value,
            "artist_unavailable": artist_blocked,
            "venue_unavailable": venue_blocked,
            "events": sorted(bucket["all"], key=lambda e: (e.get("start_time") or "", str(e["id"]))),
        }
    return {
        "month": month,
        "year": year,
        "artist_profile_id": artist_profile_id,
        "venue_profile_id": venue_profile_id,
        "days": days,
    }


def _resolve(db: Session, profile_id: Optional[int]) -> Optional[int]:
    profile = crud_profile.get_profile(db, profile_id)
    if profile_id is not None and profile is None:
        logger.info("Availability requested for unknown profile %s; ignoring", profile_id)
    return profile.id if profile else None


def get_availability(
    db: Session,
    artist_profile_id: Optional[int],
    venue_profile_id: Optional[int],
    month: int,
    year: int,
    use_cache: bool = True,
) -> dict:
    """Day-indexed availability for the pair over one month.

    An unknown or deleted profile id contributes no events instead of
    failing the whole call.
    """
    start, end = month_window(year, month)
    if use_cache:
        cached = get_cached_availability(artist_profile_id, venue_profile_id, year, month)
        if cached is not None:
            return cached

    artist_id = _resolve(db, artist_profile_id)
    venue_id = _resolve(db, venue_profile_id)
    profile_ids = [pid for pid in (artist_id, venue_id) if pid is not None]

    booking_requests = crud_booking_request.get_calendar_bookings(db, profile_ids, start, end)
    events = project_booking_events(booking_requests, profile_ids)
    events.extend(
        event_to_dict(e)
        for e in crud_calendar_event.get_events_for_profiles(db, profile_ids, start, end)
    )
    result = build_availability(year, month, artist_id, venue_id, events)
    # Echo the ids the caller asked about, even when they did not resolve
    result["artist_profile_id"] = artist_profile_id
    result["venue_profile_id"] = venue_profile_id

    if use_cache:
        cache_availability(result, artist_profile_id, venue_profile_id, year, month)
    return result
