from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..services import availability as availability_service
from ..services import calendar as calendar_service
from ..utils import error_response
from .dependencies import get_db, get_current_active_profile, get_current_active_user

router = APIRouter(tags=["calendar"])

logger = logging.getLogger(__name__)


def _parse_profile_ids(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise error_response(
                "Invalid profile id",
                {"profileIds": f"'{part}' is not an integer"},
            )
        ids.append(int(part))
    return ids


@router.get("/calendar-events", response_model=List[schemas.CalendarEventResponse])
def list_calendar_events(
    profile_ids: Optional[str] = Query(None, alias="profileIds"),
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Stored events for the given profiles, or the active profile by default."""
    ids = _parse_profile_ids(profile_ids) or [profile.id]
    return calendar_service.list_events(db, ids, viewer_profile_id=profile.id)


@router.post(
    "/calendar-events",
    response_model=schemas.CalendarEventResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_calendar_event(
    event_in: schemas.CalendarEventCreate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    return calendar_service.create_event(db, profile.id, event_in)


@router.put("/calendar-events/{event_id}", response_model=schemas.CalendarEventResponse)
def update_calendar_event(
    event_id: int,
    event_in: schemas.CalendarEventUpdate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    return calendar_service.update_event(db, event_id, profile.id, event_in)


@router.delete("/calendar-events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_calendar_event(
    event_id: int,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    calendar_service.delete_event(db, event_id, profile.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/availability", response_model=schemas.AvailabilityResponse)
def read_availability(
    artist_id: Optional[int] = Query(None, alias="artistId"),
    venue_id: Optional[int] = Query(None, alias="venueId"),
    month: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_active_user),
):
    """Merged month view for an artist/venue pair.

    Either id may be omitted or unknown; that side simply has no events.
    Month and year default to the current month.
    """
    today = date.today()
    return availability_service.get_availability(
        db,
        artist_id,
        venue_id,
        month if month is not None else today.month,
        year if year is not None else today.year,
    )
