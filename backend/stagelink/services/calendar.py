from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_calendar_event
from ..schemas.calendar_event import CalendarEventCreate, CalendarEventUpdate
from ..utils.errors import NotFoundError, PermissionDeniedError, ValidationError
from ..utils.redis_cache import invalidate_availability_cache

logger = logging.getLogger(__name__)


def _owned_event(db: Session, event_id: int, acting_profile_id: int) -> models.CalendarEvent:
    event = crud_calendar_event.get_event(db, event_id)
    if event is None:
        raise NotFoundError("Calendar event not found", {"event_id": "not_found"})
    if event.profile_id != acting_profile_id:
        logger.warning(
            "Profile %s tried to modify calendar event %s owned by %s",
            acting_profile_id,
            event_id,
            event.profile_id,
        )
        raise PermissionDeniedError(
            "You can only change your own calendar events", {"event_id": "forbidden"}
        )
    return event


def list_events(
    db: Session, profile_ids: List[int], viewer_profile_id: Optional[int] = None
) -> List[models.CalendarEvent]:
    """Stored events for the profiles; private ones only for their owner."""
    events = crud_calendar_event.get_events_for_profiles(db, profile_ids)
    return [e for e in events if not e.is_private or e.profile_id == viewer_profile_id]


def create_event(
    db: Session, acting_profile_id: int, data: CalendarEventCreate
) -> models.CalendarEvent:
    if not data.title.strip():
        raise ValidationError("Title is required", {"title": "required"})
    payload = data.model_dump()
    payload["title"] = payload["title"].strip()
    event = crud_calendar_event.create_event(db, acting_profile_id, payload)
    logger.info("Calendar event %s created for profile %s", event.id, acting_profile_id)
    invalidate_availability_cache([acting_profile_id])
    return event


def update_event(
    db: Session, event_id: int, acting_profile_id: int, data: CalendarEventUpdate
) -> models.CalendarEvent:
    event = _owned_event(db, event_id, acting_profile_id)
    changes = data.model_dump(exclude_unset=True)
    if "title" in changes:
        if not (changes["title"] or "").strip():
            raise ValidationError("Title is required", {"title": "required"})
        changes["title"] = changes["title"].strip()
    for required in ("date", "type", "status", "is_private"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} cannot be empty", {required: "required"})
    event = crud_calendar_event.update_event(db, event, changes)
    invalidate_availability_cache([acting_profile_id])
    return event


def delete_event(db: Session, event_id: int, acting_profile_id: int) -> None:
    event = _owned_event(db, event_id, acting_profile_id)
    crud_calendar_event.delete_event(db, event)
    logger.info("Calendar event %s deleted by profile %s", event_id, acting_profile_id)
    invalidate_availability_cache([acting_profile_id])
