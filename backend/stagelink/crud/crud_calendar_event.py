from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models


def get_event(db: Session, event_id: int) -> Optional[models.CalendarEvent]:
    return db.query(models.CalendarEvent).filter(models.CalendarEvent.id == event_id).first()


def get_events_for_profiles(
    db: Session,
    profile_ids: List[int],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[models.CalendarEvent]:
    """Events for the profiles, optionally limited to dates in [start, end)."""
    if not profile_ids:
        return []
    query = db.query(models.CalendarEvent).filter(
        models.CalendarEvent.profile_id.in_(profile_ids)
    )
    if start is not None:
        query = query.filter(models.CalendarEvent.date >= start)
    if end is not None:
        query = query.filter(models.CalendarEvent.date < end)
    return query.order_by(
        models.CalendarEvent.date.asc(),
        models.CalendarEvent.start_time.asc(),
        models.CalendarEvent.id.asc(),
    ).all()


def create_event(db: Session, profile_id: int, data: dict) -> models.CalendarEvent:
    db_event = models.CalendarEvent(profile_id=profile_id, **data)
    db.add(db_event)
    db.commit()
    db.refresh(db_event)
    return db_event


def update_event(db: Session, db_event: models.CalendarEvent, data: dict) -> models.CalendarEvent:
    for field, value in data.items():
        setattr(db_event, field, value)
    db.commit()
    db.refresh(db_event)
    return db_event


def delete_event(db: Session, db_event: models.CalendarEvent) -> None:
    db.delete(db_event)
    db.commit()
