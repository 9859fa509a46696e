from datetime import date

import pytest

from stagelink.models import CalendarEventType
from stagelink.schemas.calendar_event import CalendarEventCreate, CalendarEventUpdate
from stagelink.services import calendar as calendar_service
from stagelink.utils.errors import NotFoundError, PermissionDeniedError, ValidationError


def test_private_events_visible_to_owner_only(db, artist, venue):
    _, a = artist
    _, v = venue
    public = calendar_service.create_event(
        db, a.id, CalendarEventCreate(title="Gig", date=date(2025, 7, 1))
    )
    private = calendar_service.create_event(
        db, a.id, CalendarEventCreate(title="Day off", date=date(2025, 7, 2), is_private=True)
    )

    own = calendar_service.list_events(db, [a.id], viewer_profile_id=a.id)
    assert [e.id for e in own] == [public.id, private.id]
    seen_by_venue = calendar_service.list_events(db, [a.id], viewer_profile_id=v.id)
    assert [e.id for e in seen_by_venue] == [public.id]


def test_update_applies_only_sent_fields(db, artist):
    _, a = artist
    event = calendar_service.create_event(
        db,
        a.id,
        CalendarEventCreate(title=" Rehearsal ", date=date(2025, 7, 3), start_time="18:00", notes="bring pedals"),
    )
    assert event.title == "Rehearsal"

    updated = calendar_service.update_event(
        db, event.id, a.id, CalendarEventUpdate(type=CalendarEventType.UNAVAILABLE)
    )
    assert updated.type == CalendarEventType.UNAVAILABLE
    assert (updated.start_time, updated.notes) == ("18:00", "bring pedals")

    with pytest.raises(ValidationError):
        calendar_service.update_event(db, event.id, a.id, CalendarEventUpdate(date=None))
    with pytest.raises(ValidationError):
        calendar_service.update_event(db, event.id, a.id, CalendarEventUpdate(title="  "))


def test_only_owner_changes_event(db, artist, venue):
    _, a = artist
    _, v = venue
    event = calendar_service.create_event(db, a.id, CalendarEventCreate(title="Gig", date=date(2025, 7, 1)))
    with pytest.raises(PermissionDeniedError):
        calendar_service.update_event(db, event.id, v.id, CalendarEventUpdate(title="Mine now"))
    with pytest.raises(PermissionDeniedError):
        calendar_service.delete_event(db, event.id, v.id)

    calendar_service.delete_event(db, event.id, a.id)
    with pytest.raises(NotFoundError):
        calendar_service.delete_event(db, event.id, a.id)


def test_blank_title_rejected(db, artist):
    _, a = artist
    with pytest.raises(ValidationError):
        calendar_service.create_event(db, a.id, CalendarEventCreate(title="   ", date=date(2025, 7, 1)))


def test_bad_time_rejected_by_schema():
    with pytest.raises(ValueError):
        CalendarEventCreate(title="Gig", date=date(2025, 7, 1), start_time="7pm")
