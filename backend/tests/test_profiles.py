from datetime import date, datetime, timedelta

import pytest

from stagelink.crud import crud_profile
from stagelink.models import (
    BookingRequest,
    MembershipRole,
    Notification,
    NotificationType,
    Profile,
    ProfileType,
)
from stagelink.services import booking_requests as booking_service
from stagelink.services import profiles as profile_service
from stagelink.utils.errors import (
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)


def test_register_creates_active_audience_profile(db):
    user = profile_service.register_user(db, "New@Example.com", "secret1", "Nina", "Simone")
    assert user.email == "new@example.com"
    audience = crud_profile.get_audience_profile(db, user.id)
    assert audience is not None
    assert audience.name == "Nina Simone"
    assert user.active_profile_id == audience.id

    with pytest.raises(ValidationError):
        profile_service.register_user(db, "new@example.com", "secret1", "N", "S")


def test_single_audience_profile(db, make_user):
    user = make_user()
    profile_service.create_profile(db, user, ProfileType.AUDIENCE, "Me")
    with pytest.raises(ValidationError) as exc:
        profile_service.create_profile(db, user, ProfileType.AUDIENCE, "Me again")
    assert exc.value.field_errors == {"type": "audience_profile_exists"}


def test_blank_name_rejected(db, make_user):
    with pytest.raises(ValidationError):
        profile_service.create_profile(db, make_user(), ProfileType.ARTIST, "  ")


def test_one_active_profile_at_a_time(db, make_user):
    user = make_user()
    band = profile_service.create_profile(db, user, ProfileType.ARTIST, "Band")
    club = profile_service.create_profile(db, user, ProfileType.VENUE, "Club")
    # First profile becomes active automatically
    assert crud_profile.get_active_profile(db, user).id == band.id

    profile_service.activate_profile(db, user, club.id)
    assert crud_profile.get_active_profile(db, user).id == club.id
    assert [p.id for p in profile_service.list_my_profiles(db, user)] == [band.id, club.id]


def test_owner_membership_created_for_shared_types(db, make_user):
    user = make_user()
    band = profile_service.create_profile(db, user, ProfileType.ARTIST, "Band")
    assert [(m.user_id, m.role) for m in band.memberships] == [(user.id, MembershipRole.OWNER)]
    me = profile_service.create_profile(db, user, ProfileType.AUDIENCE, "Me")
    assert me.memberships == []


def test_member_can_act_as_shared_profile(db, make_user):
    owner = make_user(first_name="Olive")
    manager = make_user(first_name="Max")
    band = profile_service.create_profile(db, owner, ProfileType.ARTIST, "Band")
    crud_profile.add_membership(db, band.id, manager.id, role=MembershipRole.MANAGER)
    db.commit()

    profile_service.activate_profile(db, manager, band.id)
    assert crud_profile.get_active_profile(db, manager).id == band.id
    assert crud_profile.owning_user_ids(db, band.id) == [owner.id, manager.id]

    # Managers are not owners
    with pytest.raises(PermissionDeniedError):
        profile_service.soft_delete_profile(db, manager, band.id)


def test_cannot_activate_someone_elses_profile(db, make_user, artist):
    _, band = artist
    with pytest.raises(PermissionDeniedError):
        profile_service.activate_profile(db, make_user(), band.id)
    with pytest.raises(NotFoundError):
        profile_service.activate_profile(db, make_user(), 5555)


def test_soft_delete_and_restore(db, make_user):
    owner = make_user(first_name="Olive")
    manager = make_user(first_name="Max")
    me = profile_service.create_profile(db, owner, ProfileType.AUDIENCE, "Olive")
    band = profile_service.create_profile(db, owner, ProfileType.ARTIST, "Band")
    crud_profile.add_membership(db, band.id, manager.id)
    db.commit()
    profile_service.activate_profile(db, owner, band.id)

    deleted = profile_service.soft_delete_profile(db, owner, band.id, reason="Split up")
    assert deleted.deleted_at is not None
    assert deleted.deletion_reason == "Split up"
    assert crud_profile.get_profile(db, band.id) is None
    db.refresh(owner)
    assert owner.active_profile_id == me.id

    # The other member hears about it, the deleting owner does not
    notes = db.query(Notification).filter(Notification.type == NotificationType.PROFILE_DELETED).all()
    assert [n.user_id for n in notes] == [manager.id]
    assert "Olive User" in notes[0].message

    restored = profile_service.restore_profile(db, owner, band.id)
    assert restored.deleted_at is None
    assert crud_profile.get_profile(db, band.id) is not None

    with pytest.raises(StateError):
        profile_service.restore_profile(db, owner, band.id)


def test_restore_window(db, make_user):
    owner = make_user()
    band = profile_service.create_profile(db, owner, ProfileType.ARTIST, "Band")
    profile_service.soft_delete_profile(db, owner, band.id)
    band.deleted_at = datetime.utcnow() - profile_service.grace_period() - timedelta(days=1)
    db.commit()
    with pytest.raises(StateError):
        profile_service.restore_profile(db, owner, band.id)


def test_restore_second_audience_profile_rejected(db, make_user):
    user = make_user()
    old = profile_service.create_profile(db, user, ProfileType.AUDIENCE, "Old me")
    profile_service.soft_delete_profile(db, user, old.id)
    profile_service.create_profile(db, user, ProfileType.AUDIENCE, "New me")
    with pytest.raises(ValidationError):
        profile_service.restore_profile(db, user, old.id)


def test_purge_removes_profile_and_bookings(db, artist, venue):
    artist_user, a = artist
    _, v = venue
    booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))
    profile_service.soft_delete_profile(db, artist_user, a.id)

    assert profile_service.purge_deleted_profiles(db) == 0

    later = datetime.utcnow() + profile_service.grace_period() + timedelta(days=1)
    assert profile_service.purge_deleted_profiles(db, now=later) == 1
    assert db.query(Profile).filter(Profile.id == a.id).first() is None
    assert db.query(BookingRequest).count() == 0
    db.refresh(artist_user)
    assert artist_user.active_profile_id is None
