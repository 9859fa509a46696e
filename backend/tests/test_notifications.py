import logging
from datetime import date

from sqlalchemy.exc import OperationalError

from stagelink.crud import crud_notification
from stagelink.models import BookingRequest, BookingRequestStatus, Notification, NotificationType, ProfileType
from stagelink.services import booking_requests as booking_service
from stagelink.utils import notifications
from stagelink.utils.notifications import format_notification_message


def _fail(*args, **kwargs):
    raise OperationalError("INSERT INTO notifications", {}, Exception("disk I/O error"))


def test_booking_survives_notification_failure(db, artist, venue, monkeypatch, caplog):
    _, a = artist
    _, v = venue
    monkeypatch.setattr(crud_notification, "create_notification", _fail)
    caplog.set_level(logging.WARNING, logger="stagelink.utils.notifications")

    br = booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))
    assert db.query(BookingRequest).filter(BookingRequest.id == br.id).one().status == BookingRequestStatus.PENDING

    updated = booking_service.update_status(db, br.id, "accepted", v.id)
    assert updated.status == BookingRequestStatus.ACCEPTED
    assert db.query(Notification).count() == 0
    assert any("not delivered" in r.getMessage() for r in caplog.records)


def test_broadcast_failure_keeps_notification(db, artist, venue, patch_notifications_broadcast, caplog):
    venue_user, v = venue
    _, a = artist
    patch_notifications_broadcast.side_effect = RuntimeError("socket gone")
    caplog.set_level(logging.WARNING, logger="stagelink.utils.notifications")

    booking_service.create_booking_request(db, a.id, v.id)
    stored = db.query(Notification).filter(Notification.user_id == venue_user.id).all()
    assert len(stored) == 1
    assert any("Live notification push failed" in r.getMessage() for r in caplog.records)


def test_broadcast_payload(db, artist, venue, patch_notifications_broadcast):
    venue_user, v = venue
    _, a = artist
    br = booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))

    patch_notifications_broadcast.assert_called_once()
    user_id, payload = patch_notifications_broadcast.call_args.args
    assert user_id == venue_user.id
    assert payload["type"] == "booking_request"
    assert payload["link"] == f"/booking-requests/{br.id}"
    assert payload["profile_id"] == v.id
    assert payload["is_read"] is False


def test_every_owner_and_member_is_notified(db, make_user, make_profile, artist):
    _, a = artist
    owner, club = make_profile(ProfileType.VENUE, "Club")
    booker = make_user(first_name="Booker")
    from stagelink.crud import crud_profile

    crud_profile.add_membership(db, club.id, booker.id)
    db.commit()

    booking_service.create_booking_request(db, a.id, club.id)
    recipients = sorted(n.user_id for n in db.query(Notification).all())
    assert recipients == sorted([owner.id, booker.id])


def test_unread_counts_and_ordering(db, make_user):
    user = make_user()
    crud_notification.create_notification(
        db, user.id, NotificationType.BOOKING_REQUEST, "t", "first", "/x", profile_id=None
    )
    n2 = crud_notification.create_notification(
        db, user.id, NotificationType.BOOKING_CONFIRMED, "t", "other", "/y", profile_id=None
    )
    assert crud_notification.count_unread(db, user.id) == 2
    crud_notification.mark_as_read(db, n2)
    assert crud_notification.count_unread(db, user.id) == 1
    assert crud_notification.mark_all_read(db, user.id) == 1
    assert crud_notification.count_unread(db, user.id) == 0
    newest_first = crud_notification.get_notifications_for_user(db, user.id)
    assert [n.id for n in newest_first][0] == n2.id


def test_message_formats():
    assert (
        format_notification_message(NotificationType.BOOKING_DECLINED, venue_name="Blue Room", decline_message="fully booked")
        == "Blue Room has declined your booking request: fully booked"
    )
    assert (
        format_notification_message(NotificationType.BOOKING_REQUEST, artist_name="The Lanterns")
        == "The Lanterns wants to book your venue"
    )
    assert (
        format_notification_message(NotificationType.CONTRACT_REJECTED, sender_name="A", title="Gig")
        == "A rejected your contract proposal: Gig"
    )
    assert notifications.NOTIFICATION_TITLES[NotificationType.CONTRACT_EXPIRED] == "Contract Expired"
