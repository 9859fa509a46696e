import asyncio
import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..models import NotificationType
from ..realtime.fanout import notifications_manager
from ..schemas.notification import NotificationResponse
from .errors import NotificationDeliveryFailure

logger = logging.getLogger(__name__)

NOTIFICATION_TITLES = {
    NotificationType.BOOKING_REQUEST: "New Booking Request",
    NotificationType.BOOKING_CONFIRMED: "Booking Request Accepted",
    NotificationType.BOOKING_DECLINED: "Booking Request Declined",
    NotificationType.CONTRACT_PROPOSED: "New Contract Proposal",
    NotificationType.CONTRACT_ACCEPTED: "Contract Accepted",
    NotificationType.CONTRACT_REJECTED: "Contract Rejected",
    NotificationType.CONTRACT_NEGOTIATION: "Contract Negotiation",
    NotificationType.CONTRACT_EXPIRED: "Contract Expired",
    NotificationType.PROFILE_DELETED: "Profile Deleted",
}


def alert_scheduler_failure(exc: Exception) -> None:
    """Emit an error log when a background scheduler run fails."""
    logger.exception("Scheduler run failed: %s", exc)


def format_notification_message(ntype: NotificationType, **kwargs: Any) -> str:
    """Return a human friendly notification message."""
    if ntype == NotificationType.BOOKING_REQUEST:
        msg = f"{kwargs.get('artist_name')} wants to book your venue"
        if kwargs.get("event_date"):
            msg += f" on {kwargs.get('event_date')}"
        return msg
    if ntype == NotificationType.BOOKING_CONFIRMED:
        return f"{kwargs.get('venue_name')} has accepted your booking request"
    if ntype == NotificationType.BOOKING_DECLINED:
        msg = f"{kwargs.get('venue_name')} has declined your booking request"
        if kwargs.get("decline_message"):
            msg += f": {kwargs.get('decline_message')}"
        return msg
    if ntype == NotificationType.CONTRACT_PROPOSED:
        return f"{kwargs.get('sender_name')} sent you a contract proposal: {kwargs.get('title')}"
    if ntype == NotificationType.CONTRACT_ACCEPTED:
        return f"{kwargs.get('sender_name')} accepted your contract proposal: {kwargs.get('title')}"
    if ntype == NotificationType.CONTRACT_REJECTED:
        msg = f"{kwargs.get('sender_name')} rejected your contract proposal: {kwargs.get('title')}"
        if kwargs.get("reason"):
            msg += f" ({kwargs.get('reason')})"
        return msg
    if ntype == NotificationType.CONTRACT_NEGOTIATION:
        return f"{kwargs.get('sender_name')} replied on contract proposal: {kwargs.get('title')}"
    if ntype == NotificationType.CONTRACT_EXPIRED:
        return f"Contract proposal expired: {kwargs.get('title')}"
    if ntype == NotificationType.PROFILE_DELETED:
        return (
            f'The profile "{kwargs.get("profile_name")}" has been deleted by '
            f"{kwargs.get('deleted_by')}. It can be restored until {kwargs.get('restore_until')}."
        )
    return str(kwargs.get("content", ""))


def _broadcast(user_id: int, data: dict) -> None:
    """Push to live sockets. Failures are logged and never propagate."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    owner = notifications_manager.fanout.loop
    try:
        if loop is not None:
            loop.create_task(notifications_manager.broadcast(user_id, data))
        elif owner is not None and owner.is_running():
            # Threadpool endpoint: the sockets live on the server loop
            asyncio.run_coroutine_threadsafe(
                notifications_manager.broadcast(user_id, data), owner
            )
        else:
            # No server loop (scripts, tests)
            asyncio.run(notifications_manager.broadcast(user_id, data))
    except Exception as exc:
        logger.warning("Live notification push failed for user %s: %s", user_id, exc)


def _create_and_broadcast(
    db: Session,
    user_id: int,
    ntype: NotificationType,
    message: str,
    link: str,
    profile_id: Optional[int] = None,
    **extra: Any,
) -> models.Notification:
    """Persist a notification then broadcast it via WebSocket.

    Raises ``NotificationDeliveryFailure`` when the row cannot be stored.
    """
    from ..crud import crud_notification

    data = {k: v for k, v in extra.items() if v is not None}
    try:
        notif = crud_notification.create_notification(
            db,
            user_id=user_id,
            type=ntype,
            title=NOTIFICATION_TITLES.get(ntype, ntype.value),
            message=message,
            link=link,
            profile_id=profile_id,
            data=data or None,
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise NotificationDeliveryFailure(
            f"could not store {ntype.value} notification for user {user_id}"
        ) from exc
    payload = NotificationResponse.model_validate(notif).model_dump(mode="json")
    _broadcast(user_id, payload)
    return notif


def notify_profile(
    db: Session,
    profile_id: int,
    ntype: NotificationType,
    message: str,
    link: str,
    **extra: Any,
) -> list[models.Notification]:
    """Notify every user that owns or manages ``profile_id``."""
    from ..crud import crud_profile

    created = []
    for user_id in crud_profile.owning_user_ids(db, profile_id):
        created.append(
            _create_and_broadcast(db, user_id, ntype, message, link, profile_id=profile_id, **extra)
        )
    return created


def safe_notify(func: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """Run a notify_* call after a committed state change.

    Delivery failures are logged and swallowed so they never undo or fail
    the primary operation. Returns True when the notification went out.
    """
    try:
        func(*args, **kwargs)
        return True
    except NotificationDeliveryFailure as exc:
        logger.warning("Notification %s not delivered: %s", func.__name__, exc)
        return False


def notify_booking_request(db: Session, booking_request: models.BookingRequest) -> None:
    """Facade for new booking request notifications."""
    from ..notifications.intents import booking_request as booking_request_intent

    booking_request_intent.send_booking_request_notification(db, booking_request)


def notify_booking_response(db: Session, booking_request: models.BookingRequest) -> None:
    """Facade for accepted/declined booking request notifications."""
    from ..notifications.intents import booking_request as booking_request_intent

    booking_request_intent.send_booking_response_notification(db, booking_request)


def retract_booking_request_notifications(db: Session, booking_request: models.BookingRequest) -> int:
    from ..notifications.intents import booking_request as booking_request_intent

    return booking_request_intent.retract_booking_request_notification(db, booking_request)


def notify_contract_proposed(db: Session, proposal: models.ContractProposal) -> None:
    from ..notifications.intents import contract as contract_intent

    contract_intent.send_contract_proposed_notification(db, proposal)


def notify_contract_accepted(db: Session, proposal: models.ContractProposal) -> None:
    from ..notifications.intents import contract as contract_intent

    contract_intent.send_contract_accepted_notification(db, proposal)


def notify_contract_rejected(
    db: Session, proposal: models.ContractProposal, reason: Optional[str] = None
) -> None:
    from ..notifications.intents import contract as contract_intent

    contract_intent.send_contract_rejected_notification(db, proposal, reason)


def notify_contract_negotiation(
    db: Session, proposal: models.ContractProposal, sender_profile_id: int
) -> None:
    from ..notifications.intents import contract as contract_intent

    contract_intent.send_contract_negotiation_notification(db, proposal, sender_profile_id)


def notify_contract_expired(db: Session, proposal: models.ContractProposal) -> None:
    from ..notifications.intents import contract as contract_intent

    contract_intent.send_contract_expired_notification(db, proposal)


def notify_profile_deleted(
    db: Session, profile: models.Profile, deleted_by: models.User, restore_until: str
) -> None:
    """Notify members other than the deleting user that a shared profile is gone."""
    from ..crud import crud_profile

    message = format_notification_message(
        NotificationType.PROFILE_DELETED,
        profile_name=profile.name,
        deleted_by=deleted_by.full_name,
        restore_until=restore_until,
    )
    for user_id in crud_profile.owning_user_ids(db, profile.id):
        if user_id == deleted_by.id:
            continue
        _create_and_broadcast(
            db,
            user_id,
            NotificationType.PROFILE_DELETED,
            message,
            f"/profiles/{profile.id}",
            profile_name=profile.name,
            restore_until=restore_until,
        )
