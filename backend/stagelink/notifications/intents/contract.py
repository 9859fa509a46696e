from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from stagelink import models
from stagelink.crud import crud_profile
from stagelink.models import NotificationType
from stagelink.utils.notifications import format_notification_message, notify_profile

logger = logging.getLogger(__name__)


def _link(proposal: models.ContractProposal) -> str:
    return f"/contract-proposals/{proposal.id}"


def _name(db: Session, profile_id: int) -> str:
    profile = crud_profile.get_profile(db, profile_id, include_deleted=True)
    return profile.name if profile else f"Profile #{profile_id}"


def _send(
    db: Session,
    proposal: models.ContractProposal,
    recipient_profile_id: int,
    ntype: NotificationType,
    message: str,
    **extra,
) -> None:
    notify_profile(
        db,
        recipient_profile_id,
        ntype,
        message,
        _link(proposal),
        contract_proposal_id=proposal.id,
        booking_request_id=proposal.booking_request_id,
        title=proposal.title,
        **extra,
    )
    logger.info("Notify profile %s: %s", recipient_profile_id, message)


def send_contract_proposed_notification(db: Session, proposal: models.ContractProposal) -> None:
    sender = _name(db, proposal.proposed_by)
    message = format_notification_message(
        NotificationType.CONTRACT_PROPOSED, sender_name=sender, title=proposal.title
    )
    _send(db, proposal, proposal.proposed_to, NotificationType.CONTRACT_PROPOSED, message,
          sender_profile_id=proposal.proposed_by)


def send_contract_accepted_notification(db: Session, proposal: models.ContractProposal) -> None:
    sender = _name(db, proposal.proposed_to)
    message = format_notification_message(
        NotificationType.CONTRACT_ACCEPTED, sender_name=sender, title=proposal.title
    )
    _send(db, proposal, proposal.proposed_by, NotificationType.CONTRACT_ACCEPTED, message,
          sender_profile_id=proposal.proposed_to)


def send_contract_rejected_notification(
    db: Session, proposal: models.ContractProposal, reason: Optional[str] = None
) -> None:
    sender = _name(db, proposal.proposed_to)
    message = format_notification_message(
        NotificationType.CONTRACT_REJECTED, sender_name=sender, title=proposal.title, reason=reason
    )
    _send(db, proposal, proposal.proposed_by, NotificationType.CONTRACT_REJECTED, message,
          sender_profile_id=proposal.proposed_to, reason=reason)


def send_contract_negotiation_notification(
    db: Session, proposal: models.ContractProposal, sender_profile_id: int
) -> None:
    """Notify whichever party did not write the negotiation entry."""
    recipient = proposal.proposed_to if sender_profile_id == proposal.proposed_by else proposal.proposed_by
    message = format_notification_message(
        NotificationType.CONTRACT_NEGOTIATION,
        sender_name=_name(db, sender_profile_id),
        title=proposal.title,
    )
    _send(db, proposal, recipient, NotificationType.CONTRACT_NEGOTIATION, message,
          sender_profile_id=sender_profile_id)


def send_contract_expired_notification(db: Session, proposal: models.ContractProposal) -> None:
    message = format_notification_message(NotificationType.CONTRACT_EXPIRED, title=proposal.title)
    for profile_id in (proposal.proposed_by, proposal.proposed_to):
        _send(db, proposal, profile_id, NotificationType.CONTRACT_EXPIRED, message)
