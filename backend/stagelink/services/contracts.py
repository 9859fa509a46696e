"""Contract proposal state machine.

pending -> negotiating -> accepted | rejected
pending -> accepted | rejected
pending | negotiating -> expired  (once expires_at has passed)

Expiry is enforced lazily: any read or action on an overdue open proposal
flips it to expired first. The background sweeper only speeds that up.
Every transition is a conditional UPDATE on the expected statuses so a
concurrent writer that got there first turns into a StateError.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_booking_request, crud_contract, crud_profile
from ..schemas.contract import ContractProposalCreate
from ..utils.errors import NotFoundError, PermissionDeniedError, StateError, ValidationError
from ..utils.notifications import (
    notify_contract_accepted,
    notify_contract_expired,
    notify_contract_negotiation,
    notify_contract_proposed,
    notify_contract_rejected,
    safe_notify,
)
from ..utils.redis_cache import invalidate_availability_cache
from .contract_terms import prepare_terms, radius_summary

logger = logging.getLogger(__name__)

REJECTION_PREFIX = "Rejection note: "
DIRECT_PROPOSAL_MESSAGE = "Direct contract proposal"

OPEN = list(models.OPEN_CONTRACT_STATUSES)


def _get_proposal(db: Session, proposal_id: int) -> models.ContractProposal:
    proposal = crud_contract.get_proposal(db, proposal_id)
    if proposal is None:
        raise NotFoundError("Contract proposal not found", {"proposal_id": "not_found"})
    return proposal


def _state_error(proposal: models.ContractProposal) -> StateError:
    return StateError(
        f"Contract proposal is {proposal.status.value}",
        current_status=proposal.status.value,
    )


def _transition(
    db: Session,
    proposal: models.ContractProposal,
    expected: list,
    values: dict,
) -> None:
    """Apply a guarded status change or raise StateError with the fresh status."""
    values = {**values, "updated_at": datetime.utcnow()}
    if crud_contract.transition_status(db, proposal.id, expected, values) != 1:
        db.rollback()
        db.refresh(proposal)
        raise _state_error(proposal)


def expire_if_overdue(
    db: Session, proposal: models.ContractProposal, now: Optional[datetime] = None
) -> bool:
    """Flip an open, overdue proposal to expired. Returns True when it did."""
    now = now or datetime.utcnow()
    if proposal.status not in models.OPEN_CONTRACT_STATUSES:
        return False
    if proposal.expires_at is None or proposal.expires_at > now:
        return False
    updated = crud_contract.transition_status(
        db,
        proposal.id,
        OPEN,
        {"status": models.ContractStatus.EXPIRED, "updated_at": now},
    )
    db.commit()
    db.refresh(proposal)
    if updated == 1:
        logger.info("Contract proposal %s expired", proposal.id)
        safe_notify(notify_contract_expired, db, proposal)
        return True
    return False


def _guard_open(db: Session, proposal: models.ContractProposal) -> None:
    if expire_if_overdue(db, proposal):
        raise StateError("Contract proposal has expired", current_status=proposal.status.value)
    if proposal.status not in models.OPEN_CONTRACT_STATUSES:
        raise _state_error(proposal)


def _require_party(proposal: models.ContractProposal, acting_profile_id: int) -> None:
    if acting_profile_id not in (proposal.proposed_by, proposal.proposed_to):
        raise PermissionDeniedError(
            "You are not a party to this contract proposal",
            {"proposal_id": "forbidden"},
        )


def _require_recipient(proposal: models.ContractProposal, acting_profile_id: int) -> None:
    if acting_profile_id != proposal.proposed_to:
        logger.warning(
            "Profile %s tried to respond to contract proposal %s sent to %s",
            acting_profile_id,
            proposal.id,
            proposal.proposed_to,
        )
        raise PermissionDeniedError(
            "Only the recipient can respond to this contract proposal",
            {"proposal_id": "forbidden"},
        )


def create_proposal(
    db: Session, acting_profile_id: int, data: ContractProposalCreate
) -> models.ContractProposal:
    """Create a proposal for an existing booking request, or directly to a venue.

    With ``booking_request_id`` the acting profile must be that request's
    venue and the artist receives the proposal. With only ``venue_id`` the
    acting profile must be an artist and a pending booking request is
    created alongside so the proposal has a parent.
    """
    acting = crud_profile.get_profile(db, acting_profile_id)
    if acting is None:
        raise NotFoundError("Profile not found", {"profile_id": "not_found"})
    title = (data.title or "").strip()
    if not title:
        raise ValidationError("Contract title is required", {"title": "required"})
    if not (data.payment.total_amount or "").strip():
        raise ValidationError("Total amount is required", {"payment.total_amount": "required"})
    if data.expires_at is not None and data.expires_at <= datetime.utcnow():
        raise ValidationError("Expiry must be in the future", {"expires_at": "in_past"})
    terms = prepare_terms(data.terms)
    payment = data.payment.model_dump(mode="json", exclude_none=True)

    booking_request: Optional[models.BookingRequest] = None
    if data.booking_request_id is not None:
        booking_request = crud_booking_request.get_booking_request(db, data.booking_request_id)
        if booking_request is None:
            raise NotFoundError("Booking request not found", {"booking_request_id": "not_found"})
        if booking_request.venue_profile_id != acting.id:
            raise PermissionDeniedError(
                "Only the venue of this booking request can propose a contract",
                {"booking_request_id": "forbidden"},
            )
        proposed_to = booking_request.artist_profile_id
    elif data.venue_id is not None:
        if acting.type != models.ProfileType.ARTIST:
            raise PermissionDeniedError(
                "Only artist profiles can send direct proposals",
                {"profile": "must_be_artist"},
            )
        venue = crud_profile.get_profile(db, data.venue_id)
        if venue is None or venue.type != models.ProfileType.VENUE:
            raise ValidationError("Venue not found", {"venue_id": "must_be_venue"})
        booking_request = crud_booking_request.create_booking_request(
            db, acting.id, venue.id, message=DIRECT_PROPOSAL_MESSAGE
        )
        proposed_to = venue.id
    else:
        raise ValidationError(
            "A booking request or venue is required",
            {"booking_request_id": "required", "venue_id": "required"},
        )

    proposal = crud_contract.create_proposal(
        db,
        booking_request_id=booking_request.id,
        proposed_by=acting.id,
        proposed_to=proposed_to,
        title=title,
        description=data.description,
        terms=terms,
        payment=payment,
        requirements=data.requirements,
        attachments=list(data.attachments or []),
        expires_at=data.expires_at,
    )
    db.commit()
    db.refresh(proposal)
    logger.info(
        "Contract proposal %s created by profile %s for profile %s",
        proposal.id,
        acting.id,
        proposed_to,
    )

    safe_notify(notify_contract_proposed, db, proposal)
    if data.booking_request_id is None:
        invalidate_availability_cache([acting.id, proposed_to])
    return proposal


def accept(
    db: Session,
    proposal_id: int,
    acting_profile_id: int,
    signature_data: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> models.ContractProposal:
    proposal = _get_proposal(db, proposal_id)
    _require_recipient(proposal, acting_profile_id)
    _guard_open(db, proposal)

    now = datetime.utcnow()
    _transition(
        db,
        proposal,
        OPEN,
        {"status": models.ContractStatus.ACCEPTED, "accepted_at": now},
    )
    if not signature_data:
        signer = crud_profile.get_profile(db, acting_profile_id, include_deleted=True)
        signature_data = f"Accepted by {signer.name if signer else acting_profile_id}"
    crud_contract.add_signature(
        db,
        proposal.id,
        acting_profile_id,
        signature_data,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.commit()
    db.refresh(proposal)
    logger.info("Contract proposal %s accepted by profile %s", proposal.id, acting_profile_id)

    safe_notify(notify_contract_accepted, db, proposal)
    return proposal


def reject(
    db: Session,
    proposal_id: int,
    acting_profile_id: int,
    reason: Optional[str] = None,
) -> models.ContractProposal:
    proposal = _get_proposal(db, proposal_id)
    _require_recipient(proposal, acting_profile_id)
    _guard_open(db, proposal)

    _transition(
        db,
        proposal,
        OPEN,
        {"status": models.ContractStatus.REJECTED, "rejected_at": datetime.utcnow()},
    )
    reason = (reason or "").strip() or None
    if reason:
        crud_contract.add_negotiation(db, proposal.id, acting_profile_id, REJECTION_PREFIX + reason)
    db.commit()
    db.refresh(proposal)
    logger.info("Contract proposal %s rejected by profile %s", proposal.id, acting_profile_id)

    safe_notify(notify_contract_rejected, db, proposal, reason)
    return proposal


def negotiate(
    db: Session,
    proposal_id: int,
    acting_profile_id: int,
    message: str,
    proposed_changes: Optional[dict] = None,
) -> models.ContractNegotiation:
    """Append to the negotiation log; a pending proposal becomes negotiating."""
    proposal = _get_proposal(db, proposal_id)
    _require_party(proposal, acting_profile_id)
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message is required", {"message": "required"})
    _guard_open(db, proposal)

    # Also re-asserts "still open" under the row lock for negotiating rows
    _transition(db, proposal, OPEN, {"status": models.ContractStatus.NEGOTIATING})
    entry = crud_contract.add_negotiation(
        db, proposal.id, acting_profile_id, message, proposed_changes
    )
    db.commit()
    db.refresh(proposal)
    db.refresh(entry)
    logger.info("Contract proposal %s negotiated by profile %s", proposal.id, acting_profile_id)

    safe_notify(notify_contract_negotiation, db, proposal, acting_profile_id)
    return entry


def get_detail(db: Session, proposal_id: int, acting_profile_id: int) -> dict:
    """Proposal with its ordered negotiation log and signatures."""
    proposal = _get_proposal(db, proposal_id)
    _require_party(proposal, acting_profile_id)
    expire_if_overdue(db, proposal)
    terms = proposal.terms or {}
    return {
        "proposal": proposal,
        "negotiations": crud_contract.get_negotiations(db, proposal.id),
        "signatures": crud_contract.get_signatures(db, proposal.id),
        "radius_summary": radius_summary(terms.get("radius_clause")),
    }


def list_for_profile(db: Session, profile_id: int) -> List[dict]:
    proposals = crud_contract.get_proposals_for_profile(db, profile_id)
    now = datetime.utcnow()
    items = []
    for proposal in proposals:
        expire_if_overdue(db, proposal, now)
        counterpart = proposal.recipient if proposal.proposed_by == profile_id else proposal.proposer
        items.append({"proposal": proposal, "counterpart": counterpart})
    return items


def expire_overdue_proposals(db: Session, now: Optional[datetime] = None) -> List[models.ContractProposal]:
    """Sweep every open proposal past its expiry."""
    now = now or datetime.utcnow()
    expired = []
    for proposal in crud_contract.get_overdue_proposals(db, now):
        if expire_if_overdue(db, proposal, now):
            expired.append(proposal)
    return expired
