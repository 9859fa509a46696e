from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .. import models


def create_proposal(
    db: Session,
    *,
    booking_request_id: int,
    proposed_by: int,
    proposed_to: int,
    title: str,
    description: Optional[str],
    terms: dict,
    payment: dict,
    requirements: Optional[str],
    attachments: list,
    expires_at: Optional[datetime],
) -> models.ContractProposal:
    """Add a pending proposal to the session; the caller commits."""
    db_proposal = models.ContractProposal(
        booking_request_id=booking_request_id,
        proposed_by=proposed_by,
        proposed_to=proposed_to,
        title=title,
        description=description,
        terms=terms,
        payment=payment,
        requirements=requirements,
        attachments=attachments,
        status=models.ContractStatus.PENDING,
        expires_at=expires_at,
    )
    db.add(db_proposal)
    db.flush()
    return db_proposal


def get_proposal(db: Session, proposal_id: int) -> Optional[models.ContractProposal]:
    return (
        db.query(models.ContractProposal)
        .filter(models.ContractProposal.id == proposal_id)
        .first()
    )


def get_proposals_for_profile(db: Session, profile_id: int) -> List[models.ContractProposal]:
    return (
        db.query(models.ContractProposal)
        .options(
            joinedload(models.ContractProposal.proposer),
            joinedload(models.ContractProposal.recipient),
        )
        .filter(
            or_(
                models.ContractProposal.proposed_by == profile_id,
                models.ContractProposal.proposed_to == profile_id,
            )
        )
        .order_by(models.ContractProposal.created_at.desc(), models.ContractProposal.id.desc())
        .all()
    )


def transition_status(
    db: Session,
    proposal_id: int,
    expected: Iterable[models.ContractStatus],
    values: dict,
) -> int:
    """Conditional status update; returns the affected row count. Does not commit."""
    return (
        db.query(models.ContractProposal)
        .filter(
            models.ContractProposal.id == proposal_id,
            models.ContractProposal.status.in_(list(expected)),
        )
        .update(values, synchronize_session=False)
    )


def add_negotiation(
    db: Session,
    proposal_id: int,
    profile_id: int,
    message: str,
    proposed_changes: Optional[dict] = None,
) -> models.ContractNegotiation:
    entry = models.ContractNegotiation(
        contract_proposal_id=proposal_id,
        profile_id=profile_id,
        message=message,
        proposed_changes=proposed_changes,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry


def get_negotiations(db: Session, proposal_id: int) -> List[models.ContractNegotiation]:
    """Negotiation log in strict creation order."""
    return (
        db.query(models.ContractNegotiation)
        .filter(models.ContractNegotiation.contract_proposal_id == proposal_id)
        .order_by(
            models.ContractNegotiation.created_at.asc(),
            models.ContractNegotiation.id.asc(),
        )
        .all()
    )


def add_signature(
    db: Session,
    proposal_id: int,
    profile_id: int,
    signature_data: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> models.ContractSignature:
    signature = models.ContractSignature(
        contract_proposal_id=proposal_id,
        profile_id=profile_id,
        signature_data=signature_data,
        ip_address=ip_address,
        user_agent=user_agent,
        signed_at=datetime.utcnow(),
    )
    db.add(signature)
    db.flush()
    return signature


def get_signatures(db: Session, proposal_id: int) -> List[models.ContractSignature]:
    return (
        db.query(models.ContractSignature)
        .filter(models.ContractSignature.contract_proposal_id == proposal_id)
        .order_by(models.ContractSignature.signed_at.asc(), models.ContractSignature.id.asc())
        .all()
    )


def get_overdue_proposals(db: Session, now: datetime) -> List[models.ContractProposal]:
    return (
        db.query(models.ContractProposal)
        .filter(
            models.ContractProposal.status.in_(list(models.OPEN_CONTRACT_STATUSES)),
            models.ContractProposal.expires_at.isnot(None),
            models.ContractProposal.expires_at <= now,
        )
        .all()
    )
