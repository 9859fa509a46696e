from typing import List
import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..services import contracts as contract_service
from ..services import lineup
from .dependencies import get_db, get_current_active_profile, get_current_active_user

router = APIRouter(tags=["contract-proposals"])

logger = logging.getLogger(__name__)


# ─── Lineup helpers (stateless) ──────────────────────────────────────────────
@router.post("/contract-proposals/lineup/add", response_model=schemas.LineupResponse)
def lineup_add(
    body: schemas.LineupAddRequest,
    current_user: models.User = Depends(get_current_active_user),
):
    return {"lineup": lineup.add_performer(body.lineup, body.performer)}


@router.post("/contract-proposals/lineup/remove", response_model=schemas.LineupResponse)
def lineup_remove(
    body: schemas.LineupRemoveRequest,
    current_user: models.User = Depends(get_current_active_user),
):
    return {"lineup": lineup.remove_performer(body.lineup, body.performer_id)}


@router.post("/contract-proposals/lineup/reorder", response_model=schemas.LineupResponse)
def lineup_reorder(
    body: schemas.LineupReorderRequest,
    current_user: models.User = Depends(get_current_active_user),
):
    return {"lineup": lineup.reorder(body.lineup, body.performer_id, body.new_order)}


# ─── Proposals ───────────────────────────────────────────────────────────────
@router.post(
    "/contract-proposals",
    response_model=schemas.ContractProposalResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_contract_proposal(
    proposal_in: schemas.ContractProposalCreate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Propose a contract for a booking request, or directly to a venue."""
    return contract_service.create_proposal(db, profile.id, proposal_in)


@router.get("/contract-proposals", response_model=List[schemas.ContractProposalListItem])
def read_my_contract_proposals(
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    items = contract_service.list_for_profile(db, profile.id)
    return [
        schemas.ContractProposalListItem.model_validate(item["proposal"]).model_copy(
            update={
                "counterpart": (
                    schemas.ProfileSummary.model_validate(item["counterpart"])
                    if item["counterpart"] is not None
                    else None
                )
            }
        )
        for item in items
    ]


@router.get("/contract-proposals/{proposal_id}", response_model=schemas.ContractProposalDetail)
def read_contract_proposal(
    proposal_id: int,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Proposal with its negotiation thread, signatures and radius summary."""
    detail = contract_service.get_detail(db, proposal_id, profile.id)
    return schemas.ContractProposalDetail.model_validate(detail["proposal"]).model_copy(
        update={
            "negotiations": [
                schemas.ContractNegotiationResponse.model_validate(n)
                for n in detail["negotiations"]
            ],
            "signatures": [
                schemas.ContractSignatureResponse.model_validate(s)
                for s in detail["signatures"]
            ],
            "radius_summary": detail["radius_summary"],
        }
    )


@router.post(
    "/contract-proposals/{proposal_id}/accept",
    response_model=schemas.ContractProposalResponse,
)
def accept_contract_proposal(
    proposal_id: int,
    request: Request,
    body: schemas.ContractAccept = schemas.ContractAccept(),
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Accept and sign as the recipient profile."""
    return contract_service.accept(
        db,
        proposal_id,
        profile.id,
        signature_data=body.signature_data,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post(
    "/contract-proposals/{proposal_id}/reject",
    response_model=schemas.ContractProposalResponse,
)
def reject_contract_proposal(
    proposal_id: int,
    body: schemas.ContractReject = schemas.ContractReject(),
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    return contract_service.reject(db, proposal_id, profile.id, reason=body.reason)


@router.post(
    "/contract-proposals/{proposal_id}/negotiate",
    response_model=schemas.ContractNegotiationResponse,
    status_code=status.HTTP_201_CREATED,
)
def negotiate_contract_proposal(
    proposal_id: int,
    body: schemas.ContractNegotiate,
    db: Session = Depends(get_db),
    profile: models.Profile = Depends(get_current_active_profile),
):
    """Add a message (and optional changes) to the negotiation thread."""
    return contract_service.negotiate(
        db,
        proposal_id,
        profile.id,
        body.message,
        proposed_changes=body.proposed_changes,
    )
