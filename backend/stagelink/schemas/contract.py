import enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.contract import ContractStatus
from .profile import ProfileSummary


HEADLINER = "Headliner"
SUPPORT = "Support"


class PerformerRoleName(str, enum.Enum):
    HEADLINER = HEADLINER
    SUPPORT = SUPPORT


class MerchandisingTerms(str, enum.Enum):
    ARTIST_EXCLUSIVE = "artist_exclusive"
    VENUE_PERCENTAGE = "venue_percentage"
    SHARED = "shared"
    NO_MERCHANDISING = "no_merchandising"


class RecordingTerms(str, enum.Enum):
    NO_RECORDING = "no_recording"
    VENUE_ONLY = "venue_only"
    ARTIST_APPROVAL = "artist_approval"
    UNRESTRICTED = "unrestricted"


class PerformerRole(BaseModel):
    """One lineup slot."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    role: Optional[PerformerRoleName] = None
    profile_id: Optional[int] = None
    performance_order: int = 0
    set_duration: Optional[int] = None
    soundcheck_duration: Optional[int] = None
    setup_duration: Optional[int] = None
    payment_amount: Optional[str] = None
    special_requirements: Optional[str] = None

    @field_validator("payment_amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        return v


class RadiusClause(BaseModel):
    enabled: bool = False
    distance: Optional[float] = None
    distance_unit: str = "miles"
    time_restriction: Optional[float] = None
    time_unit: str = "days"


class ContractTerms(BaseModel):
    # Unknown sections are kept as sent
    model_config = ConfigDict(extra="allow")

    performance_duration: Optional[str] = None
    sound_check: Optional[str] = None
    setup_time: Optional[str] = None
    breakdown_time: Optional[str] = None
    cancellation_policy: Optional[str] = None
    force_majeure: Optional[str] = None
    merchandising: Optional[MerchandisingTerms] = None
    recording: Optional[RecordingTerms] = None
    additional_services: Optional[str] = None
    rider: Optional[str] = None
    performers: List[PerformerRole] = []
    radius_clause: Optional[RadiusClause] = None


class PaymentTerms(BaseModel):
    model_config = ConfigDict(extra="allow")

    total_amount: str = Field(min_length=1)
    deposit_amount: Optional[str] = None
    deposit_due_date: Optional[str] = None
    final_payment_date: Optional[str] = None
    payment_method: Optional[str] = None
    currency: str = "USD"
    expenses: Optional[str] = None
    penalty_clause: Optional[str] = None
    schedule: Optional[List[Dict[str, Any]]] = None

    @field_validator("total_amount", "deposit_amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v


class ContractProposalCreate(BaseModel):
    booking_request_id: Optional[int] = None
    venue_id: Optional[int] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    terms: ContractTerms = ContractTerms()
    payment: PaymentTerms
    requirements: Optional[str] = None
    attachments: List[Dict[str, Any]] = []
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Stored and compared as naive UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class ContractAccept(BaseModel):
    signature_data: Optional[str] = None


class ContractReject(BaseModel):
    reason: Optional[str] = None


class ContractNegotiate(BaseModel):
    message: str = Field(min_length=1)
    proposed_changes: Optional[Dict[str, Any]] = None


class ContractNegotiationResponse(BaseModel):
    id: int
    contract_proposal_id: int
    profile_id: int
    message: str
    proposed_changes: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ContractSignatureResponse(BaseModel):
    id: int
    contract_proposal_id: int
    profile_id: int
    signature_data: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    signed_at: datetime

    model_config = {"from_attributes": True}


class ContractProposalResponse(BaseModel):
    id: int
    booking_request_id: int
    proposed_by: int
    proposed_to: int
    title: str
    description: Optional[str] = None
    terms: Dict[str, Any] = {}
    payment: Dict[str, Any] = {}
    requirements: Optional[str] = None
    attachments: List[Dict[str, Any]] = []
    status: ContractStatus
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ContractProposalListItem(ContractProposalResponse):
    counterpart: Optional[ProfileSummary] = None


class ContractProposalDetail(ContractProposalResponse):
    negotiations: List[ContractNegotiationResponse] = []
    signatures: List[ContractSignatureResponse] = []
    radius_summary: Optional[str] = None


class LineupAddRequest(BaseModel):
    lineup: List[PerformerRole]
    performer: PerformerRole


class LineupRemoveRequest(BaseModel):
    lineup: List[PerformerRole]
    performer_id: str


class LineupReorderRequest(BaseModel):
    lineup: List[PerformerRole]
    performer_id: str
    new_order: int


class LineupResponse(BaseModel):
    lineup: List[PerformerRole]
