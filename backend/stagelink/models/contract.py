import enum

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import enum_column


class ContractStatus(str, enum.Enum):
    PENDING = "pending"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


OPEN_CONTRACT_STATUSES = (ContractStatus.PENDING, ContractStatus.NEGOTIATING)


class ContractProposal(BaseModel):
    __tablename__ = "contract_proposals"

    id = Column(Integer, primary_key=True, index=True)
    booking_request_id = Column(
        Integer,
        ForeignKey("booking_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    proposed_by = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    proposed_to = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    # Structured sections are stored as JSON documents
    terms = Column(JSON, nullable=False, default=dict)
    payment = Column(JSON, nullable=False, default=dict)
    requirements = Column(Text, nullable=True)
    attachments = Column(JSON, nullable=False, default=list)
    status = enum_column(
        ContractStatus,
        default=ContractStatus.PENDING,
        index=True,
    )
    expires_at = Column(DateTime, nullable=True, index=True)
    accepted_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)

    booking_request = relationship("BookingRequest", back_populates="contract_proposals")
    proposer = relationship("Profile", foreign_keys=[proposed_by])
    recipient = relationship("Profile", foreign_keys=[proposed_to])
    negotiations = relationship(
        "ContractNegotiation",
        back_populates="contract_proposal",
        order_by=lambda: (ContractNegotiation.created_at, ContractNegotiation.id),
        cascade="all, delete-orphan",
    )
    signatures = relationship(
        "ContractSignature",
        back_populates="contract_proposal",
        order_by="ContractSignature.signed_at",
        cascade="all, delete-orphan",
    )


class ContractNegotiation(BaseModel):
    """Append-only negotiation log entry."""

    __tablename__ = "contract_negotiations"

    id = Column(Integer, primary_key=True, index=True)
    contract_proposal_id = Column(
        Integer,
        ForeignKey("contract_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    proposed_changes = Column(JSON, nullable=True)

    contract_proposal = relationship("ContractProposal", back_populates="negotiations")
    profile = relationship("Profile")


class ContractSignature(BaseModel):
    __tablename__ = "contract_signatures"
    __table_args__ = (
        UniqueConstraint("contract_proposal_id", "profile_id", name="uq_contract_signature"),
    )

    id = Column(Integer, primary_key=True, index=True)
    contract_proposal_id = Column(
        Integer,
        ForeignKey("contract_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    signature_data = Column(Text, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    signed_at = Column(DateTime, nullable=False)

    contract_proposal = relationship("ContractProposal", back_populates="signatures")
    profile = relationship("Profile")
