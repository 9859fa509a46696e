import enum

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import enum_column


class BookingRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class BookingRequest(BaseModel):
    """Inquiry from an artist profile to a venue profile."""

    __tablename__ = "booking_requests"

    id = Column(Integer, primary_key=True, index=True)
    artist_profile_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    venue_profile_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = enum_column(
        BookingRequestStatus,
        default=BookingRequestStatus.PENDING,
        index=True,
    )
    requested_at = Column(DateTime, nullable=False)
    event_date = Column(Date, nullable=True, index=True)
    event_time = Column(String, nullable=True)
    budget = Column(Float, nullable=True)
    requirements = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    decline_message = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)

    artist_profile = relationship("Profile", foreign_keys=[artist_profile_id])
    venue_profile = relationship("Profile", foreign_keys=[venue_profile_id])
    contract_proposals = relationship(
        "ContractProposal",
        back_populates="booking_request",
        cascade="all, delete-orphan",
    )
