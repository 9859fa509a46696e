import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import enum_column


class CalendarEventType(str, enum.Enum):
    BOOKING = "booking"
    EVENT = "event"
    REHEARSAL = "rehearsal"
    MEETING = "meeting"
    UNAVAILABLE = "unavailable"


class CalendarEventStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class CalendarEvent(BaseModel):
    """Occupancy entry for a profile. Overlaps are allowed."""

    __tablename__ = "calendar_events"

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(
        Integer,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String, nullable=False)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String, nullable=True)
    end_time = Column(String, nullable=True)
    type = enum_column(
        CalendarEventType,
        default=CalendarEventType.EVENT,
    )
    status = enum_column(
        CalendarEventStatus,
        default=CalendarEventStatus.CONFIRMED,
    )
    client = Column(String, nullable=True)
    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    budget = Column(Float, nullable=True)
    is_private = Column(Boolean, nullable=False, default=False)

    profile = relationship("Profile", back_populates="calendar_events")
