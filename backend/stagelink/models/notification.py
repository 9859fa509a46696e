from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from .base import BaseModel
from .types import enum_column


class NotificationType(str, enum.Enum):
    BOOKING_REQUEST = "booking_request"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_DECLINED = "booking_declined"
    CONTRACT_PROPOSED = "contract_proposed"
    CONTRACT_ACCEPTED = "contract_accepted"
    CONTRACT_REJECTED = "contract_rejected"
    CONTRACT_NEGOTIATION = "contract_negotiation"
    CONTRACT_EXPIRED = "contract_expired"
    PROFILE_DELETED = "profile_deleted"


class Notification(BaseModel):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Recipient profile; null for account-level notices
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True, index=True)
    type = enum_column(NotificationType)
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    link = Column(String, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False)
    timestamp = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", backref="notifications")
