import enum

from sqlalchemy import (
    Boolean,
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


class ProfileType(str, enum.Enum):
    ARTIST = "artist"
    VENUE = "venue"
    AUDIENCE = "audience"


class ProfileVisibility(str, enum.Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class MembershipRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


class MembershipStatus(str, enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    SUSPENDED = "suspended"


class Profile(BaseModel):
    """Identity an acting user books, proposes and gets notified as."""

    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    type = enum_column(ProfileType, index=True)
    name = Column(String, nullable=False)
    bio = Column(Text, nullable=True)
    location = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    visibility = enum_column(
        ProfileVisibility,
        default=ProfileVisibility.PUBLIC,
    )
    is_shared = Column(Boolean, nullable=False, default=False)

    # Soft delete; purged after the grace window
    deleted_at = Column(DateTime, nullable=True, index=True)
    deleted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    deletion_reason = Column(Text, nullable=True)

    user = relationship("User", back_populates="profiles", foreign_keys=[user_id])
    memberships = relationship(
        "ProfileMembership",
        back_populates="profile",
        cascade="all, delete-orphan",
    )
    calendar_events = relationship(
        "CalendarEvent",
        back_populates="profile",
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class ProfileMembership(BaseModel):
    """Access grant for users who manage a shared artist or venue profile."""

    __tablename__ = "profile_memberships"
    __table_args__ = (UniqueConstraint("profile_id", "user_id", name="uq_profile_membership"),)

    id = Column(Integer, primary_key=True, index=True)
    profile_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = enum_column(
        MembershipRole,
        default=MembershipRole.MEMBER,
    )
    status = enum_column(
        MembershipStatus,
        default=MembershipStatus.ACTIVE,
    )

    profile = relationship("Profile", back_populates="memberships")
    user = relationship("User", back_populates="memberships")
