from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    id         = Column(Integer, primary_key=True, index=True)
    email      = Column(String, unique=True, index=True, nullable=False)
    password   = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name  = Column(String, nullable=False)
    is_active  = Column(Boolean, default=True)
    # Profile the user currently acts as (owned or shared via membership)
    active_profile_id = Column(Integer, nullable=True)

    # Profiles this user owns directly (shared profiles are reached via memberships)
    profiles = relationship(
        "Profile",
        back_populates="user",
        foreign_keys="Profile.user_id",
    )
    memberships = relationship(
        "ProfileMembership",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
