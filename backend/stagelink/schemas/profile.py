from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.profile import ProfileType, ProfileVisibility


class ProfileBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_image_url: Optional[str] = None
    visibility: ProfileVisibility = ProfileVisibility.PUBLIC


class ProfileCreate(ProfileBase):
    type: ProfileType


class ProfileResponse(ProfileBase):
    id: int
    user_id: Optional[int] = None
    type: ProfileType
    is_active: bool = False
    is_shared: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileSummary(BaseModel):
    """Display fields for the other side of a booking or contract."""

    id: int
    name: str
    type: ProfileType
    profile_image_url: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None

    model_config = {"from_attributes": True}
