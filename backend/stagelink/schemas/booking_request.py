from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..models.booking_request import BookingRequestStatus
from .profile import ProfileSummary


def check_time(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    parts = v.split(":")
    if len(parts) < 2 or not all(p.isdigit() for p in parts[:2]):
        raise ValueError("time must be HH:MM")
    hh, mm = int(parts[0]), int(parts[1])
    if not (0 <= hh < 24 and 0 <= mm < 60):
        raise ValueError("time must be HH:MM")
    return f"{hh:02d}:{mm:02d}"


class BookingRequestCreate(BaseModel):
    venue_id: int
    event_date: Optional[date] = None
    event_time: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    requirements: Optional[str] = None
    message: Optional[str] = None

    @field_validator("event_time")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return check_time(v)


class BookingRequestStatusUpdate(BaseModel):
    status: BookingRequestStatus
    decline_message: Optional[str] = None


class BookingRequestResponse(BaseModel):
    id: int
    artist_profile_id: int
    venue_profile_id: int
    status: BookingRequestStatus
    requested_at: datetime
    event_date: Optional[date] = None
    event_time: Optional[str] = None
    budget: Optional[float] = None
    requirements: Optional[str] = None
    message: Optional[str] = None
    decline_message: Optional[str] = None
    responded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingRequestListItem(BookingRequestResponse):
    counterpart: Optional[ProfileSummary] = None
