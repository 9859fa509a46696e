import datetime as dt
from typing import Optional, Union

from pydantic import BaseModel, field_validator

from ..models.calendar_event import CalendarEventStatus, CalendarEventType
from .booking_request import check_time


class CalendarEventBase(BaseModel):
    title: str
    date: dt.date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: CalendarEventType = CalendarEventType.EVENT
    status: CalendarEventStatus = CalendarEventStatus.CONFIRMED
    client: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    budget: Optional[float] = None
    is_private: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return check_time(v)


class CalendarEventCreate(CalendarEventBase):
    pass


class CalendarEventUpdate(BaseModel):
    title: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    type: Optional[CalendarEventType] = None
    status: Optional[CalendarEventStatus] = None
    client: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    budget: Optional[float] = None
    is_private: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_time(cls, v: Optional[str]) -> Optional[str]:
        return check_time(v)


class CalendarEventResponse(CalendarEventBase):
    # Synthetic booking entries carry string ids ("booking-artist-12")
    id: Union[int, str]
    profile_id: int
    booking_request_id: Optional[int] = None
    synthetic: bool = False

    model_config = {"from_attributes": True}
