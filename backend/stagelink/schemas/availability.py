import enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from .calendar_event import CalendarEventResponse


class DayStatus(str, enum.Enum):
    BOTH_UNAVAILABLE = "both-unavailable"
    ARTIST_UNAVAILABLE = "artist-unavailable"
    VENUE_UNAVAILABLE = "venue-unavailable"
    HAS_EVENTS = "has-events"
    AVAILABLE = "available"


class DayAvailability(BaseModel):
    date: str
    status: DayStatus
    artist_unavailable: bool
    venue_unavailable: bool
    events: List[CalendarEventResponse] = []


class AvailabilityResponse(BaseModel):
    month: int
    year: int
    artist_profile_id: Optional[int] = None
    venue_profile_id: Optional[int] = None
    days: Dict[str, DayAvailability]
