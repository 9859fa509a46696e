from .user import User
from .profile import (
    Profile,
    ProfileType,
    ProfileVisibility,
    ProfileMembership,
    MembershipRole,
    MembershipStatus,
)
from .booking_request import BookingRequest, BookingRequestStatus
from .calendar_event import CalendarEvent, CalendarEventType, CalendarEventStatus
from .contract import (
    ContractProposal,
    ContractNegotiation,
    ContractSignature,
    ContractStatus,
    OPEN_CONTRACT_STATUSES,
)
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "Profile",
    "ProfileType",
    "ProfileVisibility",
    "ProfileMembership",
    "MembershipRole",
    "MembershipStatus",
    "BookingRequest",
    "BookingRequestStatus",
    "CalendarEvent",
    "CalendarEventType",
    "CalendarEventStatus",
    "ContractProposal",
    "ContractNegotiation",
    "ContractSignature",
    "ContractStatus",
    "OPEN_CONTRACT_STATUSES",
    "Notification",
    "NotificationType",
]
