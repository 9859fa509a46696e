from .user import UserBase, UserCreate, UserResponse, Token, TokenData
from .profile import (
    ProfileBase,
    ProfileCreate,
    ProfileResponse,
    ProfileSummary,
)
from .booking_request import (
    BookingRequestCreate,
    BookingRequestStatusUpdate,
    BookingRequestResponse,
    BookingRequestListItem,
)
from .calendar_event import (
    CalendarEventCreate,
    CalendarEventUpdate,
    CalendarEventResponse,
)
from .availability import DayStatus, DayAvailability, AvailabilityResponse
from .contract import (
    PerformerRole,
    RadiusClause,
    ContractTerms,
    PaymentTerms,
    ContractProposalCreate,
    ContractAccept,
    ContractReject,
    ContractNegotiate,
    ContractNegotiationResponse,
    ContractSignatureResponse,
    ContractProposalResponse,
    ContractProposalListItem,
    ContractProposalDetail,
    LineupAddRequest,
    LineupRemoveRequest,
    LineupReorderRequest,
    LineupResponse,
)
from .notification import NotificationResponse, UnreadCount
