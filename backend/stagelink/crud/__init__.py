from . import crud_user
from . import crud_profile
from . import crud_booking_request
from . import crud_calendar_event
from . import crud_contract
from . import crud_notification
