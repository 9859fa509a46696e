from .json import dumps, dumps_bytes
from .errors import (
    error_response,
    DomainError,
    ValidationError,
    PermissionDeniedError,
    NotFoundError,
    StateError,
    NotificationDeliveryFailure,
)
from .auth import normalize_email
