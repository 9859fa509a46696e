from typing import Dict, Optional
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


def error_response(
    message: str,
    field_errors: Dict[str, str],
    code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
) -> HTTPException:
    """Return an HTTPException with a consistent structure and log details."""
    logger.error("%s %s", message, field_errors)
    detail = {"message": message, "field_errors": field_errors}
    return HTTPException(status_code=code, detail=detail)


class DomainError(Exception):
    """Base class for failures raised by the booking and contract services.

    Carries the same ``message``/``field_errors`` pair that ``error_response``
    renders so the HTTP layer can translate any subclass without special cases.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field_errors: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors or {})

    def to_http(self) -> HTTPException:
        return error_response(self.message, self.field_errors, self.status_code)


class ValidationError(DomainError):
    """Malformed or missing input, or the wrong profile type for the action."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PermissionDeniedError(DomainError):
    """The acting profile is not allowed to perform the mutation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class StateError(DomainError):
    """Transition attempted from a status that does not allow it.

    ``current_status`` is reported back so clients can resync.
    """

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
    ):
        errors = dict(field_errors or {})
        if current_status is not None:
            errors.setdefault("status", current_status)
        super().__init__(message, errors)
        self.current_status = current_status


class NotificationDeliveryFailure(Exception):
    """A notification could not be persisted. Never surfaced to API callers."""
