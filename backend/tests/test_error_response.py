import logging
import pytest
from fastapi import HTTPException

from stagelink.utils.errors import (
    DomainError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
    error_response,
)


def test_error_response_logs(caplog):
    caplog.set_level(logging.ERROR, logger="stagelink.utils.errors")
    with pytest.raises(HTTPException):
        raise error_response("Invalid", {"field": "bad"})
    assert any(
        "Invalid" in r.getMessage() and "'field': 'bad'" in r.getMessage()
        for r in caplog.records
    )


@pytest.mark.parametrize(
    "exc, code",
    [
        (ValidationError("bad"), 422),
        (PermissionDeniedError("no"), 403),
        (NotFoundError("gone"), 404),
        (StateError("late", current_status="accepted"), 409),
        (DomainError("generic"), 400),
    ],
)
def test_domain_errors_map_to_http(exc, code):
    http = exc.to_http()
    assert http.status_code == code
    assert http.detail["message"] == exc.message


def test_state_error_reports_current_status():
    exc = StateError("Booking request is already rejected", current_status="rejected")
    assert exc.field_errors == {"status": "rejected"}
    assert exc.current_status == "rejected"
