import pytest

from zencare_api.app.api.v1.errors import http_error


@pytest.mark.parametrize(
    "message, status_code",
    [
        ("Appointment 12 not found", 404),
        ("Only the reporter can withdraw a report", 403),
        ("Not authorized to use this chat session", 403),
        ("Feedback for appointment 3 already exists", 409),
        ("Appointment must be completed before it can be rated", 400),
        ("User messages cannot be rated, only AI replies", 400),
    ],
)
def test_service_errors_map_to_status_codes(message, status_code):
    exc = http_error(ValueError(message))
    assert exc.status_code == status_code
    assert exc.detail == message
