"""Error hierarchy - envelopes out, typed errors back in."""

import pytest

from app.core.errors import (
    ApiUnavailableError, AuthenticationRequiredError, NotAuthorizedError,
    ResourceNotFoundError, ValidationFailedError, from_response,
)


def test_validation_error_envelope_carries_details():
    details = [{"field": "body.title", "message": "too short", "type": "string_too_short"}]
    body = ValidationFailedError("Validation failed", details).to_response()

    rebuilt = from_response(400, body)

    assert isinstance(rebuilt, ValidationFailedError)
    assert rebuilt.message == "Validation failed"
    assert rebuilt.details == details


def test_not_found_keeps_server_message():
    body = ResourceNotFoundError("Post", "abc").to_response()
    rebuilt = from_response(404, body)
    assert isinstance(rebuilt, ResourceNotFoundError)
    assert rebuilt.message == "Post 'abc' not found"


@pytest.mark.parametrize("body", [None, [], ["boom"], "Bad Gateway", 42, {"error": "x"}])
def test_unexpected_body_shapes_fall_back_to_status(body):
    rebuilt = from_response(502, body)
    assert isinstance(rebuilt, ApiUnavailableError)
    assert rebuilt.http_status == 502
    assert rebuilt.message == "Request failed with status 502"


@pytest.mark.parametrize(("status", "expected"), [
    (401, AuthenticationRequiredError),
    (403, NotAuthorizedError),
    (400, ValidationFailedError),
])
def test_list_body_still_maps_by_status(status, expected):
    rebuilt = from_response(status, [{"message": "nope"}])
    assert isinstance(rebuilt, expected)


def test_non_list_details_are_dropped():
    rebuilt = from_response(400, {"error": {"message": "Bad", "details": {"title": "x"}}})
    assert rebuilt.details == []
