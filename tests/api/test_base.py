"""Tests for api/base.py - Unified API response format."""

from datetime import timezone
from types import SimpleNamespace

from api.base import (
    ErrorCodes,
    error_response,
    request_id_of,
    success_response,
)


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"foo": "bar"})
        assert resp.success is True
        assert resp.data == {"foo": "bar"}
        assert resp.error is None

    def test_timestamp_is_utc(self):
        assert success_response({}).meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response("TEST_ERROR", "Something went wrong")
        assert resp.success is False
        assert resp.data is None
        assert resp.error.code == "TEST_ERROR"
        assert resp.error.message == "Something went wrong"
        assert resp.error.details is None

    def test_details(self):
        resp = error_response(
            ErrorCodes.INVALID_STATUS_TRANSITION, "no", details={"current": "CONVERTED"},
        )
        assert resp.error.details == {"current": "CONVERTED"}


class TestRequestId:
    """request_id_of() prefers the middleware-assigned ID."""

    def test_uses_request_state(self):
        request = SimpleNamespace(state=SimpleNamespace(request_id="abc"))
        assert request_id_of(request) == "abc"
        assert success_response({}, request).meta.request_id == "abc"

    def test_generated_without_request(self):
        assert request_id_of(None) != request_id_of(None)

    def test_generated_when_state_empty(self):
        assert request_id_of(SimpleNamespace(state=SimpleNamespace()))
