"""Tests for the pure verification helpers."""
import httpx
import pytest

from e2e_harness.errors import HeaderMismatchError, LatencyExceededError, SchemaMismatchError, VerificationError
from e2e_harness.models import ApiResponseEnvelope
from e2e_harness.verification import verify_headers, verify_response_time, verify_schema


def _envelope(body=None, headers=None, duration=100.0, status=200):
    return ApiResponseEnvelope(
        status=status,
        headers=httpx.Headers(headers or {}),
        body=body if body is not None else {},
        duration=duration,
        method="POST",
        url="https://app.example.test/api/usersv1/login",
    )


USER_BODY = {
    "id": 1,
    "email": "user@example.com",
    "active": True,
    "profile": {"plan": "ULTIMATE"},
    "permissions": ["a", "b"],
    "score": 4.5,
}


class TestVerifySchema:
    def test_matching_schema_passes(self):
        envelope = _envelope(USER_BODY)
        schema = {
            "id": "number",
            "email": "string",
            "active": "boolean",
            "profile": "object",
            "permissions": "array",
            "score": "number",
        }
        assert verify_schema(envelope, schema) is envelope

    def test_presence_only_when_kind_is_none(self):
        verify_schema(_envelope(USER_BODY), {"profile": None, "email": None})

    def test_missing_key_names_first_offender(self):
        with pytest.raises(SchemaMismatchError) as excinfo:
            verify_schema(_envelope(USER_BODY), {"email": "string", "plan": "string", "lastname": "string"})
        assert excinfo.value.key == "plan"

    def test_wrong_kind(self):
        with pytest.raises(SchemaMismatchError, match="should be string, got number"):
            verify_schema(_envelope(USER_BODY), {"id": "string"})

    def test_boolean_is_not_a_number(self):
        with pytest.raises(SchemaMismatchError) as excinfo:
            verify_schema(_envelope(USER_BODY), {"active": "number"})
        assert excinfo.value.key == "active"

    def test_non_object_body(self):
        with pytest.raises(SchemaMismatchError, match="JSON object"):
            verify_schema(_envelope(body="<html></html>"), {"user": "object"})

    def test_unknown_kind_is_a_usage_error(self):
        with pytest.raises(ValueError):
            verify_schema(_envelope(USER_BODY), {"id": "integer"})

    def test_failures_are_assertion_errors(self):
        with pytest.raises(AssertionError):
            verify_schema(_envelope({}), {"user": "object"})


class TestVerifyHeaders:
    HEADERS = {
        "Content-Type": "application/json; charset=utf-8",
        "X-Frame-Options": "DENY",
        "Strict-Transport-Security": "max-age=31536000",
    }

    def test_presence_and_substring_match_case_insensitively(self):
        envelope = _envelope(headers=self.HEADERS)
        verify_headers(
            envelope,
            {"content-type": "application/json", "x-frame-options": None, "STRICT-TRANSPORT-SECURITY": "max-age"},
        )

    def test_missing_header(self):
        with pytest.raises(HeaderMismatchError) as excinfo:
            verify_headers(_envelope(headers=self.HEADERS), {"x-content-type-options": None})
        assert excinfo.value.header == "x-content-type-options"

    def test_value_mismatch(self):
        with pytest.raises(HeaderMismatchError, match="expected to contain 'SAMEORIGIN'"):
            verify_headers(_envelope(headers=self.HEADERS), {"X-Frame-Options": "SAMEORIGIN"})


class TestVerifyResponseTime:
    def test_fast_response_passes(self):
        verify_response_time(_envelope(duration=150), 2000)

    def test_slow_login_fails(self):
        with pytest.raises(LatencyExceededError) as excinfo:
            verify_response_time(_envelope(duration=2500), 2000)
        assert excinfo.value.duration_ms == 2500
        assert isinstance(excinfo.value, VerificationError)

    def test_bound_is_exclusive(self):
        with pytest.raises(LatencyExceededError):
            verify_response_time(_envelope(duration=2000), 2000)
