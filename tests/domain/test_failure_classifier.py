"""Tests for the failure classifier."""

import json
from linode_kitchen.domain.exceptions import ApiError, ApiTimeout
from linode_kitchen.domain.services.failure_classifier import (
    classify,
    decode_errors,
    parse_retry_after,
)
from linode_kitchen.domain.value_objects.failure import FailureKind


def _error(status, body="", headers=None):
    return ApiError(f"HTTP {status}", status=status, headers=headers, body=body)


class TestClassify:
    def test_timeout_is_transient(self):
        failure = classify(ApiTimeout("read timed out"))
        assert failure.kind is FailureKind.TRANSIENT
        assert failure.retryable

    def test_408_is_transient(self):
        assert classify(_error(408)).kind is FailureKind.TRANSIENT

    def test_429_is_rate_limited_with_retry_after(self):
        failure = classify(_error(429, headers={"Retry-After": "17"}))
        assert failure.kind is FailureKind.RATE_LIMITED
        assert failure.retry_after == 17

    def test_429_without_header_defaults_to_zero(self):
        assert classify(_error(429)).retry_after == 0

    def test_label_conflict(self):
        body = json.dumps({"errors": [{"field": "label", "reason": "Label must be unique among your linodes"}]})
        failure = classify(_error(400, body))
        assert failure.kind is FailureKind.LABEL_CONFLICT
        assert failure.retryable

    def test_bad_request_is_user_error_with_errors(self):
        body = json.dumps({"errors": [{"field": "region", "reason": "region is not valid"}]})
        failure = classify(_error(400, body))
        assert failure.kind is FailureKind.USER_ERROR
        assert not failure.retryable
        assert failure.errors == ({"field": "region", "reason": "region is not valid"},)

    def test_bad_request_undecodable_body(self):
        failure = classify(_error(400, "<html>oops</html>"))
        assert failure.kind is FailureKind.USER_ERROR
        assert failure.errors is None

    def test_404_is_not_found(self):
        assert classify(_error(404)).kind is FailureKind.NOT_FOUND

    def test_500_is_unknown(self):
        failure = classify(_error(500, "boom"))
        assert failure.kind is FailureKind.UNKNOWN
        assert not failure.retryable

    def test_non_api_error_is_unknown(self):
        failure = classify(RuntimeError("bad"))
        assert failure.kind is FailureKind.UNKNOWN
        assert "RuntimeError" in failure.message

    def test_connection_error_without_status_is_unknown(self):
        assert classify(ApiError("connection refused")).kind is FailureKind.UNKNOWN

    def test_str_names_kind(self):
        assert str(classify(_error(404))).startswith("NOT_FOUND")


class TestHelpers:
    def test_retry_after_case_insensitive(self):
        assert parse_retry_after({"retry-after": "5"}) == 5

    def test_retry_after_non_numeric(self):
        assert parse_retry_after({"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}) == 0

    def test_retry_after_negative_clamped(self):
        assert parse_retry_after({"Retry-After": "-3"}) == 0

    def test_decode_errors_missing_key(self):
        assert decode_errors(json.dumps({"detail": "x"})) is None

    def test_decode_errors_multiple(self):
        body = json.dumps({"errors": [{"field": "a", "reason": "x"}, {"reason": "y"}]})
        assert decode_errors(body) == ({"field": "a", "reason": "x"}, {"reason": "y"})
