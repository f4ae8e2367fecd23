"""
Failure Classifier

Architectural Intent:
- Maps a provider error into a tagged Failure
- Pure function of the error; knows HTTP status codes but no HTTP library
- Decodes the structured error list of 400 responses so the orchestrator can
  surface every field/reason pair to the operator

Classification:
- ApiTimeout, HTTP 408          -> TRANSIENT
- HTTP 429                      -> RATE_LIMITED (Retry-After hint, default 0)
- HTTP 400 "label must be unique" -> LABEL_CONFLICT
- other HTTP 400                -> USER_ERROR
- HTTP 404                      -> NOT_FOUND
- anything else                 -> UNKNOWN
"""

from __future__ import annotations
import json
import logging
from typing import Any, Mapping, Optional
from linode_kitchen.domain.exceptions import ApiError, ApiTimeout
from linode_kitchen.domain.value_objects.failure import Failure, FailureKind

logger = logging.getLogger(__name__)

LABEL_CONFLICT_MARKER = "label must be unique"


def _header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value)
    return None


def parse_retry_after(headers: Mapping[str, Any]) -> int:
    raw = _header(headers, "Retry-After")
    if raw is None:
        return 0
    try:
        return max(int(raw.strip()), 0)
    except ValueError:
        logger.debug("Ignoring non-numeric Retry-After header: %r", raw)
        return 0


def decode_errors(body: str) -> Optional[tuple[dict[str, str], ...]]:
    """Decode {"errors": [{"field": ..., "reason": ...}]}. None when undecodable."""
    try:
        payload = json.loads(body)
        entries = payload["errors"]
        return tuple(
            {str(key): str(value) for key, value in entry.items()} for entry in entries
        )
    except (ValueError, TypeError, KeyError, AttributeError):
        return None


def classify(error: BaseException) -> Failure:
    if isinstance(error, ApiTimeout):
        return Failure(FailureKind.TRANSIENT, str(error) or "request timed out", cause=error)

    if not isinstance(error, ApiError):
        return Failure(FailureKind.UNKNOWN, f"{type(error).__name__}: {error}", cause=error)

    status = error.status
    if status == 408:
        return Failure(FailureKind.TRANSIENT, "request timeout (408)", cause=error)

    if status == 429:
        return Failure(
            FailureKind.RATE_LIMITED,
            "too many requests (429)",
            retry_after=parse_retry_after(error.headers),
            cause=error,
        )

    if status == 400:
        if LABEL_CONFLICT_MARKER in error.body.lower():
            return Failure(FailureKind.LABEL_CONFLICT, "label must be unique", cause=error)
        return Failure(
            FailureKind.USER_ERROR,
            "bad request (400)",
            errors=decode_errors(error.body),
            cause=error,
        )

    if status == 404:
        return Failure(FailureKind.NOT_FOUND, "not found (404)", cause=error)

    return Failure(FailureKind.UNKNOWN, str(error), cause=error)
