"""
Domain Exceptions

Architectural Intent:
- Single error taxonomy shared by ports, services and use cases
- Hosts only ever see UserError or ActionFailed from the driver surface
- ApiError carries the raw HTTP facts so the failure classifier can decide
  without importing any HTTP library
"""

from __future__ import annotations
from typing import Any, Mapping, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from linode_kitchen.domain.value_objects.failure import Failure


class LinodeKitchenError(Exception):
    """Base class for all linode-kitchen errors."""


class UserError(LinodeKitchenError):
    """Bad input the operator has to fix. Never retried."""


class NoUniqueLabelError(UserError):
    def __init__(self, prefix: str) -> None:
        super().__init__(f"Unable to generate a unique label with prefix {prefix}.")
        self.prefix = prefix


class ActionFailed(LinodeKitchenError):
    """A create or destroy action could not be completed."""


class ApiError(LinodeKitchenError):
    """
    Error returned by the cloud API port.

    status is None when no HTTP response was received.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, Any]] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.headers = dict(headers or {})
        self.body = body or ""


class ApiTimeout(ApiError):
    """The request timed out before a response was received."""


class ApiCallFailed(LinodeKitchenError):
    """An API call failed after classification (and possibly retries)."""

    def __init__(self, failure: "Failure", attempts: int = 1) -> None:
        super().__init__(failure.message)
        self.failure = failure
        self.attempts = attempts
