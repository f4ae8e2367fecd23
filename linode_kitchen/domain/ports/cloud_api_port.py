"""
Cloud API Port

Architectural Intent:
- Port interface for the Linode compute API
- Abstracts HTTP mechanics; implementations raise ApiError / ApiTimeout
  carrying status, headers and body so callers can classify failures
- Implemented by LinodeApiAdapter (requests)

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- Payloads and results are plain dicts mirroring the provider's JSON
"""

from typing import Protocol, runtime_checkable, Optional, Any


@runtime_checkable
class CloudApiPort(Protocol):
    """Port for Linode instance operations."""

    async def list_instances(self, label: Optional[str] = None) -> list[dict[str, Any]]:
        """List every instance on the account, optionally filtered by exact label."""
        ...

    async def create_instance(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Submit a create request. Returns the created instance body."""
        ...

    async def get_instance(self, instance_id: int) -> dict[str, Any]:
        """Fetch a single instance. Raises ApiError with status 404 when gone."""
        ...

    async def delete_instance(self, instance_id: int) -> None:
        """Delete an instance."""
        ...

    async def list_catalog(self, kind: str) -> list[dict[str, Any]]:
        """List a provider catalog: "regions", "types", "images" or "kernels"."""
        ...
