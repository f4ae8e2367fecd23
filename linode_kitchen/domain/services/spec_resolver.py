"""
Spec Resolver

Architectural Intent:
- Turns the symbolic names of a ProvisionSpec into concrete provider ids
- Builds the create-request payload sent to POST /linode/instances

Matching order for each catalog entry: exact id, case-insensitive label,
then the last path segment of the id ("linode/debian12" matches "debian12").
Any name that matches nothing is a UserError naming the field.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence
from linode_kitchen.domain.exceptions import UserError
from linode_kitchen.domain.value_objects.provision_spec import ProvisionSpec

logger = logging.getLogger(__name__)

FetchCatalog = Callable[[str], Awaitable[list[dict[str, Any]]]]


@dataclass(frozen=True)
class ResolvedSpec:
    region: str
    instance_type: str
    image: str
    kernel: Optional[str] = None


def match_catalog_entry(entries: list[dict[str, Any]], wanted: str) -> Optional[str]:
    wanted_lower = wanted.lower()
    for entry in entries:
        if str(entry.get("id")) == wanted:
            return str(entry["id"])
    for entry in entries:
        if str(entry.get("label", "")).lower() == wanted_lower:
            return str(entry["id"])
    for entry in entries:
        if str(entry.get("id", "")).rsplit("/", 1)[-1].lower() == wanted_lower:
            return str(entry["id"])
    return None


class SpecResolver:
    def __init__(self, fetch_catalog: FetchCatalog) -> None:
        self._fetch_catalog = fetch_catalog

    async def _resolve(self, field_name: str, kind: str, wanted: str) -> str:
        entries = await self._fetch_catalog(kind)
        resolved = match_catalog_entry(entries, wanted)
        if resolved is None:
            logger.error("No match for %s: %s", field_name, wanted)
            raise UserError(f"No match for {field_name}: {wanted}")
        logger.debug("Resolved %s %r to %s", field_name, wanted, resolved)
        return resolved

    async def resolve(self, spec: ProvisionSpec) -> ResolvedSpec:
        region = await self._resolve("region", "regions", spec.region)
        instance_type = await self._resolve("type", "types", spec.instance_type)
        image = await self._resolve("image", "images", spec.image)
        kernel = None
        if spec.kernel:
            kernel = await self._resolve("kernel", "kernels", spec.kernel)
        return ResolvedSpec(region=region, instance_type=instance_type, image=image, kernel=kernel)


def build_create_payload(
    spec: ProvisionSpec,
    resolved: ResolvedSpec,
    label: str,
    extra_tags: Sequence[str] = (),
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "region": resolved.region,
        "type": resolved.instance_type,
        "image": resolved.image,
        "label": label,
        "tags": [*spec.tags, *extra_tags],
        "root_pass": spec.root_password,
        "authorized_keys": [spec.authorized_key] if spec.authorized_key else [],
        "authorized_users": list(spec.authorized_users),
    }
    if spec.stackscript_id is not None:
        payload["stackscript_id"] = spec.stackscript_id
        if spec.stackscript_data:
            payload["stackscript_data"] = dict(spec.stackscript_data)
    if spec.swap_size is not None:
        payload["swap_size"] = spec.swap_size
    if spec.private_ip:
        payload["private_ip"] = True
    return payload
