"""
ProvisionSpec Value Object

Architectural Intent:
- Immutable, typed description of the instance to create
- Built once per create call by the host-defaults step; the core never reads
  raw configuration or environment variables
- Validation happens in __post_init__ so an invalid spec never reaches the API
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Optional

LABEL_STYLES = ("suffix", "timestamp")

# hostnames are interpolated into shell commands
_HOSTNAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def is_valid_hostname(hostname: str) -> bool:
    return bool(hostname) and len(hostname) <= 253 and bool(_HOSTNAME_RE.match(hostname))


@dataclass(frozen=True)
class ProvisionSpec:
    region: str
    instance_type: str
    image: str
    label_prefix: str
    hostname: str
    root_password: str
    kernel: Optional[str] = None
    tags: tuple[str, ...] = ("kitchen",)
    authorized_key: Optional[str] = None
    authorized_users: tuple[str, ...] = ()
    swap_size: Optional[int] = None
    private_ip: bool = False
    stackscript_id: Optional[int] = None
    stackscript_data: Optional[dict[str, Any]] = field(default=None, hash=False)
    api_retries: int = 5
    private_key_path: Optional[str] = None
    disable_ssh_password: bool = True
    label_style: str = "suffix"
    max_label_length: int = 64

    def __post_init__(self) -> None:
        for name in ("region", "instance_type", "image", "label_prefix"):
            if not getattr(self, name):
                raise ValueError(f"{name} cannot be empty")
        if not self.root_password:
            raise ValueError("root_password cannot be empty")
        if self.api_retries < 1:
            raise ValueError(f"api_retries must be >= 1, got {self.api_retries}")
        if self.label_style not in LABEL_STYLES:
            raise ValueError(
                f"label_style must be one of {LABEL_STYLES}, got {self.label_style!r}"
            )
        if self.max_label_length < 8:
            raise ValueError(
                f"max_label_length must be >= 8, got {self.max_label_length}"
            )
        if not is_valid_hostname(self.hostname):
            raise ValueError(f"Invalid hostname: {self.hostname!r}")

    @property
    def has_key_pair(self) -> bool:
        return bool(self.private_key_path and self.authorized_key)

    @property
    def disables_password_auth(self) -> bool:
        return self.has_key_pair and self.disable_ssh_password
