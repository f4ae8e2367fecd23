"""
InstanceHandle Value Object

Architectural Intent:
- Durable record of a created Linode, persisted by the host between runs
- Lives in the host's mutable state mapping under five fixed keys
- ssh_key and password are mutually exclusive
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

ID_KEY = "linode_id"
LABEL_KEY = "linode_label"
HOSTNAME_KEY = "hostname"
SSH_KEY_KEY = "ssh_key"
PASSWORD_KEY = "password"

HANDLE_KEYS = (ID_KEY, LABEL_KEY, HOSTNAME_KEY, SSH_KEY_KEY, PASSWORD_KEY)


@dataclass(frozen=True)
class InstanceHandle:
    id: int
    label: str
    hostname: str
    ssh_key: Optional[str] = None
    password: Optional[str] = None

    def __post_init__(self) -> None:
        if self.ssh_key and self.password:
            raise ValueError("InstanceHandle takes either ssh_key or password, not both")

    @property
    def uses_key_auth(self) -> bool:
        return bool(self.ssh_key)

    def __str__(self) -> str:
        return f"<{self.id}, {self.label}>"

    def write_to(self, state: MutableMapping[str, Any]) -> None:
        state[ID_KEY] = self.id
        state[LABEL_KEY] = self.label
        state[HOSTNAME_KEY] = self.hostname
        if self.ssh_key:
            state[SSH_KEY_KEY] = self.ssh_key
            state.pop(PASSWORD_KEY, None)
        else:
            state[PASSWORD_KEY] = self.password
            state.pop(SSH_KEY_KEY, None)

    @staticmethod
    def from_state(state: MutableMapping[str, Any]) -> Optional["InstanceHandle"]:
        """Rebuild a handle from persisted state, or None when no id is stored."""
        if state.get(ID_KEY) is None:
            return None
        return InstanceHandle(
            id=int(state[ID_KEY]),
            label=state.get(LABEL_KEY, ""),
            hostname=state.get(HOSTNAME_KEY, ""),
            ssh_key=state.get(SSH_KEY_KEY),
            password=state.get(PASSWORD_KEY) if not state.get(SSH_KEY_KEY) else None,
        )


def clear_handle(state: MutableMapping[str, Any]) -> None:
    """Remove every handle key so no partial handle survives."""
    for key in HANDLE_KEYS:
        state.pop(key, None)
