"""
State Repository

Architectural Intent:
- File-backed persistence for the per-instance state mapping the host hands
  to create and destroy
- One JSON document per host instance, keyed by instance name
- Writes go to a temporary file first and are moved into place, so a crash
  never leaves a half-written state file behind
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonStateRepository:
    """Stores each host instance's state as ``{state_dir}/{instance}.json``."""

    def __init__(self, state_dir: str | os.PathLike[str]) -> None:
        self.state_dir = Path(state_dir)

    def path_for(self, instance_name: str) -> Path:
        if not instance_name or "/" in instance_name or instance_name in (".", ".."):
            raise ValueError(f"Invalid instance name for state file: {instance_name!r}")
        return self.state_dir / f"{instance_name}.json"

    def load(self, instance_name: str) -> dict[str, Any]:
        """Return the stored state, or an empty mapping when none exists."""
        path = self.path_for(instance_name)
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"State file {path} does not hold a JSON object")
        return data

    def save(self, instance_name: str, state: dict[str, Any]) -> None:
        path = self.path_for(instance_name)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.state_dir, prefix=f".{instance_name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state, f, indent=2, sort_keys=True)
            os.replace(tmp, path)
        except BaseException:
            os.unlink(tmp)
            raise
        logger.debug("Saved state for %s to %s", instance_name, path)

    def delete(self, instance_name: str) -> bool:
        """Remove the state file. Returns True if it existed."""
        try:
            self.path_for(instance_name).unlink()
        except FileNotFoundError:
            return False
        return True
