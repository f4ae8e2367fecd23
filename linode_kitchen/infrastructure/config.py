"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all linode-kitchen settings
- Falls back to sensible defaults when the config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- The well-known LINODE_* variables of the original kitchen driver act as
  defaults for keys the file and LINODE_KITCHEN_* variables leave unset
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional
import dataclasses
import json
import logging
import os

from linode_kitchen.domain.exceptions import UserError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "linode-kitchen.json"


@dataclass(frozen=True)
class ApiConfig:
    """Linode API access and retry budget."""
    token: str = ""
    base_url: str = "https://api.linode.com/v4"
    timeout: int = 30
    retries: int = 5
    page_size: int = 500
    poll_interval: int = 5
    poll_tries: int = 120


@dataclass(frozen=True)
class InstanceConfig:
    """What to create."""
    region: str = "us-east"
    type: str = "g6-nanode-1"
    image: str = ""
    kernel: str = ""
    label: str = ""
    label_style: str = "suffix"
    max_label_length: int = 64
    hostname: str = ""
    tags: tuple[str, ...] = ("kitchen",)
    password: str = ""
    stackscript_id: int = 0
    stackscript_data: dict = field(default_factory=dict)
    swap_size: int = 0
    private_ip: bool = False
    authorized_users: tuple[str, ...] = ()


@dataclass(frozen=True)
class SSHConfig:
    """How to reach the instance once it is running."""
    username: str = "root"
    port: int = 22
    private_key_path: str = ""
    public_key_path: str = ""
    disable_ssh_password: bool = True
    connect_timeout: int = 30
    ready_tries: int = 30
    ready_interval: int = 5


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class LinodeKitchenConfig:
    """Root configuration for linode-kitchen."""
    api: ApiConfig = field(default_factory=ApiConfig)
    instance: InstanceConfig = field(default_factory=InstanceConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"
    log_format: str = "text"


LOG_FORMATS = ("text", "json")
_TOP_LEVEL_KEYS = ("log_level", "log_format")

# (environment variable, section, key); applied only when the key is unset
_WELL_KNOWN_ENV = (
    ("LINODE_TOKEN", "api", "token"),
    ("LINODE_PASSWORD", "instance", "password"),
    ("LINODE_REGION", "instance", "region"),
    ("LINODE_AUTH_USERS", "instance", "authorized_users"),
    ("LINODE_PRIVATE_KEY", "ssh", "private_key_path"),
)


def _env_override(data: dict, prefix: str = "LINODE_KITCHEN") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern LINODE_KITCHEN_SECTION_KEY.
    For example: LINODE_KITCHEN_API_TOKEN=..., LINODE_KITCHEN_INSTANCE_TAGS=a,b
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if section not in data:
                data[section] = {}
            data[section][field_name] = value
        elif len(parts) == 1:
            data[parts[0]] = value
    return data


def _env_defaults(data: dict, env: Mapping[str, str]) -> dict:
    for var, section, key in _WELL_KNOWN_ENV:
        value = env.get(var)
        if not value:
            continue
        section_data = data.setdefault(section, {})
        if not section_data.get(key):
            section_data[key] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    for f in dataclasses.fields(cls):
        if f.name not in filtered:
            continue
        val = filtered[f.name]

        # Convert comma-separated strings to tuples for tuple fields
        if f.type == "tuple[str, ...]":
            if isinstance(val, str):
                filtered[f.name] = tuple(v.strip() for v in val.split(",") if v.strip())
            elif isinstance(val, list):
                filtered[f.name] = tuple(val)

        # Convert string values from the environment to their field types
        elif isinstance(val, str):
            if f.type == "int":
                filtered[f.name] = int(val) if val.strip() else 0
            elif f.type == "bool":
                filtered[f.name] = val.lower() in ("true", "1", "yes")
            elif f.type == "dict":
                filtered[f.name] = json.loads(val) if val.strip() else {}

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "LINODE_KITCHEN",
) -> LinodeKitchenConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (LINODE_KITCHEN_SECTION_KEY)
    2. Config file values
    3. Well-known LINODE_* environment variables
    4. Defaults

    Args:
        path: Path to config file (JSON). Defaults to linode-kitchen.json in CWD.
        env_prefix: Environment variable prefix. Defaults to LINODE_KITCHEN.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)
    data = _env_defaults(data, os.environ)

    return LinodeKitchenConfig(
        api=_build_sub_config(ApiConfig, data.get("api", {})),
        instance=_build_sub_config(InstanceConfig, data.get("instance", {})),
        ssh=_build_sub_config(SSHConfig, data.get("ssh", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        log_level=data.get("log_level", "WARNING"),
        log_format=str(data.get("log_format", "text")).lower(),
    )


def validate_config(config: LinodeKitchenConfig) -> None:
    """Reject configurations the driver cannot work with."""
    if not config.api.token:
        raise UserError(
            "A Linode API token is required. Set api.token, "
            "LINODE_KITCHEN_API_TOKEN or LINODE_TOKEN."
        )
    if config.api.retries < 1:
        raise UserError(f"api.retries must be >= 1, got {config.api.retries}")
    if config.log_format not in LOG_FORMATS:
        raise UserError(
            f"log_format must be one of {', '.join(LOG_FORMATS)}, got {config.log_format!r}"
        )
