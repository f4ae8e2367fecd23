"""
Host-Applied Defaults

Architectural Intent:
- Resolves every optional configuration value into a complete ProvisionSpec
  before the create use case runs
- The only place that looks at the environment, the filesystem and the host
  instance identity on behalf of the core
"""

from __future__ import annotations
import logging
import os
import uuid
from pathlib import Path
from typing import Mapping, Optional, Sequence

from linode_kitchen.domain.exceptions import UserError
from linode_kitchen.domain.services.label_generator import default_label_prefix
from linode_kitchen.domain.value_objects.host_instance import HostInstance
from linode_kitchen.domain.value_objects.provision_spec import ProvisionSpec
from linode_kitchen.infrastructure.config import LinodeKitchenConfig

logger = logging.getLogger(__name__)

DEFAULT_PRIVATE_KEYS = (
    "~/.ssh/id_rsa",
    "~/.ssh/id_dsa",
    "~/.ssh/identity",
    "~/.ssh/id_ecdsa",
)


def _expand(path: str) -> str:
    return str(Path(path).expanduser().resolve())


def job_name(env: Mapping[str, str], kitchen_root: Optional[str] = None) -> str:
    if env.get("JOB_NAME"):
        return env["JOB_NAME"]
    if env.get("GITHUB_JOB"):
        return env["GITHUB_JOB"]
    if kitchen_root:
        return Path(kitchen_root).name or "job"
    return "job"


def find_private_key(
    configured: str, candidates: Sequence[str] = DEFAULT_PRIVATE_KEYS
) -> Optional[str]:
    if configured:
        return _expand(configured)
    for candidate in candidates:
        path = Path(candidate).expanduser()
        if path.exists():
            return str(path.resolve())
    return None


def find_public_key(configured: str, private_key_path: Optional[str]) -> Optional[str]:
    if configured:
        return _expand(configured)
    if private_key_path and Path(f"{private_key_path}.pub").exists():
        return f"{private_key_path}.pub"
    return None


def build_provision_spec(
    config: LinodeKitchenConfig,
    instance: HostInstance,
    env: Optional[Mapping[str, str]] = None,
    kitchen_root: Optional[str] = None,
    key_candidates: Sequence[str] = DEFAULT_PRIVATE_KEYS,
) -> ProvisionSpec:
    env = os.environ if env is None else env
    inst = config.instance

    hostname = inst.hostname or inst.label or instance.name
    label_prefix = inst.label or default_label_prefix(job_name(env, kitchen_root), instance.name)

    private_key = find_private_key(config.ssh.private_key_path, key_candidates)
    public_key = find_public_key(config.ssh.public_key_path, private_key)
    authorized_key = None
    if public_key:
        try:
            authorized_key = Path(public_key).read_text().strip()
        except OSError as exc:
            raise UserError(f"Cannot read public key {public_key}: {exc}") from exc
    else:
        logger.debug("No public key found; falling back to password auth")

    try:
        return ProvisionSpec(
            region=inst.region,
            instance_type=inst.type,
            image=inst.image or instance.platform_name,
            kernel=inst.kernel or None,
            label_prefix=label_prefix,
            hostname=hostname,
            root_password=inst.password or str(uuid.uuid4()),
            tags=tuple(inst.tags),
            authorized_key=authorized_key,
            authorized_users=tuple(inst.authorized_users),
            swap_size=inst.swap_size or None,
            private_ip=inst.private_ip,
            stackscript_id=inst.stackscript_id or None,
            stackscript_data=dict(inst.stackscript_data) or None,
            api_retries=config.api.retries,
            private_key_path=private_key if authorized_key else None,
            disable_ssh_password=config.ssh.disable_ssh_password,
            label_style=inst.label_style,
            max_label_length=inst.max_label_length,
        )
    except ValueError as exc:
        raise UserError(f"Invalid instance configuration: {exc}") from exc
