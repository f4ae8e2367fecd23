"""
Post-Boot Setup Commands

Architectural Intent:
- Pure composition of the shell commands run on a freshly booted instance
- Execution is delegated to the TransportPort; nothing here touches SSH

The target distribution is unknown in advance, so restarting sshd walks a
list of known service managers until one of them succeeds.
"""

from __future__ import annotations
from dataclasses import dataclass
from linode_kitchen.domain.value_objects.provision_spec import is_valid_hostname

SSHD_CONFIG = "/etc/ssh/sshd_config"

SSHD_RESTART_COMMANDS = (
    "systemctl restart ssh",  # Ubuntu, Debian, most systemd distros
    "systemctl restart sshd",  # CentOS 7+
    "/etc/init.d/sshd restart",  # OpenRC (Gentoo, Alpine) and sysvinit
    "/etc/init.d/ssh restart",  # other OpenRC and sysvinit distros
    "/etc/rc.d/rc.sshd restart",  # Slackware
)

_QUIET = "> /dev/null 2>&1"


@dataclass(frozen=True)
class SetupStep:
    description: str
    command: str


def _checked(hostname: str) -> str:
    if not is_valid_hostname(hostname):
        raise ValueError(f"Invalid hostname: {hostname!r}")
    return hostname


def hosts_command(hostname: str) -> str:
    fqdn = _checked(hostname)
    short = fqdn.split(".")[0]
    entries = f"127.0.0.1 {fqdn} {short} localhost\n::1 {fqdn} {short} localhost"
    return (
        f"echo '{entries}' > /etc/hosts && "
        f"(hostnamectl set-hostname {fqdn} {_QUIET} || hostname {fqdn} {_QUIET})"
    )


def disable_password_auth_command() -> str:
    restart = " || ".join(f"{cmd} {_QUIET}" for cmd in SSHD_RESTART_COMMANDS)
    # Slackware's rc script does not bring sshd back without the pause
    return (
        f"sed -ri 's/^#?PasswordAuthentication .*$/PasswordAuthentication no/' {SSHD_CONFIG} && "
        f"({restart}) && sleep 1"
    )


def build_setup_sequence(hostname: str, disable_password_auth: bool) -> list[SetupStep]:
    steps = [SetupStep("Setting hostname...", hosts_command(hostname))]
    if disable_password_auth:
        steps.append(
            SetupStep("Disabling SSH password login...", disable_password_auth_command())
        )
    return steps
