"""
Domain Services Package

Architectural Intent:
- Contains the retry, classification, labelling and command-composition logic
- Everything here is free of HTTP and SSH mechanics
"""

from linode_kitchen.domain.services.backoff_policy import RetryPolicy
from linode_kitchen.domain.services.failure_classifier import classify
from linode_kitchen.domain.services.label_generator import (
    LabelGenerator,
    default_label_prefix,
)
from linode_kitchen.domain.services.spec_resolver import (
    SpecResolver,
    ResolvedSpec,
    build_create_payload,
)
from linode_kitchen.domain.services.setup_commands import (
    SetupStep,
    build_setup_sequence,
)

__all__ = [
    "RetryPolicy",
    "classify",
    "LabelGenerator",
    "default_label_prefix",
    "SpecResolver",
    "ResolvedSpec",
    "build_create_payload",
    "SetupStep",
    "build_setup_sequence",
]
