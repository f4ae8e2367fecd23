"""
Application Orchestration Package

Architectural Intent:
- Contains the classify-and-retry executor shared by create and destroy
"""

from linode_kitchen.application.orchestration.retrying import (
    RetryingExecutor,
    DEFAULT_RETRY_ON,
)

__all__ = ["RetryingExecutor", "DEFAULT_RETRY_ON"]
