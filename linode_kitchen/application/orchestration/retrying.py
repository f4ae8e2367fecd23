"""
Retrying Executor

Architectural Intent:
- Runs a single cloud API call under an explicit RetryPolicy
- Classifies every ApiError and switches on the FailureKind tag; only
  transient and rate-limited failures are retried
- Sleeping goes through an injected coroutine so tests never wait

Design Decisions:
- One executor per orchestrator call, so concurrent creates never share
  retry settings or counters
- Exhausted or non-retryable failures surface as ApiCallFailed carrying the
  classified Failure; callers decide whether that kind is benign
"""

from __future__ import annotations
import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar
from linode_kitchen.domain.entities.retry_context import RetryContext
from linode_kitchen.domain.exceptions import ApiCallFailed, ApiError
from linode_kitchen.domain.services.backoff_policy import RetryPolicy
from linode_kitchen.domain.services.failure_classifier import classify
from linode_kitchen.domain.value_objects.failure import Failure, FailureKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_RETRY_ON = frozenset({FailureKind.TRANSIENT, FailureKind.RATE_LIMITED})


class RetryingExecutor:
    def __init__(
        self,
        policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.policy = policy
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        description: str = "API call",
        retry_on: frozenset[FailureKind] = DEFAULT_RETRY_ON,
    ) -> T:
        ctx = RetryContext(self.policy.max_tries)
        while True:
            ctx.begin_attempt()
            try:
                return await operation()
            except ApiError as exc:
                failure = classify(exc)
                ctx.record_failure(failure)
                if failure.kind not in retry_on or ctx.exhausted:
                    logger.debug(
                        "%s failed after %d attempt(s): %s", description, ctx.attempt, failure
                    )
                    raise ApiCallFailed(failure, ctx.attempt) from exc
            await self.backoff(ctx, failure)

    async def backoff(self, ctx: RetryContext, failure: Failure) -> float:
        """Sleep before the next attempt and record the delay in ctx."""
        delay = self.policy.next_delay(ctx.retry_index, failure, self._rng)
        if failure.kind is FailureKind.RATE_LIMITED:
            logger.warning(
                "Rate limit encountered, sleeping %s seconds for it to expire.", delay
            )
        logger.warning("[Attempt #%d] Retrying because [%s]", ctx.attempt, failure.kind.name)
        ctx.record_backoff(delay)
        await self._sleep(delay)
        return delay
