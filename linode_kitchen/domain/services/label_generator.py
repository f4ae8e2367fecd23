"""
Label Generator

Architectural Intent:
- Produces a label that no instance on the account currently uses
- Re-checks the live listing for every candidate because many CI jobs may
  share the account; local uniqueness means nothing
- Suffix order is a random permutation drawn from an injected rng, so two
  jobs started at the same instant do not walk the same sequence

Label shapes:
- suffix style:    {prefix}_{NNN}, NNN from a shuffled 000..999
- timestamp style: {prefix}-{YYYYmmddHHMMSS}
The prefix is truncated first so the full candidate always fits max_length.
"""

from __future__ import annotations
import logging
import random
from datetime import datetime, UTC
from typing import Awaitable, Callable, Optional
from linode_kitchen.domain.exceptions import NoUniqueLabelError

logger = logging.getLogger(__name__)

SUFFIX_SPACE = 1000
SUFFIX_WIDTH = 3
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

ListExisting = Callable[[], Awaitable[set[str]]]


def sanitize_prefix(prefix: str) -> str:
    return prefix.replace(" ", "_").replace("/", "_")


def clamp_prefix(prefix: str, max_length: int, reserved: int) -> str:
    """Truncate prefix so that prefix + reserved characters fit max_length."""
    room = max_length - reserved
    if room < 1:
        raise ValueError(f"max_length {max_length} leaves no room for a prefix")
    return prefix[:room]


def default_label_prefix(job_name: str, instance_name: str) -> str:
    return sanitize_prefix(f"kitchen-{job_name}-{instance_name}")


class LabelGenerator:
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        max_length: int = 64,
    ) -> None:
        self._rng = rng or random.Random()
        self.max_length = max_length

    def candidates(self, prefix: str) -> list[str]:
        """All suffix-style candidates for prefix, in shuffled order."""
        prefix = clamp_prefix(sanitize_prefix(prefix), self.max_length, SUFFIX_WIDTH + 1)
        suffixes = list(range(SUFFIX_SPACE))
        self._rng.shuffle(suffixes)
        return [f"{prefix}_{suffix:0{SUFFIX_WIDTH}d}" for suffix in suffixes]

    async def generate(
        self,
        prefix: str,
        list_existing: ListExisting,
        max_attempts: int = SUFFIX_SPACE,
    ) -> str:
        for label in self.candidates(prefix)[:max_attempts]:
            existing = await list_existing()
            if label not in existing:
                logger.debug("Label %s is free", label)
                return label
            logger.debug("Label %s already in use", label)

        self._report_exhausted(prefix)
        raise NoUniqueLabelError(prefix)

    async def generate_timestamped(
        self,
        prefix: str,
        list_existing: ListExisting,
        now: Optional[datetime] = None,
    ) -> str:
        stamp = (now or datetime.now(UTC)).strftime(TIMESTAMP_FORMAT)
        prefix = clamp_prefix(sanitize_prefix(prefix), self.max_length, len(stamp) + 1)
        label = f"{prefix}-{stamp}"
        if label in await list_existing():
            self._report_exhausted(prefix)
            raise NoUniqueLabelError(prefix)
        return label

    @staticmethod
    def _report_exhausted(prefix: str) -> None:
        logger.error("Unable to generate a unique label with prefix %s.", prefix)
        logger.error("Might need to cleanup your account.")
