"""
Reconnect policy for redis connections.

The initial connection attempt is made exactly once: the retry budget is
zero until the policy is armed. After that, lost connections are
re-established in the background with a capped linear backoff, without
a limit on the number of attempts.
"""

import logging
from typing import Any

from redis.asyncio.retry import Retry
from redis.backoff import AbstractBackoff

logger = logging.getLogger(__name__)

RECONNECT_STEP = 1.0
RECONNECT_CEILING = 5.0
UNBOUNDED = -1


def reconnect_delay(attempt: int, step: float = RECONNECT_STEP, ceiling: float = RECONNECT_CEILING) -> float:
    """Delay in seconds before reconnect ``attempt`` (1-based)."""
    return min(max(attempt, 0) * step, ceiling)


class CappedLinearBackoff(AbstractBackoff):
    """Linear backoff capped at ``ceiling`` seconds."""

    def __init__(self, label: str, step: float = RECONNECT_STEP, ceiling: float = RECONNECT_CEILING) -> None:
        self._label = label
        self._step = step
        self._ceiling = ceiling

    def compute(self, failures: int) -> float:
        delay = reconnect_delay(failures, self._step, self._ceiling)
        logger.warning(f'Reconnecting to store "{self._label}" (attempt {failures}) in {delay:g}s')
        return delay


class ReconnectPolicy(Retry):
    """
    Retry policy handed to the redis client.

    Shared by every pooled connection of one client, so ``arm`` affects
    all of them at once.
    """

    def __init__(self, label: str, step: float = RECONNECT_STEP, ceiling: float = RECONNECT_CEILING) -> None:
        self._label = label
        self._armed = False
        super().__init__(CappedLinearBackoff(label, step, ceiling), UNBOUNDED)

    @property
    def _retries(self) -> int:
        # Read on every failure, so disarming also ends a loop already running
        return UNBOUNDED if self._armed else 0

    @_retries.setter
    def _retries(self, value: int) -> None:
        pass

    @property
    def armed(self) -> bool:
        return self._armed

    def arm(self) -> None:
        self._armed = True

    def disarm(self) -> None:
        self._armed = False

    def __deepcopy__(self, memo: Any) -> "ReconnectPolicy":
        # redis-py copies the retry object into every connection
        return self

