"""Bounded exponential backoff for optimistic-concurrency conflicts."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .. import metrics
from .cancellation import CancelToken, check_cancelled
from .errors import ConflictError

_T = TypeVar("_T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Backoff:
    """Exponential backoff curve.

    Attributes:
        steps: Maximum number of attempts, including the first one
        initial_delay: Delay before the second attempt, in seconds
        factor: Multiplier applied to the delay after every attempt
        max_delay: Upper bound for a single delay, in seconds
        jitter: Fraction of the delay added at random (0 disables jitter)
    """

    steps: int = 10
    initial_delay: float = 0.01
    factor: float = 2.0
    max_delay: float = 1.0
    jitter: float = 0.1

    def __post_init__(self) -> None:
        if self.steps < 1:
            raise ValueError("backoff steps must be at least 1")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ValueError("backoff delays must not be negative")
        if self.factor < 1.0:
            raise ValueError("backoff factor must be at least 1.0")

    def delay_for(self, retry: int) -> float:
        """Delay before retry number ``retry`` (1-based), without jitter."""
        delay = self.initial_delay * (self.factor ** (retry - 1))
        return min(delay, self.max_delay)

    def jittered(self, delay: float) -> float:
        if self.jitter <= 0:
            return delay
        return delay + random.uniform(0, delay * self.jitter)


DEFAULT_BACKOFF = Backoff()


def retry_on_conflict(
    backoff: Backoff,
    fn: Callable[[], _T],
    sleep: Callable[[float], None] | None = None,
    cancel: CancelToken | None = None,
) -> _T:
    """Run ``fn`` until it stops raising ConflictError.

    Any other exception propagates immediately. When the attempt budget is
    exhausted the last ConflictError is raised.

    Args:
        backoff: Backoff curve and attempt budget
        fn: Operation to run; it must re-read state on every call
        sleep: Sleep function, injectable for tests
        cancel: Optional cancellation token, checked before every attempt

    Returns:
        Whatever ``fn`` returns on success
    """
    retry = 0
    while True:
        check_cancelled(cancel)
        try:
            return fn()
        except ConflictError as e:
            retry += 1
            if retry >= backoff.steps:
                logger.debug("Conflict retry budget of %d attempts exhausted", backoff.steps)
                raise
            delay = backoff.jittered(backoff.delay_for(retry))
            metrics.conflict_retries_total.inc()
            logger.debug("Conflict on attempt %d, retrying in %.3fs: %s", retry, delay, e)
            if sleep is not None:
                sleep(delay)
            elif cancel is not None:
                cancel.sleep(delay)
            else:
                time.sleep(delay)
