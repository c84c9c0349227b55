"""Client-side rate limiting for Kubernetes API calls."""

from __future__ import annotations

import threading
import time
from typing import Callable


class RateLimiter:
    """Spaces calls at least ``1 / per_second`` seconds apart.

    Shared by every worker thread of the operator, so access to the last
    call time is serialized.
    """

    def __init__(
        self,
        per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if per_second <= 0:
            raise ValueError("rate limit must be positive")
        self.min_interval = 1.0 / per_second
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: float | None = None

    def wait(self) -> float:
        """Block until the next call is allowed.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            now = self._clock()
            waited = 0.0
            if self._last_call is not None:
                since_last = now - self._last_call
                if since_last < self.min_interval:
                    waited = self.min_interval - since_last
                    self._sleep(waited)
            self._last_call = self._clock()
            return waited
