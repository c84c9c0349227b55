"""Cancellation and deadline handling for reconciliations."""

from __future__ import annotations

import threading
import time

from .errors import ReconcileCancelled


class CancelToken:
    """Cooperative cancellation signal shared by one reconciliation.

    A token is cancelled either explicitly (``cancel()`` or the shared stop
    event being set, e.g. on operator shutdown) or when its monotonic deadline
    passes. Remote calls check the token before going out; backoff sleeps wait
    on it so they are interrupted promptly.
    """

    def __init__(
        self,
        stop_event: threading.Event | None = None,
        timeout: float | None = None,
    ):
        self._event = stop_event if stop_event is not None else threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.remaining() == 0.0

    def cancel(self) -> None:
        self._event.set()

    def remaining(self) -> float | None:
        """Seconds left until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self) -> None:
        """Raise ReconcileCancelled if the token is cancelled."""
        if self._event.is_set():
            raise ReconcileCancelled("reconciliation cancelled")
        if self.remaining() == 0.0:
            raise ReconcileCancelled("reconciliation deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Sleep for up to ``seconds``, raising if cancelled meanwhile."""
        remaining = self.remaining()
        if remaining is not None and seconds >= remaining:
            self._event.wait(remaining)
            self.check()
            raise ReconcileCancelled("reconciliation deadline exceeded")
        if self._event.wait(seconds):
            raise ReconcileCancelled("reconciliation cancelled")


def check_cancelled(cancel: CancelToken | None) -> None:
    """Check an optional token."""
    if cancel is not None:
        cancel.check()
