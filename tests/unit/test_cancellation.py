"""Unit tests for cancellation tokens."""

from __future__ import annotations

import threading
import time

import pytest

from nginx_operator.utils.cancellation import CancelToken, check_cancelled
from nginx_operator.utils.errors import ReconcileCancelled


class TestCancelToken:
    """Test CancelToken."""

    def test_fresh_token_not_cancelled(self) -> None:
        """Test a new token without deadline passes checks."""
        token = CancelToken()

        token.check()
        assert token.cancelled is False
        assert token.remaining() is None

    def test_cancel(self) -> None:
        """Test explicit cancellation."""
        token = CancelToken()
        token.cancel()

        assert token.cancelled is True
        with pytest.raises(ReconcileCancelled):
            token.check()

    def test_shared_stop_event(self) -> None:
        """Test setting the shared stop event cancels the token."""
        stop = threading.Event()
        token = CancelToken(stop)
        stop.set()

        with pytest.raises(ReconcileCancelled):
            token.check()

    def test_deadline_exceeded(self) -> None:
        """Test an expired deadline cancels the token."""
        token = CancelToken(timeout=0)

        assert token.remaining() == 0.0
        with pytest.raises(ReconcileCancelled, match="deadline"):
            token.check()

    def test_sleep_interrupted_by_cancel(self) -> None:
        """Test sleep returns promptly once cancelled."""
        token = CancelToken()
        threading.Timer(0.05, token.cancel).start()

        start = time.monotonic()
        with pytest.raises(ReconcileCancelled):
            token.sleep(5)
        assert time.monotonic() - start < 2

    def test_sleep_past_deadline(self) -> None:
        """Test sleeping beyond the deadline raises instead of oversleeping."""
        token = CancelToken(timeout=0.05)

        with pytest.raises(ReconcileCancelled):
            token.sleep(5)

    def test_short_sleep_completes(self) -> None:
        """Test a sleep within the deadline returns normally."""
        CancelToken(timeout=5).sleep(0.01)

    def test_check_cancelled_accepts_none(self) -> None:
        """Test the optional-token helper."""
        check_cancelled(None)
        with pytest.raises(ReconcileCancelled):
            token = CancelToken()
            token.cancel()
            check_cancelled(token)
