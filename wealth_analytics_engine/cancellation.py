"""Cooperative cancellation for long-running calculations."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from wealth_analytics_engine.exceptions import CalculationCancelled


class CancellationToken:
    """
    Shared flag checked at loop boundaries (each sampled week, holding or
    account). ``check()`` raises ``CalculationCancelled`` once ``cancel()`` has
    been called or the optional deadline has passed.

    Example:
        token = CancellationToken(timeout_seconds=5)
        engine.analyze("acct-1", start, end, cancel_token=token)
    """

    def __init__(self, timeout_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self._event = threading.Event()
        self._clock = clock
        self._deadline = clock() + timeout_seconds if timeout_seconds is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and self._clock() >= self._deadline:
            self._event.set()
            return True
        return False

    def check(self, where: str = "") -> None:
        if self.cancelled:
            raise CalculationCancelled(f"Calculation cancelled{' during ' + where if where else ''}")


def check_cancelled(token: Optional[CancellationToken], where: str = "") -> None:
    """No-op when no token was supplied."""
    if token is not None:
        token.check(where)
