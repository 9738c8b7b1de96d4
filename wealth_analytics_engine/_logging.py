"""Logging helpers for wealth_analytics_engine.

All engine logging goes through the ``wealth_analytics_engine`` logger. Entry
points are wrapped with the decorators below; data-quality conditions (ledger
reconciliation gaps, missing prices) are reported through
``log_data_quality`` rather than raised.
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable


analytics_logger = logging.getLogger("wealth_analytics_engine")

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


def log_operation(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log start/finish of a named engine operation at DEBUG level."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            analytics_logger.debug("[%s] started", name)
            result = fn(*args, **kwargs)
            analytics_logger.debug("[%s] completed", name)
            return result

        return wrapper

    return deco


def log_timing(threshold: float = 0.0) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Warn when the wrapped call takes longer than ``threshold`` seconds."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - t0
                if threshold and elapsed > threshold:
                    analytics_logger.warning(
                        "slow_operation: %s took %.3fs (threshold %.1fs)",
                        fn.__qualname__,
                        elapsed,
                        threshold,
                    )

        return wrapper

    return deco


def log_errors(severity: str = "medium") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log any exception escaping the wrapped call, then re-raise it."""
    level = _SEVERITY_LEVELS.get(severity, logging.WARNING)

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                analytics_logger.log(
                    level,
                    "%s failed (%s): %s",
                    fn.__qualname__,
                    type(exc).__name__,
                    exc,
                )
                raise

        return wrapper

    return deco


def log_data_quality(event: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Record a recoverable data-quality condition and return the logged payload."""
    if details:
        analytics_logger.warning("[data_quality:%s] %s", event, details)
    else:
        analytics_logger.warning("[data_quality:%s]", event)
    return {"event": event, "details": details or {}}


def log_critical_alert(alert_type: str, severity: str, details: dict[str, Any] | None = None) -> None:
    level = _SEVERITY_LEVELS.get(severity, logging.WARNING)
    analytics_logger.log(level, "critical_alert: %s %s", alert_type, details or {})
