"""Bounded thread fan-out for independent per-symbol / per-account work."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Hashable, Iterable, Optional, TypeVar

from wealth_analytics_engine.cancellation import CancellationToken, check_cancelled

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


def fan_out(
    fn: Callable[[K], V],
    keys: Iterable[K],
    max_workers: Optional[int] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> Dict[K, V]:
    """
    Run ``fn(key)`` for every key on a bounded ``ThreadPoolExecutor``.

    Returns ``{key: result}`` in input-key order. The first exception raised by
    a worker propagates after pending work is cancelled; so does
    ``CalculationCancelled`` when the token fires between completions.
    """
    from wealth_analytics_engine import config

    keys = list(dict.fromkeys(keys))
    if not keys:
        return {}
    if max_workers is None:
        max_workers = int(config.ANALYTICS_DEFAULTS["max_workers"])
    max_workers = max(1, min(max_workers, len(keys)))

    check_cancelled(cancel_token, "fan_out")
    results: Dict[K, V] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        futures = {ex.submit(fn, key): key for key in keys}
        try:
            for fut in as_completed(futures):
                results[futures[fut]] = fut.result()
                check_cancelled(cancel_token, "fan_out")
        except BaseException:
            for fut in futures:
                fut.cancel()
            raise
    return {key: results[key] for key in keys}
