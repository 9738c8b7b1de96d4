"""Shared helpers for result object serialization and formatting."""

from __future__ import annotations

import math
import sys
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from wealth_analytics_engine._vendor import make_json_safe


def _round(value: Optional[float], places: int = 2) -> Optional[float]:
    """Round finite floats; ``None`` and non-finite values pass through as ``None``."""
    if value is None:
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return round(value, places)


def _sentinel_safe(value: Any) -> Any:
    """Map the "never pays off" sentinels to ``None`` for API payloads."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value == sys.maxsize:
        return None
    if isinstance(value, float) and value == sys.float_info.max:
        return None
    if isinstance(value, date) and value == date.max:
        return None
    return value


def _records(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [make_json_safe(item) for item in items]


def _api_payload(obj: Any, **extra: Any) -> Dict[str, Any]:
    """Dataclass → JSON-safe dict, with ``extra`` keys merged on top."""
    payload = make_json_safe(obj)
    payload.update(make_json_safe(extra))
    return payload
