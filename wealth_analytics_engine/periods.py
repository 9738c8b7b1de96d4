"""Date-range helpers: period codes, month arithmetic and weekly sampling."""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional, Tuple

import pandas as pd

from wealth_analytics_engine._logging import analytics_logger
from wealth_analytics_engine.data_objects import to_date
from wealth_analytics_engine.exceptions import InvalidInputError


PERIOD_MONTHS = {
    "1M": 1,
    "3M": 3,
    "6M": 6,
    "1Y": 12,
    "3Y": 36,
    "5Y": 60,
}

DEFAULT_PERIOD = "1Y"


def add_months(d: date, months: int) -> date:
    """Calendar month shift, clamping to the last day of the target month."""
    return (pd.Timestamp(d) + pd.DateOffset(months=months)).date()


def parse_period(code: Optional[str], today: Optional[date] = None) -> Tuple[date, date]:
    """
    Translate a period code into an inclusive ``(start, end)`` date range.

    Supported codes: 1M, 3M, 6M, YTD, 1Y, 3Y, 5Y and ALL (capped at the
    configured look-back, 10 years by default). Unknown or empty codes fall
    back to 1Y.
    """
    from wealth_analytics_engine import config

    end = to_date(today) or date.today()
    key = str(code or DEFAULT_PERIOD).strip().upper()

    if key == "YTD":
        return date(end.year, 1, 1), end
    if key == "ALL":
        return add_months(end, -12 * int(config.ANALYTICS_DEFAULTS["all_period_years"])), end
    if key not in PERIOD_MONTHS:
        analytics_logger.debug("parse_period: unknown code %r, using %s", code, DEFAULT_PERIOD)
        key = DEFAULT_PERIOD
    return add_months(end, -PERIOD_MONTHS[key]), end


def weekly_sample_dates(start: date, end: date, interval_days: Optional[int] = None) -> List[date]:
    """Sampling grid ``start, start+7d, ...`` with ``end`` always included."""
    if interval_days is None:
        from wealth_analytics_engine import config

        interval_days = int(config.ANALYTICS_DEFAULTS["sampling_interval_days"])
    if interval_days <= 0:
        raise InvalidInputError("interval_days must be positive")
    start, end = to_date(start), to_date(end)
    if start is None or end is None or end < start:
        raise InvalidInputError(f"Invalid date range: {start} to {end}")

    step = timedelta(days=interval_days)
    dates = []
    current = start
    while current <= end:
        dates.append(current)
        current += step
    if dates[-1] != end:
        dates.append(end)
    return dates


def validate_range(start, end) -> Tuple[date, date]:
    start, end = to_date(start), to_date(end)
    if start is None or end is None:
        raise InvalidInputError("start and end dates are required")
    if end < start:
        raise InvalidInputError(f"end date {end} precedes start date {start}")
    return start, end
