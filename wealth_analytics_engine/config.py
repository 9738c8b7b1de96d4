"""Standalone-safe configuration surface for wealth_analytics_engine.

Values are resolved from environment variables first, then overlaid with the
matching names from the project ``settings`` module when it is importable.
Engines read these dicts at call time, so ``configure()`` takes effect for
subsequent computations.
"""

from __future__ import annotations

import os
from typing import Any


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


_DEFAULTS: dict[str, Any] = {
    "ANALYTICS_DEFAULTS": {
        # 10-year Treasury yield used as the Sharpe reference rate (decimal)
        "risk_free_rate": _env_float("ANALYTICS_RISK_FREE_RATE", 0.043),
        "market_proxy": os.getenv("ANALYTICS_MARKET_PROXY", "SPY"),
        "benchmarks": {
            "SPY": "S&P 500",
            "QQQ": "Nasdaq 100",
            "IWM": "Russell 2000",
            "VTI": "Total Market",
        },
        "sampling_interval_days": _env_int("ANALYTICS_SAMPLING_INTERVAL_DAYS", 7),
        "periods_per_year": _env_int("ANALYTICS_PERIODS_PER_YEAR", 52),
        "rolling_window_days": _env_int("ANALYTICS_ROLLING_WINDOW_DAYS", 30),
        "rolling_step_days": _env_int("ANALYTICS_ROLLING_STEP_DAYS", 7),
        "max_correlation_holdings": _env_int("ANALYTICS_MAX_CORRELATION_HOLDINGS", 10),
        "max_workers": _env_int("ANALYTICS_MAX_WORKERS", 8),
        "all_period_years": _env_int("ANALYTICS_ALL_PERIOD_YEARS", 10),
    },
    "DATA_QUALITY_THRESHOLDS": {
        "reconciliation_tolerance": _env_float("LEDGER_RECONCILIATION_TOLERANCE", 0.05),
        "min_observations_for_volatility": 2,
        "min_observations_for_beta": 2,
        "min_observations_for_correlation": 2,
        "quantity_epsilon": 1e-9,
    },
    "IRR_SOLVER": {
        "initial_guess": 0.10,
        "max_iterations": 100,
        "tolerance": 1e-4,
        "lower_bound": -0.99,
        "upper_bound": 10.0,
        "day_count": 365.25,
    },
    "DEBT_DEFAULTS": {
        "max_months": _env_int("DEBT_MAX_SIMULATION_MONTHS", 600),
        "payoff_epsilon": 0.01,
        "minimum_payment_floor": 25.0,
        "minimum_payment_pct": 0.02,
        "days_per_month": 30.44,
        "balloon_threshold": 1.0,
    },
    "TAX_DEFAULTS": {
        "short_term_rate": _env_float("TAX_SHORT_TERM_RATE", 0.24),
        "long_term_rate": _env_float("TAX_LONG_TERM_RATE", 0.15),
        "harvest_loss_threshold": _env_float("TAX_HARVEST_LOSS_THRESHOLD", 500.0),
        "long_term_days": 365,
    },
    "BENCHMARK_CACHE": {
        "ttl_seconds": _env_int("BENCHMARK_CACHE_TTL_SECONDS", 24 * 60 * 60),
        "max_entries": _env_int("BENCHMARK_CACHE_MAX_ENTRIES", 256),
    },
}


try:  # pragma: no cover - deployment overrides
    import settings as _settings  # type: ignore

    for key in list(_DEFAULTS.keys()):
        if hasattr(_settings, key):
            override = getattr(_settings, key)
            if isinstance(override, dict) and isinstance(_DEFAULTS[key], dict):
                _DEFAULTS[key] = {**_DEFAULTS[key], **override}
            else:
                _DEFAULTS[key] = override
except ImportError:
    pass


ANALYTICS_DEFAULTS = _DEFAULTS["ANALYTICS_DEFAULTS"]
DATA_QUALITY_THRESHOLDS = _DEFAULTS["DATA_QUALITY_THRESHOLDS"]
IRR_SOLVER = _DEFAULTS["IRR_SOLVER"]
DEBT_DEFAULTS = _DEFAULTS["DEBT_DEFAULTS"]
TAX_DEFAULTS = _DEFAULTS["TAX_DEFAULTS"]
BENCHMARK_CACHE = _DEFAULTS["BENCHMARK_CACHE"]


def configure(**overrides: Any) -> None:
    """Programmatically override package configuration values.

    Dict-valued groups are merged key by key, so
    ``configure(TAX_DEFAULTS={"short_term_rate": 0.32})`` keeps the other tax
    settings intact.
    """
    globals_dict = globals()
    for key, value in overrides.items():
        if key not in _DEFAULTS:
            raise KeyError(f"Unknown config key: {key}")
        current = globals_dict[key]
        if isinstance(current, dict) and isinstance(value, dict):
            current.update(value)
        else:
            globals_dict[key] = value
