# Deployment settings for wealth_analytics_engine; config.py overlays these groups.
import os
from pathlib import Path

from dotenv import load_dotenv

# Ensure local ".env" is loaded even for direct Python invocations.
load_dotenv(Path(__file__).resolve().parent / ".env", override=False)


# settings.py
ANALYTICS_DEFAULTS = {
    "risk_free_rate": float(os.getenv("ANALYTICS_RISK_FREE_RATE", "0.043")),  # 10-year Treasury reference yield
    "market_proxy": os.getenv("ANALYTICS_MARKET_PROXY", "SPY"),  # broad-market proxy for beta/correlation
    "benchmarks": {
        "SPY": "S&P 500",
        "QQQ": "Nasdaq 100",
        "IWM": "Russell 2000",
        "VTI": "Total Market",
    },
    "sampling_interval_days": 7,  # weekly valuation snapshots
    "periods_per_year": 52,  # annualization factor for weekly returns
    "rolling_window_days": 30,  # rolling volatility window
    "rolling_step_days": 7,  # rolling volatility recompute cadence
    "max_correlation_holdings": 10,  # top-N holdings in the correlation matrix
    "max_workers": int(os.getenv("ANALYTICS_MAX_WORKERS", "8")),
    "all_period_years": 10,  # "ALL" period lookback cap
}

# Data Quality Thresholds
# Ledger reconciliation and minimum sample sizes for statistics
DATA_QUALITY_THRESHOLDS = {
    "reconciliation_tolerance": float(os.getenv("LEDGER_RECONCILIATION_TOLERANCE", "0.05")),  # 5% relative
    "min_observations_for_volatility": 2,
    "min_observations_for_beta": 2,
    "min_observations_for_correlation": 2,
    "quantity_epsilon": 1e-9,
}

# Debt simulation settings
DEBT_DEFAULTS = {
    "max_months": int(os.getenv("DEBT_MAX_SIMULATION_MONTHS", "600")),  # 50-year cap
    "payoff_epsilon": 0.01,  # balances at or below one cent count as paid
    "minimum_payment_floor": 25.0,  # estimated minimum payment floor
    "minimum_payment_pct": 0.02,  # estimated minimum payment as share of balance
    "days_per_month": 30.44,
    "balloon_threshold": 1.0,
}

# Flat federal rates used for tax insights
TAX_DEFAULTS = {
    "short_term_rate": float(os.getenv("TAX_SHORT_TERM_RATE", "0.24")),  # ordinary income
    "long_term_rate": float(os.getenv("TAX_LONG_TERM_RATE", "0.15")),  # capital gains
    "harvest_loss_threshold": float(os.getenv("TAX_HARVEST_LOSS_THRESHOLD", "500")),
    "long_term_days": 365,
}
