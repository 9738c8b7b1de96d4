"""Performance result objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe
from wealth_analytics_engine.result_objects._helpers import _records, _round
from wealth_analytics_engine.result_objects.reconstruction import HoldingCompleteness


@dataclass(frozen=True)
class BenchmarkComparison:
    symbol: str
    name: str
    return_percent: float
    volatility_percent: float
    sharpe_ratio: float
    observations: int = 0


@dataclass(frozen=True)
class PerformancePoint:
    """One sampled valuation with its cumulative return since the first sample."""

    date: date
    portfolio_value: float
    cumulative_return_percent: float


@dataclass(frozen=True)
class PerformanceResult:
    """
    Account performance over a date range.

    Key Data Categories:
    - **Returns**: time-weighted (``twr_percent``) and money-weighted
      (``mwr_percent`` with ``mwr_status``) returns in percent
    - **Risk-adjusted**: annualized weekly ``volatility_percent`` and
      ``sharpe_ratio`` against ``risk_free_rate``
    - **Total return**: dollar gain of current holdings over cost basis
    - **Time series**: ``historical_performance`` weekly points
    - **Benchmarks**: return / volatility / Sharpe for configured index funds
    - **Data quality**: ``excluded_holdings`` whose ledger did not reconcile

    ``mwr_status`` is ``converged``, ``non_convergent`` or ``invalid``; when
    not converged ``mwr_percent`` is reported as 0.

    Example:
        ```python
        result = PerformanceEngine(source).analyze("acct-1", start, end)
        result.twr_percent           # 12.4
        result.get_summary()         # {"twr_percent": 12.4, ...}
        result.to_api_response()     # JSON-safe dict
        ```
    """

    account_id: Any
    start_date: date
    end_date: date
    twr_percent: float
    mwr_percent: float
    mwr_status: str
    volatility_percent: float
    sharpe_ratio: float
    risk_free_rate: float
    total_return_dollar: float
    total_return_percent: float
    historical_performance: Tuple[PerformancePoint, ...] = ()
    benchmarks: Tuple[BenchmarkComparison, ...] = ()
    excluded_holdings: Tuple[HoldingCompleteness, ...] = ()
    flags: Tuple[Dict[str, Any], ...] = ()
    mwr_reason: Optional[str] = None
    analysis_date: datetime = field(default_factory=datetime.now)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "twr_percent": _round(self.twr_percent, 4),
            "mwr_percent": _round(self.mwr_percent, 4),
            "mwr_status": self.mwr_status,
            "volatility_percent": _round(self.volatility_percent, 4),
            "sharpe_ratio": _round(self.sharpe_ratio, 4),
            "total_return_dollar": _round(self.total_return_dollar, 2),
            "excluded_holdings": len(self.excluded_holdings),
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "account_id": make_json_safe(self.account_id),
            "analysis_period": {
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
            "total_return": {
                "dollar": _round(self.total_return_dollar, 2),
                "percent": _round(self.total_return_percent, 4),
            },
            "time_weighted_return": _round(self.twr_percent, 4),
            "money_weighted_return": _round(self.mwr_percent, 4),
            "mwr_status": self.mwr_status,
            "mwr_reason": self.mwr_reason,
            "volatility": _round(self.volatility_percent, 4),
            "sharpe_ratio": _round(self.sharpe_ratio, 4),
            "risk_free_rate": self.risk_free_rate,
            "benchmarks": _records(self.benchmarks),
            "historical_performance": _records(self.historical_performance),
            "excluded_holdings": _records(self.excluded_holdings),
            "flags": make_json_safe(list(self.flags)),
            "analysis_date": self.analysis_date.isoformat(),
        }
