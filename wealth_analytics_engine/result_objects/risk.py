"""Risk result objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe
from wealth_analytics_engine.result_objects._helpers import _records, _round
from wealth_analytics_engine.result_objects.reconstruction import HoldingCompleteness


@dataclass(frozen=True)
class DrawdownSummary:
    """Deepest peak-to-trough decline; ``peak_date <= trough_date`` whenever both are set."""

    max_drawdown_percent: float = 0.0
    peak_date: Optional[date] = None
    trough_date: Optional[date] = None


@dataclass(frozen=True)
class DrawdownPoint:
    date: date
    value: float
    running_peak: float
    drawdown_percent: float


@dataclass(frozen=True)
class VolatilityPoint:
    date: date
    volatility_percent: float


@dataclass(frozen=True)
class CorrelationPair:
    symbol1: str
    symbol2: str
    correlation: float
    observations: int = 0


@dataclass(frozen=True)
class RiskResult:
    """
    Account risk over a date range.

    Key Data Categories:
    - **Dispersion**: annualized weekly ``volatility_percent`` and its rolling
      ``volatility_history`` (30-day windows stepped weekly)
    - **Market sensitivity**: ``beta`` vs the configured market proxy
      (1.0 when there is too little data)
    - **Drawdown**: ``max_drawdown_percent`` (≤ 0) with peak/trough dates and
      the full ``drawdown_history``
    - **Diversification**: ``correlation_pairs`` among the largest holdings
      and against the market proxy
    """

    account_id: Any
    start_date: date
    end_date: date
    volatility_percent: float
    beta: float
    max_drawdown_percent: float
    peak_date: Optional[date]
    trough_date: Optional[date]
    correlation_pairs: Tuple[CorrelationPair, ...] = ()
    volatility_history: Tuple[VolatilityPoint, ...] = ()
    drawdown_history: Tuple[DrawdownPoint, ...] = ()
    excluded_holdings: Tuple[HoldingCompleteness, ...] = ()
    flags: Tuple[Dict[str, Any], ...] = ()
    analysis_date: datetime = field(default_factory=datetime.now)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "volatility_percent": _round(self.volatility_percent, 4),
            "beta": _round(self.beta, 4),
            "max_drawdown_percent": _round(self.max_drawdown_percent, 4),
            "correlation_pairs": len(self.correlation_pairs),
            "excluded_holdings": len(self.excluded_holdings),
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "account_id": make_json_safe(self.account_id),
            "analysis_period": {
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
            "volatility": _round(self.volatility_percent, 4),
            "beta": _round(self.beta, 4),
            "max_drawdown": {
                "percent": _round(self.max_drawdown_percent, 4),
                "peak_date": make_json_safe(self.peak_date),
                "trough_date": make_json_safe(self.trough_date),
            },
            "correlation_matrix": _records(self.correlation_pairs),
            "volatility_history": _records(self.volatility_history),
            "drawdown_history": _records(self.drawdown_history),
            "excluded_holdings": _records(self.excluded_holdings),
            "flags": make_json_safe(list(self.flags)),
            "analysis_date": self.analysis_date.isoformat(),
        }
