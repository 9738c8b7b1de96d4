"""Account performance engine: TWR, MWR (IRR), volatility, Sharpe, benchmarks.

Called by:
- Service/API layers that need per-account performance payloads.
- ``risk_engine.RiskEngine`` for the shared weekly return-series helper.

Contract notes:
- Valuations come from ``HistoricalStateReconstructor.value_series`` sampled
  weekly; external cash flows between samples are removed from each
  sub-period return.
- All returned percentages are in percent units (12.4 means 12.4%).
- Money-weighted return is a tagged ``SolverOutcome``; non-convergence is
  reported, never raised.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Tuple

import numpy as np
import pandas as pd

from wealth_analytics_engine._logging import analytics_logger, log_errors, log_operation, log_timing
from wealth_analytics_engine.cancellation import CancellationToken
from wealth_analytics_engine.data_loader import BenchmarkCache
from wealth_analytics_engine.flags import generate_performance_flags
from wealth_analytics_engine.periods import validate_range, weekly_sample_dates
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.reconstruction import (
    AccountSnapshot,
    HistoricalStateReconstructor,
    cash_flow_amount,
)
from wealth_analytics_engine.result_objects.performance import (
    BenchmarkComparison,
    PerformancePoint,
    PerformanceResult,
)
from wealth_analytics_engine.solvers import SolverOutcome, solve_irr


# ============================================================================
# SERIES MATH
# ============================================================================

def period_returns(values: pd.Series, cash_flows: Optional[pd.Series] = None) -> pd.Series:
    """
    Cash-flow-adjusted sub-period returns of a valuation series.

    ``r_i = (v_i - v_{i-1} - cf_i) / v_{i-1}``; intervals that start at a
    zero value are skipped. The result is indexed by each interval's end date.
    """
    if len(values) < 2:
        return pd.Series(dtype=float)
    if cash_flows is None:
        cash_flows = pd.Series(0.0, index=values.index)
    prev = values.shift(1)
    returns = (values - prev - cash_flows.reindex(values.index).fillna(0.0)) / prev
    returns = returns.iloc[1:]
    return returns[prev.iloc[1:] != 0].astype(float)


def compound_returns_percent(returns: pd.Series) -> float:
    if returns.empty:
        return 0.0
    return float(((1.0 + returns).prod() - 1.0) * 100.0)


def annualized_volatility_percent(returns: pd.Series, periods_per_year: Optional[int] = None) -> float:
    """Sample standard deviation (ddof=1) scaled to annual percent; 0 below the minimum sample."""
    from wealth_analytics_engine import config

    if periods_per_year is None:
        periods_per_year = int(config.ANALYTICS_DEFAULTS["periods_per_year"])
    min_obs = int(config.DATA_QUALITY_THRESHOLDS["min_observations_for_volatility"])
    if len(returns) < max(min_obs, 2):
        return 0.0
    return float(returns.std(ddof=1) * np.sqrt(periods_per_year) * 100.0)


def sharpe_ratio(portfolio_return: float, volatility: float, risk_free_rate: Optional[float] = None) -> float:
    """
    Excess return per unit of volatility, all in percent units.

    ``risk_free_rate`` is a decimal (0.043) and is converted to percent
    before subtracting; 0 when volatility is 0.
    """
    from wealth_analytics_engine import config

    if risk_free_rate is None:
        risk_free_rate = float(config.ANALYTICS_DEFAULTS["risk_free_rate"])
    if volatility == 0:
        return 0.0
    return float((portfolio_return - risk_free_rate * 100.0) / volatility)


def close_series(points, index: pd.DatetimeIndex) -> pd.Series:
    """Closing prices sampled at-or-before each index date (NaN before the first point)."""
    if not points:
        return pd.Series(np.nan, index=index, dtype=float)
    raw = pd.Series(
        [p.close for p in points],
        index=pd.DatetimeIndex(pd.to_datetime([p.date for p in points])),
        dtype=float,
    ).sort_index()
    raw = raw[~raw.index.duplicated(keep="last")]
    return raw.reindex(raw.index.union(index)).ffill().reindex(index)


# ============================================================================
# ENGINE
# ============================================================================

class PerformanceEngine:
    """
    Computes account performance from the ledger and price history.

    Parameters
    ----------
    source : LedgerDataSource
        Read-only ledger/price/holding access.
    reconstructor : HistoricalStateReconstructor, optional
        Shared reconstruction step; built from ``source`` when omitted.
    benchmark_cache : BenchmarkCache, optional
        Injected TTL/LRU cache for benchmark price histories.
    """

    def __init__(
        self,
        source: LedgerDataSource,
        reconstructor: Optional[HistoricalStateReconstructor] = None,
        benchmark_cache: Optional[BenchmarkCache] = None,
    ):
        self.source = source
        self.reconstructor = reconstructor or HistoricalStateReconstructor(source)
        self.benchmark_cache = benchmark_cache if benchmark_cache is not None else BenchmarkCache()

    # ── shared series ───────────────────────────────────────────────────────

    def weekly_series(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> Tuple[AccountSnapshot, pd.Series, pd.Series]:
        """Return ``(snapshot, values, cash_flows)`` on the weekly sampling grid."""
        snap = snapshot if snapshot is not None else self.reconstructor.snapshot(account_id)
        values = self.reconstructor.value_series(account_id, start, end, cancel_token=cancel_token, snapshot=snap)
        flows = self.reconstructor.cash_flow_series(snap, values.index)
        return snap, values, flows

    def weekly_returns(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> pd.Series:
        _, values, flows = self.weekly_series(account_id, start, end, cancel_token, snapshot)
        return period_returns(values, flows)

    # ── metrics ─────────────────────────────────────────────────────────────

    @log_errors("medium")
    def time_weighted_return(
        self, account_id: Any, start: date, end: date, cancel_token: Optional[CancellationToken] = None
    ) -> float:
        """Geometrically linked weekly returns, in percent."""
        return compound_returns_percent(self.weekly_returns(account_id, start, end, cancel_token))

    @log_errors("medium")
    def money_weighted_return(
        self,
        account_id: Any,
        start: date,
        end: date,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> SolverOutcome:
        """
        Internal rate of return of the account's external cash flows.

        Flows: the value at ``start`` as an investment (when positive), each
        in-range cash flow of a valued holding negated (investor perspective), and the value
        at ``end`` as the terminal proceeds.
        """
        start, end = validate_range(start, end)
        snap = snapshot if snapshot is not None else self.reconstructor.snapshot(account_id)

        flows = []
        initial = self.reconstructor.value_at_date(account_id, start, snapshot=snap)
        if initial > 0:
            flows.append((start, -initial))
        for entry in snap.trusted_entries:
            if start < entry.date <= end:
                amount = cash_flow_amount(entry)
                if amount != 0:
                    flows.append((entry.date, -amount))
        flows.append((end, self.reconstructor.value_at_date(account_id, end, snapshot=snap)))

        outcome = solve_irr(flows)
        if not outcome.converged:
            analytics_logger.info("mwr %s for account %s: %s", outcome.status, account_id, outcome.reason)
        return outcome

    def mwr_percent(self, account_id: Any, start: date, end: date) -> float:
        return self.money_weighted_return(account_id, start, end).value_or(0.0) * 100.0

    @log_errors("medium")
    def volatility(
        self, account_id: Any, start: date, end: date, cancel_token: Optional[CancellationToken] = None
    ) -> float:
        """Annualized standard deviation of weekly cash-flow-adjusted returns, in percent."""
        return annualized_volatility_percent(self.weekly_returns(account_id, start, end, cancel_token))

    def sharpe_ratio(self, portfolio_return: float, volatility: float, risk_free_rate: Optional[float] = None) -> float:
        return sharpe_ratio(portfolio_return, volatility, risk_free_rate)

    # ── benchmarks ──────────────────────────────────────────────────────────

    def benchmark_history(self, symbol: str, start: date, end: date):
        key = (symbol.upper(), start.isoformat(), end.isoformat())
        return self.benchmark_cache.read(key, lambda: tuple(self.source.get_price_history(symbol, start, end)))

    def benchmark_comparison(self, symbol: str, name: str, start: date, end: date) -> BenchmarkComparison:
        """
        Benchmark return (first to last close in range), annualized weekly
        volatility and Sharpe. Fewer than two price points yield zeros.
        """
        points = sorted(self.benchmark_history(symbol, start, end), key=lambda p: p.date)
        if len(points) < 2 or points[0].close == 0:
            return BenchmarkComparison(symbol, name, 0.0, 0.0, 0.0, len(points))

        ret = (points[-1].close - points[0].close) / points[0].close * 100.0
        index = pd.DatetimeIndex(pd.to_datetime(weekly_sample_dates(start, end)))
        closes = close_series(points, index).dropna()
        vol = annualized_volatility_percent(period_returns(closes))
        return BenchmarkComparison(symbol, name, float(ret), vol, sharpe_ratio(ret, vol), len(points))

    def benchmark_comparisons(self, start: date, end: date) -> Tuple[BenchmarkComparison, ...]:
        from wealth_analytics_engine import config

        return tuple(
            self.benchmark_comparison(symbol, name, start, end)
            for symbol, name in config.ANALYTICS_DEFAULTS["benchmarks"].items()
        )

    # ── full analysis ───────────────────────────────────────────────────────

    @log_errors("high")
    @log_operation("performance_analysis")
    @log_timing(3.0)
    def analyze(
        self,
        account_id: Any,
        start: date,
        end: date,
        risk_free_rate: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> PerformanceResult:
        """
        Full performance analysis for one account.

        Parameters
        ----------
        account_id : Any
            Account to analyze; unknown ids raise ``UnknownAccountError``.
        start, end : date
            Inclusive analysis range.
        risk_free_rate : float, optional
            Decimal annual rate for Sharpe; defaults to the configured rate.
        cancel_token : CancellationToken, optional
            Checked before each sampled week and holding.

        Returns
        -------
        PerformanceResult
        """
        from wealth_analytics_engine import config

        start, end = validate_range(start, end)
        if risk_free_rate is None:
            risk_free_rate = float(config.ANALYTICS_DEFAULTS["risk_free_rate"])

        snap, values, flows = self.weekly_series(account_id, start, end, cancel_token)
        returns = period_returns(values, flows)
        twr = compound_returns_percent(returns)
        vol = annualized_volatility_percent(returns)
        sharpe = sharpe_ratio(twr, vol, risk_free_rate)

        mwr = self.money_weighted_return(account_id, start, end, snapshot=snap)
        mwr_reason = getattr(mwr, "reason", None)

        dollar = sum(h.current_value for h in snap.holdings) - sum(h.total_cost_basis for h in snap.holdings)

        history = []
        initial = float(values.iloc[0]) if len(values) else 0.0
        for ts, value in values.items():
            cumulative = (value - initial) / initial * 100.0 if initial > 0 else 0.0
            history.append(PerformancePoint(ts.date(), float(value), float(cumulative)))

        benchmarks = self.benchmark_comparisons(start, end)
        market_proxy = config.ANALYTICS_DEFAULTS["market_proxy"]
        market = next((b for b in benchmarks if b.symbol == market_proxy and b.observations >= 2), None)

        excluded = snap.excluded_holdings
        flags = generate_performance_flags({
            "excluded_holdings": [c.symbol for c in excluded],
            "mwr_status": mwr.status,
            "mwr_reason": mwr_reason,
            "return_observations": len(returns),
            "twr_percent": twr,
            "market_return_percent": market.return_percent if market else None,
        })

        return PerformanceResult(
            account_id=account_id,
            start_date=start,
            end_date=end,
            twr_percent=twr,
            mwr_percent=mwr.value_or(0.0) * 100.0,
            mwr_status=mwr.status,
            mwr_reason=mwr_reason,
            volatility_percent=vol,
            sharpe_ratio=sharpe,
            risk_free_rate=risk_free_rate,
            total_return_dollar=float(dollar),
            total_return_percent=twr,
            historical_performance=tuple(history),
            benchmarks=benchmarks,
            excluded_holdings=excluded,
            flags=tuple(flags),
            analysis_date=datetime.now(),
        )
