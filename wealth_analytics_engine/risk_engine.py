"""Account risk engine: beta, drawdown, rolling volatility and correlations.

Called by:
- Service/API layers that need per-account risk payloads.
- Batch jobs through ``RiskEngine.analyze_accounts``.

Contract notes:
- Weekly return series come from ``PerformanceEngine.weekly_series`` so that
  performance and risk share one reconstruction step.
- Beta is the OLS slope of portfolio returns on market-proxy returns sampled
  on the same dates; it falls back to 1.0 when data is insufficient.
- Correlations use weekly close-to-close returns of the largest holdings.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm

from wealth_analytics_engine._logging import analytics_logger, log_errors, log_operation, log_timing
from wealth_analytics_engine.cancellation import CancellationToken, check_cancelled
from wealth_analytics_engine.data_loader import BenchmarkCache
from wealth_analytics_engine.flags import generate_risk_flags
from wealth_analytics_engine.parallel import fan_out
from wealth_analytics_engine.performance_metrics_engine import (
    PerformanceEngine,
    annualized_volatility_percent,
    period_returns,
)
from wealth_analytics_engine.periods import validate_range, weekly_sample_dates
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.reconstruction import AccountSnapshot, HistoricalStateReconstructor
from wealth_analytics_engine.result_objects.risk import (
    CorrelationPair,
    DrawdownPoint,
    DrawdownSummary,
    RiskResult,
    VolatilityPoint,
)


# ============================================================================
# SERIES MATH
# ============================================================================

def max_drawdown(values: pd.Series) -> DrawdownSummary:
    """
    Deepest decline from a running peak, in a single forward pass.

    The reported ``peak_date`` is the peak in force at the deepest trough.
    Fewer than two points, or a series that never declines, yields
    ``DrawdownSummary(0.0, None, None)``.
    """
    if len(values) < 2:
        return DrawdownSummary()

    peak = None
    peak_date = None
    worst = 0.0
    worst_peak_date = None
    worst_trough_date = None
    for ts, value in values.items():
        value = float(value)
        if peak is None or value > peak:
            peak, peak_date = value, ts
        drawdown = (value - peak) / peak * 100.0 if peak > 0 else 0.0
        if drawdown < worst:
            worst, worst_peak_date, worst_trough_date = drawdown, peak_date, ts

    if worst_trough_date is None:
        return DrawdownSummary()
    return DrawdownSummary(worst, _as_date(worst_peak_date), _as_date(worst_trough_date))


def drawdown_history(values: pd.Series) -> List[DrawdownPoint]:
    points = []
    peak = None
    for ts, value in values.items():
        value = float(value)
        if peak is None or value > peak:
            peak = value
        drawdown = (value - peak) / peak * 100.0 if peak > 0 else 0.0
        points.append(DrawdownPoint(_as_date(ts), value, peak, drawdown))
    return points


def pearson_correlation(returns1: Sequence[float], returns2: Sequence[float]) -> float:
    """Pearson coefficient; 0 for mismatched or too-short series or zero dispersion."""
    from wealth_analytics_engine import config

    min_obs = max(int(config.DATA_QUALITY_THRESHOLDS["min_observations_for_correlation"]), 2)
    if len(returns1) != len(returns2) or len(returns1) < min_obs:
        return 0.0
    a = np.asarray(returns1, dtype=float)
    b = np.asarray(returns2, dtype=float)
    da = a - a.mean()
    db = b - b.mean()
    sd_a = np.sqrt(np.sum(da * da))
    sd_b = np.sqrt(np.sum(db * db))
    if sd_a == 0 or sd_b == 0:
        return 0.0
    return float(np.sum(da * db) / (sd_a * sd_b))


def ols_beta(portfolio_returns: pd.Series, market_returns: pd.Series) -> Tuple[float, int, bool]:
    """
    Regress portfolio returns on market returns over their common dates.

    Returns ``(beta, observations, defaulted)``; ``defaulted`` is True when
    fewer than the minimum paired observations exist or the market series has
    no variance, in which case beta is 1.0.
    """
    from wealth_analytics_engine import config

    min_obs = max(int(config.DATA_QUALITY_THRESHOLDS["min_observations_for_beta"]), 2)
    paired = pd.concat([portfolio_returns.rename("portfolio"), market_returns.rename("market")], axis=1, join="inner")
    paired = paired.replace([np.inf, -np.inf], np.nan).dropna()
    n = len(paired)
    if n < min_obs:
        return 1.0, n, True
    if float(paired["market"].var(ddof=0)) == 0.0:
        return 1.0, n, True

    X = pd.DataFrame(
        {
            "const": np.ones(n, dtype=float),
            "market": paired["market"].to_numpy(dtype=float),
        },
        index=paired.index,
    )
    y = paired["portfolio"].to_numpy(dtype=float)
    model = sm.OLS(y, X).fit()
    return float(model.params.iloc[1]), n, False


def _as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    return value


# ============================================================================
# ENGINE
# ============================================================================

class RiskEngine:
    """
    Computes account risk metrics from reconstructed weekly valuations.

    Example:
        engine = RiskEngine(source)
        result = engine.analyze("acct-1", date(2024, 1, 1), date(2024, 12, 31))
        result.beta, result.max_drawdown_percent
    """

    def __init__(
        self,
        source: LedgerDataSource,
        performance_engine: Optional[PerformanceEngine] = None,
        benchmark_cache: Optional[BenchmarkCache] = None,
    ):
        self.source = source
        self.performance = performance_engine or PerformanceEngine(
            source,
            reconstructor=HistoricalStateReconstructor(source),
            benchmark_cache=benchmark_cache,
        )
        self.reconstructor = self.performance.reconstructor

    # ── price helpers ───────────────────────────────────────────────────────

    def weekly_closes(self, symbol: str, sample_dates: Sequence[date]) -> pd.Series:
        """Close at-or-before each sampling date; dates with no price are dropped."""
        closes = {}
        for d in sample_dates:
            point = self.source.get_price_at_or_before(symbol, d)
            if point is not None:
                closes[pd.Timestamp(d)] = point.close
        return pd.Series(closes, dtype=float)

    def symbol_returns(self, symbol: str, sample_dates: Sequence[date]) -> pd.Series:
        return period_returns(self.weekly_closes(symbol, sample_dates))

    # ── metrics ─────────────────────────────────────────────────────────────

    @log_errors("medium")
    def beta(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> float:
        """Portfolio beta vs the configured market proxy (1.0 when data is insufficient)."""
        return self._beta(account_id, start, end, cancel_token, snapshot)[0]

    def _beta(self, account_id, start, end, cancel_token=None, snapshot=None, portfolio_returns=None):
        from wealth_analytics_engine import config

        start, end = validate_range(start, end)
        if portfolio_returns is None:
            portfolio_returns = self.performance.weekly_returns(account_id, start, end, cancel_token, snapshot)
        market_returns = self.symbol_returns(config.ANALYTICS_DEFAULTS["market_proxy"], weekly_sample_dates(start, end))
        beta, n, defaulted = ols_beta(portfolio_returns, market_returns)
        if defaulted:
            analytics_logger.info("beta defaulted to 1.0 for account %s (%d paired observations)", account_id, n)
        return beta, n, defaulted

    def max_drawdown(self, values: pd.Series) -> DrawdownSummary:
        return max_drawdown(values)

    def drawdown_history(self, values: pd.Series) -> List[DrawdownPoint]:
        return drawdown_history(values)

    @log_errors("medium")
    def volatility_history(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> List[VolatilityPoint]:
        """
        Rolling volatility: a window of ``rolling_window_days`` ending at
        ``start + window``, then every ``rolling_step_days`` until ``end``.
        """
        from wealth_analytics_engine import config

        start, end = validate_range(start, end)
        window = timedelta(days=int(config.ANALYTICS_DEFAULTS["rolling_window_days"]))
        step = timedelta(days=int(config.ANALYTICS_DEFAULTS["rolling_step_days"]))
        snap = snapshot if snapshot is not None else self.reconstructor.snapshot(account_id)

        points = []
        current = start + window
        while current <= end:
            check_cancelled(cancel_token, "volatility history")
            returns = self.performance.weekly_returns(account_id, current - window, current, cancel_token, snap)
            points.append(VolatilityPoint(current, annualized_volatility_percent(returns)))
            current += step
        return points

    @log_errors("medium")
    def correlation_matrix(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> List[CorrelationPair]:
        """
        Pairwise correlations among the top holdings by current value, plus
        each holding against the market proxy. Per-symbol return series are
        built in parallel.
        """
        from wealth_analytics_engine import config

        start, end = validate_range(start, end)
        snap = snapshot if snapshot is not None else self.reconstructor.snapshot(account_id)
        limit = int(config.ANALYTICS_DEFAULTS["max_correlation_holdings"])
        market = config.ANALYTICS_DEFAULTS["market_proxy"]

        ranked = sorted(snap.holdings, key=lambda h: h.current_value, reverse=True)
        symbols = list(dict.fromkeys(h.symbol for h in ranked))[:limit]
        if not symbols:
            return []

        sample_dates = weekly_sample_dates(start, end)
        series = fan_out(
            lambda sym: self.symbol_returns(sym, sample_dates),
            symbols + [market],
            cancel_token=cancel_token,
        )

        pairs = []
        for i, sym1 in enumerate(symbols):
            # a held market proxy is covered by the holding-vs-market pairs
            if sym1 == market:
                continue
            for sym2 in symbols[i + 1:]:
                if sym2 == market:
                    continue
                r1, r2 = series[sym1], series[sym2]
                pairs.append(CorrelationPair(sym1, sym2, pearson_correlation(r1.values, r2.values), min(len(r1), len(r2))))
            r1, rm = series[sym1], series[market]
            pairs.append(CorrelationPair(sym1, market, pearson_correlation(r1.values, rm.values), min(len(r1), len(rm))))
        return pairs

    # ── full analysis ───────────────────────────────────────────────────────

    @log_errors("high")
    @log_operation("risk_analysis")
    @log_timing(5.0)
    def analyze(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RiskResult:
        """
        Full risk analysis for one account.

        Parameters
        ----------
        account_id : Any
            Account to analyze; unknown ids raise ``UnknownAccountError``.
        start, end : date
            Inclusive analysis range.
        cancel_token : CancellationToken, optional
            Checked before each sampled week, holding and rolling window.

        Returns
        -------
        RiskResult
        """
        start, end = validate_range(start, end)
        snap, values, flows = self.performance.weekly_series(account_id, start, end, cancel_token)
        returns = period_returns(values, flows)

        volatility = annualized_volatility_percent(returns)
        beta, beta_obs, beta_defaulted = self._beta(
            account_id, start, end, cancel_token, snap, portfolio_returns=returns
        )
        drawdown = max_drawdown(values)
        correlations = self.correlation_matrix(account_id, start, end, cancel_token, snap)
        vol_history = self.volatility_history(account_id, start, end, cancel_token, snap)

        flags = generate_risk_flags({
            "beta": beta,
            "beta_defaulted": beta_defaulted,
            "beta_observations": beta_obs,
            "max_drawdown_percent": drawdown.max_drawdown_percent,
            "correlation_pairs": [
                {"symbol1": p.symbol1, "symbol2": p.symbol2, "correlation": p.correlation} for p in correlations
            ],
            "excluded_holdings": [c.symbol for c in snap.excluded_holdings],
        })

        return RiskResult(
            account_id=account_id,
            start_date=start,
            end_date=end,
            volatility_percent=volatility,
            beta=beta,
            max_drawdown_percent=drawdown.max_drawdown_percent,
            peak_date=drawdown.peak_date,
            trough_date=drawdown.trough_date,
            correlation_pairs=tuple(correlations),
            volatility_history=tuple(vol_history),
            drawdown_history=tuple(drawdown_history(values)),
            excluded_holdings=snap.excluded_holdings,
            flags=tuple(flags),
            analysis_date=datetime.now(),
        )

    @log_errors("high")
    @log_operation("risk_batch")
    def analyze_accounts(
        self,
        account_ids: Iterable[Any],
        start: date,
        end: date,
        max_workers: Optional[int] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[Any, RiskResult]:
        """Analyze several accounts concurrently; any failure or cancellation propagates."""
        return fan_out(
            lambda acct: self.analyze(acct, start, end, cancel_token=cancel_token),
            account_ids,
            max_workers=max_workers,
            cancel_token=cancel_token,
        )
