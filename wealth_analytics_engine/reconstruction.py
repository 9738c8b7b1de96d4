"""Historical state reconstruction from the append-only ledger.

Called by:
- ``performance_metrics_engine.PerformanceEngine`` and ``risk_engine.RiskEngine``
  for valuation series and external cash flows.
- ``tax_insights.TaxLotAnalyzer`` for purchase-date lookups.

Contract notes:
- The ledger, not the ``Holding`` record, is the source of truth for any date
  other than "now". Quantities are folded from entries dated on or before the
  target date, ordered by (date, insertion order).
- Holdings whose ledger does not reconcile with their current quantity are
  excluded from valuations (never zeroed) and reported as data-quality events.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from wealth_analytics_engine._logging import (
    analytics_logger,
    log_critical_alert,
    log_data_quality,
    log_errors,
    log_operation,
)
from wealth_analytics_engine.cancellation import CancellationToken, check_cancelled
from wealth_analytics_engine.constants import (
    CASH_INFLOW_TYPES,
    CASH_OUTFLOW_TYPES,
    QUANTITY_DECREASING_TYPES,
    QUANTITY_INCREASING_TYPES,
    TransactionType,
)
from wealth_analytics_engine.data_objects import Holding, LedgerEntry, to_date
from wealth_analytics_engine.periods import validate_range, weekly_sample_dates
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.result_objects.reconstruction import (
    HoldingCompleteness,
    HoldingNeedingBalance,
    TransactionHistoryStatus,
)


# ============================================================================
# LEDGER FOLDS
# ============================================================================

def cash_flow_amount(entry: LedgerEntry) -> float:
    """
    Signed external cash flow of one entry, from the portfolio's perspective.

    BUY / INITIAL_BALANCE / DEPOSIT bring money in (``+|amount|``);
    SELL / DIVIDEND / WITHDRAWAL take it out (``-|amount|``). Everything else
    is internal and contributes 0.
    """
    if entry.type in CASH_INFLOW_TYPES:
        return abs(entry.amount)
    if entry.type in CASH_OUTFLOW_TYPES:
        return -abs(entry.amount)
    return 0.0


def _applies(entry: LedgerEntry, on: Optional[date]) -> bool:
    return on is None or entry.date <= on


def fold_quantity(entries: Iterable[LedgerEntry], on: Optional[date] = None) -> float:
    """Raw (unclamped) share count after applying entries dated on or before ``on``."""
    quantity = 0.0
    for entry in sorted(entries, key=lambda e: e.sort_key):
        if not _applies(entry, on):
            continue
        qty = abs(entry.quantity or 0.0)
        if entry.type in QUANTITY_INCREASING_TYPES:
            quantity += qty
        elif entry.type in QUANTITY_DECREASING_TYPES:
            quantity -= qty
        elif entry.type is TransactionType.DIVIDEND:
            if entry.reinvested:
                quantity += qty
        elif entry.type is TransactionType.SPLIT:
            quantity *= entry.ratio
    return quantity


def fold_cost_basis(entries: Iterable[LedgerEntry], on: Optional[date] = None) -> Tuple[float, float]:
    """
    Running average-cost fold returning ``(quantity, total_cost)``.

    Acquisitions add their recorded amount (or quantity × price); disposals
    remove cost pro rata to the shares removed; splits scale quantity only.
    """
    quantity = 0.0
    cost = 0.0
    for entry in sorted(entries, key=lambda e: e.sort_key):
        if not _applies(entry, on):
            continue
        qty = abs(entry.quantity or 0.0)
        acquired = entry.type in QUANTITY_INCREASING_TYPES or (
            entry.type is TransactionType.DIVIDEND and entry.reinvested
        )
        if acquired:
            if entry.amount:
                added = abs(entry.amount)
            elif entry.price is not None:
                added = qty * entry.price
            else:
                # transfers without a recorded value keep the running average
                added = qty * (cost / quantity) if quantity > 0 else 0.0
            quantity += qty
            cost += added
        elif entry.type in QUANTITY_DECREASING_TYPES:
            if quantity > 0:
                removed = min(qty, quantity)
                cost -= cost * (removed / quantity)
            quantity -= qty
            if quantity <= 0:
                quantity, cost = 0.0, 0.0
        elif entry.type is TransactionType.SPLIT:
            quantity *= entry.ratio
    return max(quantity, 0.0), max(cost, 0.0)


def check_completeness(
    holding: Holding,
    entries: Sequence[LedgerEntry],
    tolerance: Optional[float] = None,
) -> HoldingCompleteness:
    """Decide whether a holding's ledger can be trusted for reconstruction."""
    from wealth_analytics_engine import config

    if tolerance is None:
        tolerance = float(config.DATA_QUALITY_THRESHOLDS["reconciliation_tolerance"])
    eps = float(config.DATA_QUALITY_THRESHOLDS["quantity_epsilon"])

    has_initial_balance = any(e.type is TransactionType.INITIAL_BALANCE for e in entries)
    reconstructed = fold_quantity(entries)
    current = holding.quantity

    if abs(current) <= eps:
        relative = None
        reconciles = abs(reconstructed) <= eps
    else:
        relative = abs(reconstructed - current) / abs(current)
        reconciles = relative <= tolerance

    return HoldingCompleteness(
        holding_id=holding.holding_id,
        symbol=holding.symbol,
        trusted=has_initial_balance or reconciles,
        has_initial_balance=has_initial_balance,
        reconstructed_quantity=reconstructed,
        current_quantity=current,
        relative_difference=relative,
    )


# ============================================================================
# ACCOUNT SNAPSHOT
# ============================================================================

@dataclass(frozen=True)
class AccountSnapshot:
    """Holdings and full ledger of one account, loaded once per calculation."""

    account_id: Any
    holdings: Tuple[Holding, ...]
    entries: Tuple[LedgerEntry, ...]
    entries_by_holding: Dict[Any, Tuple[LedgerEntry, ...]] = field(default_factory=dict)
    completeness: Dict[Any, HoldingCompleteness] = field(default_factory=dict)

    @property
    def trusted_holdings(self) -> Tuple[Holding, ...]:
        return tuple(h for h in self.holdings if self.completeness[h.holding_id].trusted)

    @property
    def excluded_holdings(self) -> Tuple[HoldingCompleteness, ...]:
        return tuple(c for c in self.completeness.values() if not c.trusted)

    @property
    def trusted_entries(self) -> Tuple[LedgerEntry, ...]:
        """Account-level entries plus entries of holdings included in valuations."""
        trusted = {hid for hid, c in self.completeness.items() if c.trusted}
        return tuple(e for e in self.entries if e.holding_id is None or e.holding_id in trusted)


class HistoricalStateReconstructor:
    """
    Rebuilds per-date holding quantities, cost basis and account values.

    Example:
        recon = HistoricalStateReconstructor(source)
        qty = recon.quantity_at_date("h-1", date(2024, 3, 1))
        series = recon.value_series("acct-1", date(2024, 1, 1), date(2024, 12, 31))
    """

    def __init__(self, source: LedgerDataSource):
        self.source = source

    # ── single holding ──────────────────────────────────────────────────────

    def quantity_at_date(self, holding_id: Any, on: date) -> float:
        self.source.get_holding(holding_id)
        on = to_date(on)
        entries = self.source.get_ledger_entries(holding_id=holding_id, end=on)
        raw = fold_quantity(entries, on)
        if raw < 0:
            log_data_quality(
                "negative_reconstructed_quantity",
                {"holding_id": holding_id, "date": on.isoformat(), "quantity": raw},
            )
        return max(raw, 0.0)

    def cost_basis_at_date(self, holding_id: Any, on: date) -> float:
        self.source.get_holding(holding_id)
        on = to_date(on)
        entries = self.source.get_ledger_entries(holding_id=holding_id, end=on)
        _, cost = fold_cost_basis(entries, on)
        return cost

    def check_completeness(
        self, holding: Holding, entries: Optional[Sequence[LedgerEntry]] = None
    ) -> HoldingCompleteness:
        if entries is None:
            entries = self.source.get_ledger_entries(holding_id=holding.holding_id)
        return check_completeness(holding, entries)

    # ── account level ───────────────────────────────────────────────────────

    def snapshot(self, account_id: Any) -> AccountSnapshot:
        """Load holdings and ledger once and classify each holding's completeness."""
        holdings = tuple(self.source.get_holdings(account_id))
        entries = tuple(self.source.get_ledger_entries(account_id=account_id))

        grouped: Dict[Any, List[LedgerEntry]] = defaultdict(list)
        for entry in entries:
            if entry.holding_id is not None:
                grouped[entry.holding_id].append(entry)
        by_holding = {h.holding_id: tuple(grouped.get(h.holding_id, ())) for h in holdings}
        completeness = {h.holding_id: check_completeness(h, by_holding[h.holding_id]) for h in holdings}

        snap = AccountSnapshot(
            account_id=account_id,
            holdings=holdings,
            entries=entries,
            entries_by_holding=by_holding,
            completeness=completeness,
        )
        for item in snap.excluded_holdings:
            log_data_quality(
                "incomplete_holding_history",
                {
                    "account_id": account_id,
                    "holding_id": item.holding_id,
                    "symbol": item.symbol,
                    "reconstructed_quantity": item.reconstructed_quantity,
                    "current_quantity": item.current_quantity,
                },
            )
        if holdings and not snap.trusted_holdings:
            log_critical_alert("no_trusted_holdings", "high", {"account_id": account_id, "holdings": len(holdings)})
        return snap

    def _price_on(self, holding: Holding, on: date) -> float:
        point = self.source.get_price_at_or_before(holding.symbol, on)
        if point is None:
            return holding.current_price
        return point.close

    def _value_on(self, snap: AccountSnapshot, on: date, cancel_token: Optional[CancellationToken] = None) -> float:
        total = 0.0
        for holding in snap.trusted_holdings:
            check_cancelled(cancel_token, "holding valuation")
            quantity = max(fold_quantity(snap.entries_by_holding[holding.holding_id], on), 0.0)
            if quantity == 0:
                continue
            total += quantity * self._price_on(holding, on)
        return total

    def value_at_date(self, account_id: Any, on: date, snapshot: Optional[AccountSnapshot] = None) -> float:
        snap = snapshot if snapshot is not None else self.snapshot(account_id)
        return self._value_on(snap, to_date(on))

    @log_errors("medium")
    @log_operation("value_series")
    def value_series(
        self,
        account_id: Any,
        start: date,
        end: date,
        cancel_token: Optional[CancellationToken] = None,
        snapshot: Optional[AccountSnapshot] = None,
    ) -> pd.Series:
        """
        Weekly sampled account valuation.

        Returns
        -------
        pd.Series
            Values indexed by a ``DatetimeIndex`` of the sampling dates
            (``start``, ``start+7d``, ..., ``end``).
        """
        start, end = validate_range(start, end)
        snap = snapshot if snapshot is not None else self.snapshot(account_id)
        dates = weekly_sample_dates(start, end)
        values = []
        for d in dates:
            check_cancelled(cancel_token, "weekly sampling")
            values.append(self._value_on(snap, d, cancel_token))
        return pd.Series(values, index=pd.DatetimeIndex(pd.to_datetime(dates)), name="portfolio_value", dtype=float)

    def cash_flow_series(self, snapshot: AccountSnapshot, sample_index: pd.DatetimeIndex) -> pd.Series:
        """
        External cash flow attributed to each sampling interval.

        The value at position ``i`` sums ``cash_flow_amount`` over account
        entries of trusted holdings (and account-level entries) with
        ``index[i-1] < date <= index[i]``; position 0 is 0.
        """
        dates = [ts.date() for ts in sample_index]
        flows = [0.0] * len(dates)
        for i in range(1, len(dates)):
            prev, curr = dates[i - 1], dates[i]
            flows[i] = sum(cash_flow_amount(e) for e in snapshot.trusted_entries if prev < e.date <= curr)
        return pd.Series(flows, index=sample_index, name="cash_flow", dtype=float)

    @log_errors("medium")
    def transaction_history_status(self, account_id: Any) -> TransactionHistoryStatus:
        snap = self.snapshot(account_id)
        needing = tuple(
            HoldingNeedingBalance(
                holding_id=h.holding_id,
                symbol=h.symbol,
                current_quantity=h.quantity,
                current_price=h.current_price,
            )
            for h in snap.holdings
            if not snap.completeness[h.holding_id].trusted and h.quantity > 0
        )
        first = min((e.date for e in snap.entries), default=None)
        status = TransactionHistoryStatus(
            account_id=account_id,
            is_complete=all(c.trusted for c in snap.completeness.values()),
            has_initial_balance=any(e.type is TransactionType.INITIAL_BALANCE for e in snap.entries),
            first_transaction_date=first,
            holdings_needing_balance=needing,
        )
        analytics_logger.debug(
            "transaction_history_status %s: complete=%s needing=%d",
            account_id,
            status.is_complete,
            len(needing),
        )
        return status
