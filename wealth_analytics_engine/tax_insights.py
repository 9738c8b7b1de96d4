"""Unrealized gain classification, tax-loss harvesting and liability estimates.

Contract notes:
- Purchase date priority: the holding's own ``purchase_date``, then the
  earliest BUY / INITIAL_BALANCE ledger entry, then the holding's
  ``created_at``.
- Long-term means a holding period of at least ``long_term_days`` (365).
- Harvesting candidates need a loss strictly beyond the configured threshold.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence, Tuple

from wealth_analytics_engine._logging import log_data_quality, log_errors, log_operation, log_timing
from wealth_analytics_engine.cancellation import CancellationToken, check_cancelled
from wealth_analytics_engine.constants import (
    PURCHASE_DATE_TYPES,
    TAX_TYPE_LONG_TERM,
    TAX_TYPE_SHORT_TERM,
    suggest_replacement,
)
from wealth_analytics_engine.data_objects import Holding, LedgerEntry, to_date
from wealth_analytics_engine.flags import generate_tax_flags
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.result_objects.tax import (
    GainSummary,
    HarvestingOpportunity,
    HoldingTaxDetail,
    TaxInsightsResult,
    TaxLiability,
    UnrealizedGains,
)


def resolve_purchase_date(holding: Holding, entries: Sequence[LedgerEntry]) -> Tuple[Optional[date], str]:
    """Return ``(purchase_date, source)`` following the priority order above."""
    if holding.purchase_date is not None:
        return holding.purchase_date, "holding"
    acquisitions = [e.date for e in entries if e.type in PURCHASE_DATE_TYPES]
    if acquisitions:
        return min(acquisitions), "ledger"
    if holding.created_at is not None:
        return holding.created_at, "created_at"
    return None, "unknown"


def classify_holding_period(days: int, long_term_days: Optional[int] = None) -> str:
    from wealth_analytics_engine import config

    if long_term_days is None:
        long_term_days = int(config.TAX_DEFAULTS["long_term_days"])
    return TAX_TYPE_LONG_TERM if days >= long_term_days else TAX_TYPE_SHORT_TERM


def estimate_tax_liability(short_term_gains: float, long_term_gains: float) -> TaxLiability:
    """Tax only positive aggregates; effective rate in percent of taxable gains."""
    from wealth_analytics_engine import config

    taxable_short = max(0.0, short_term_gains)
    taxable_long = max(0.0, long_term_gains)
    short_tax = taxable_short * float(config.TAX_DEFAULTS["short_term_rate"])
    long_tax = taxable_long * float(config.TAX_DEFAULTS["long_term_rate"])
    total_tax = short_tax + long_tax
    taxable = taxable_short + taxable_long
    return TaxLiability(
        short_term_tax=short_tax,
        long_term_tax=long_tax,
        total_tax=total_tax,
        effective_rate_percent=(total_tax / taxable * 100) if taxable else 0.0,
    )


def _gain_summary(gain: float, cost_basis: float) -> GainSummary:
    return GainSummary(dollar=gain, percent=(gain / cost_basis * 100) if cost_basis else 0.0)


class TaxLotAnalyzer:
    """
    Per-account unrealized gains and tax-loss harvesting candidates.

    Example:
        analyzer = TaxLotAnalyzer(source)
        insights = analyzer.analyze("acct-1", as_of=date(2025, 1, 15))
        insights.harvesting_opportunities[0].replacement_symbol
    """

    def __init__(self, source: LedgerDataSource):
        self.source = source

    def holding_detail(self, holding: Holding, as_of: date) -> HoldingTaxDetail:
        entries = self.source.get_ledger_entries(holding_id=holding.holding_id)
        purchase_date, source = resolve_purchase_date(holding, entries)
        if purchase_date is None:
            log_data_quality("unknown_purchase_date", {"holding_id": holding.holding_id, "symbol": holding.symbol})
            days = 0
        else:
            days = (as_of - purchase_date).days
        return HoldingTaxDetail(
            holding_id=holding.holding_id,
            symbol=holding.symbol,
            name=holding.name or holding.symbol,
            cost_basis=holding.total_cost_basis,
            current_value=holding.current_value,
            gain_loss=holding.unrealized_gain_loss,
            percent_gain=holding.unrealized_gain_loss_percent,
            purchase_date=purchase_date,
            purchase_date_source=source,
            holding_period_days=days,
            tax_type=classify_holding_period(days),
        )

    def harvesting_opportunities(self, details: Sequence[HoldingTaxDetail]) -> Tuple[HarvestingOpportunity, ...]:
        from wealth_analytics_engine import config

        threshold = float(config.TAX_DEFAULTS["harvest_loss_threshold"])
        opportunities = []
        for detail in details:
            if detail.gain_loss >= -threshold:
                continue
            rate_key = "short_term_rate" if detail.tax_type == TAX_TYPE_SHORT_TERM else "long_term_rate"
            opportunities.append(
                HarvestingOpportunity(
                    holding_id=detail.holding_id,
                    symbol=detail.symbol,
                    loss=detail.gain_loss,
                    tax_type=detail.tax_type,
                    holding_period_days=detail.holding_period_days,
                    tax_savings=abs(detail.gain_loss) * float(config.TAX_DEFAULTS[rate_key]),
                    replacement_symbol=suggest_replacement(detail.symbol),
                )
            )
        return tuple(sorted(opportunities, key=lambda o: o.tax_savings, reverse=True))

    @log_errors("medium")
    @log_operation("tax_insights")
    @log_timing(2.0)
    def analyze(
        self,
        account_id: Any,
        as_of: Optional[date] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TaxInsightsResult:
        """
        Classify every holding in the account and estimate harvesting value.

        Parameters
        ----------
        account_id : Any
            Unknown ids raise ``UnknownAccountError``.
        as_of : date, optional
            Reference date for holding periods; defaults to today.
        cancel_token : CancellationToken, optional
            Checked before each holding.

        Returns
        -------
        TaxInsightsResult
        """
        as_of = to_date(as_of) or date.today()
        holdings = self.source.get_holdings(account_id)

        details = []
        for holding in holdings:
            check_cancelled(cancel_token, "tax holding")
            details.append(self.holding_detail(holding, as_of))

        short = [d for d in details if d.tax_type == TAX_TYPE_SHORT_TERM]
        long_ = [d for d in details if d.tax_type == TAX_TYPE_LONG_TERM]
        short_gain = sum(d.gain_loss for d in short)
        long_gain = sum(d.gain_loss for d in long_)
        short_basis = sum(d.cost_basis for d in short)
        long_basis = sum(d.cost_basis for d in long_)

        gains = UnrealizedGains(
            short_term=_gain_summary(short_gain, short_basis),
            long_term=_gain_summary(long_gain, long_basis),
            total=_gain_summary(short_gain + long_gain, short_basis + long_basis),
        )
        opportunities = self.harvesting_opportunities(details)
        liability = estimate_tax_liability(short_gain, long_gain)

        flags = generate_tax_flags({
            "harvest_count": len(opportunities),
            "total_harvest_savings": round(sum(o.tax_savings for o in opportunities), 2),
            "short_term_gains": round(short_gain, 2),
            "unknown_purchase_dates": [d.symbol for d in details if d.purchase_date_source == "unknown"],
        })

        return TaxInsightsResult(
            account_id=account_id,
            as_of=as_of,
            unrealized_gains=gains,
            holdings=tuple(sorted(details, key=lambda d: abs(d.gain_loss), reverse=True)),
            harvesting_opportunities=opportunities,
            estimated_tax_liability=liability,
            flags=tuple(flags),
            analysis_date=datetime.now(),
        )
