"""Tax-lot insight result objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe
from wealth_analytics_engine.result_objects._helpers import _records, _round


@dataclass(frozen=True)
class HoldingTaxDetail:
    """
    Per-holding unrealized gain with its holding-period classification.

    ``purchase_date_source`` records where the purchase date came from:
    ``holding``, ``ledger``, ``created_at`` or ``unknown``.
    """

    holding_id: Any
    symbol: str
    name: str
    cost_basis: float
    current_value: float
    gain_loss: float
    percent_gain: float
    purchase_date: Optional[date]
    purchase_date_source: str
    holding_period_days: int
    tax_type: str


@dataclass(frozen=True)
class HarvestingOpportunity:
    holding_id: Any
    symbol: str
    loss: float
    tax_type: str
    holding_period_days: int
    tax_savings: float
    replacement_symbol: str


@dataclass(frozen=True)
class GainSummary:
    dollar: float = 0.0
    percent: float = 0.0


@dataclass(frozen=True)
class UnrealizedGains:
    short_term: GainSummary = field(default_factory=GainSummary)
    long_term: GainSummary = field(default_factory=GainSummary)
    total: GainSummary = field(default_factory=GainSummary)


@dataclass(frozen=True)
class TaxLiability:
    short_term_tax: float = 0.0
    long_term_tax: float = 0.0
    total_tax: float = 0.0
    effective_rate_percent: float = 0.0


@dataclass(frozen=True)
class TaxInsightsResult:
    """
    Unrealized gains, harvesting candidates and estimated liability for one account.

    ``holdings`` are ordered by absolute gain/loss (largest first);
    ``harvesting_opportunities`` by estimated tax savings (largest first).
    Replacement symbols come from a static heuristic table and are not
    checked against wash-sale rules.
    """

    account_id: Any
    as_of: date
    unrealized_gains: UnrealizedGains
    holdings: Tuple[HoldingTaxDetail, ...] = ()
    harvesting_opportunities: Tuple[HarvestingOpportunity, ...] = ()
    estimated_tax_liability: TaxLiability = field(default_factory=TaxLiability)
    flags: Tuple[Dict[str, Any], ...] = ()
    analysis_date: datetime = field(default_factory=datetime.now)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_unrealized": _round(self.unrealized_gains.total.dollar),
            "short_term_unrealized": _round(self.unrealized_gains.short_term.dollar),
            "long_term_unrealized": _round(self.unrealized_gains.long_term.dollar),
            "harvesting_opportunities": len(self.harvesting_opportunities),
            "estimated_tax": _round(self.estimated_tax_liability.total_tax),
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "account_id": make_json_safe(self.account_id),
            "as_of": self.as_of.isoformat(),
            "unrealized_gains": make_json_safe(self.unrealized_gains),
            "holdings": _records(self.holdings),
            "harvesting_opportunities": _records(self.harvesting_opportunities),
            "estimated_tax_liability": make_json_safe(self.estimated_tax_liability),
            "flags": make_json_safe(list(self.flags)),
            "analysis_date": self.analysis_date.isoformat(),
        }
