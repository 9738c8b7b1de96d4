"""Result objects for structured engine responses.

Classes are organized by domain in submodules and re-exported here:

    from wealth_analytics_engine.result_objects import PerformanceResult, RiskResult
"""

from .reconstruction import HoldingCompleteness, HoldingNeedingBalance, TransactionHistoryStatus
from .performance import BenchmarkComparison, PerformancePoint, PerformanceResult
from .risk import CorrelationPair, DrawdownPoint, DrawdownSummary, RiskResult, VolatilityPoint
from .amortization import (
    AmortizationRow,
    AmortizationSchedule,
    AmortizationSummary,
    PayoffComparison,
    PayoffPlan,
    PayoffSavings,
)
from .debt_payoff import DebtItem, DebtPayoffComparison, PayoffStrategy
from .tax import (
    GainSummary,
    HarvestingOpportunity,
    HoldingTaxDetail,
    TaxInsightsResult,
    TaxLiability,
    UnrealizedGains,
)

__all__ = [
    "HoldingCompleteness",
    "HoldingNeedingBalance",
    "TransactionHistoryStatus",
    "BenchmarkComparison",
    "PerformancePoint",
    "PerformanceResult",
    "CorrelationPair",
    "DrawdownPoint",
    "DrawdownSummary",
    "RiskResult",
    "VolatilityPoint",
    "AmortizationRow",
    "AmortizationSchedule",
    "AmortizationSummary",
    "PayoffComparison",
    "PayoffPlan",
    "PayoffSavings",
    "DebtItem",
    "DebtPayoffComparison",
    "PayoffStrategy",
    "GainSummary",
    "HarvestingOpportunity",
    "HoldingTaxDetail",
    "TaxInsightsResult",
    "TaxLiability",
    "UnrealizedGains",
]
