"""Public API for wealth_analytics_engine."""

from wealth_analytics_engine.amortization import AmortizationCalculator, monthly_payment
from wealth_analytics_engine.cancellation import CancellationToken
from wealth_analytics_engine.data_loader import BenchmarkCache, InMemoryLedgerSource
from wealth_analytics_engine.data_objects import Debt, Holding, LedgerEntry, PricePoint
from wealth_analytics_engine.debt_payoff import DebtPayoffSimulator
from wealth_analytics_engine.exceptions import (
    AnalyticsError,
    CalculationCancelled,
    InvalidInputError,
    UnknownAccountError,
    UnknownHoldingError,
)
from wealth_analytics_engine.performance_metrics_engine import PerformanceEngine
from wealth_analytics_engine.periods import parse_period
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.reconstruction import HistoricalStateReconstructor, cash_flow_amount
from wealth_analytics_engine.risk_engine import RiskEngine
from wealth_analytics_engine.solvers import Converged, Invalid, NonConvergent, solve_irr
from wealth_analytics_engine.tax_insights import TaxLotAnalyzer

__all__ = [
    "AmortizationCalculator",
    "monthly_payment",
    "CancellationToken",
    "BenchmarkCache",
    "InMemoryLedgerSource",
    "Debt",
    "Holding",
    "LedgerEntry",
    "PricePoint",
    "DebtPayoffSimulator",
    "AnalyticsError",
    "CalculationCancelled",
    "InvalidInputError",
    "UnknownAccountError",
    "UnknownHoldingError",
    "PerformanceEngine",
    "parse_period",
    "LedgerDataSource",
    "HistoricalStateReconstructor",
    "cash_flow_amount",
    "RiskEngine",
    "Converged",
    "Invalid",
    "NonConvergent",
    "solve_irr",
    "TaxLotAnalyzer",
]
