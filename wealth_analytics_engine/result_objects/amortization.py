"""Amortization schedule and single-loan payoff comparison result objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe
from wealth_analytics_engine.result_objects._helpers import _records, _round, _sentinel_safe


@dataclass(frozen=True)
class AmortizationRow:
    payment_number: int
    date: date
    payment: float
    principal: float
    interest: float
    balance: float
    cumulative_principal: float
    cumulative_interest: float


@dataclass(frozen=True)
class AmortizationSummary:
    total_payments: float = 0.0
    total_interest: float = 0.0
    total_principal: float = 0.0
    payments_made: int = 0
    payments_remaining: int = 0
    percent_paid_off: float = 0.0
    interest_paid_to_date: float = 0.0
    interest_remaining: float = 0.0
    estimated_payoff_date: Optional[date] = None


@dataclass(frozen=True)
class AmortizationSchedule:
    """
    Month-by-month amortization of one loan.

    ``status`` is ``complete``, ``missing_terms`` (no original amount, term or
    start date; schedule empty) or ``non_convergent`` (payments cannot cover
    interest; schedule stops early). ``balloon_payment`` is set when the
    final scheduled payment exceeds the regular payment by more than the
    configured threshold.
    """

    debt_id: Any
    monthly_payment: float
    annual_rate_percent: float
    original_amount: Optional[float]
    current_balance: float
    term_months: Optional[int]
    start_date: Optional[date]
    rows: Tuple[AmortizationRow, ...] = ()
    summary: AmortizationSummary = field(default_factory=AmortizationSummary)
    status: str = "complete"
    balloon_payment: Optional[float] = None
    negative_amortization_shortfall: float = 0.0
    flags: Tuple[Dict[str, Any], ...] = ()

    @property
    def final_balance(self) -> float:
        return self.rows[-1].balance if self.rows else 0.0

    def get_summary(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "monthly_payment": _round(self.monthly_payment),
            "total_interest": _round(self.summary.total_interest),
            "payments_remaining": self.summary.payments_remaining,
            "percent_paid_off": _round(self.summary.percent_paid_off, 1),
            "estimated_payoff_date": make_json_safe(self.summary.estimated_payoff_date),
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "debt_id": make_json_safe(self.debt_id),
            "status": self.status,
            "loan_details": {
                "original_amount": _round(self.original_amount),
                "current_balance": _round(self.current_balance),
                "annual_rate_percent": self.annual_rate_percent,
                "monthly_payment": _round(self.monthly_payment),
                "term_months": self.term_months,
                "start_date": make_json_safe(self.start_date),
            },
            "schedule": _records(self.rows),
            "summary": make_json_safe(self.summary),
            "balloon_payment": _round(self.balloon_payment),
            "flags": make_json_safe(list(self.flags)),
        }


@dataclass(frozen=True)
class PayoffPlan:
    """
    Single-debt payoff projection at a fixed monthly payment.

    When the payment never retires the balance within the simulation cap,
    ``never_pays_off`` is True and months/date/interest/cost hold the
    sentinels ``sys.maxsize``, ``date.max`` and ``sys.float_info.max``.
    """

    monthly_payment: float
    months_remaining: int
    payoff_date: date
    total_interest: float
    total_cost: float
    never_pays_off: bool = False

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "monthly_payment": _round(self.monthly_payment),
            "months_remaining": _sentinel_safe(self.months_remaining),
            "payoff_date": make_json_safe(_sentinel_safe(self.payoff_date)),
            "total_interest": _round(_sentinel_safe(self.total_interest)),
            "total_cost": _round(_sentinel_safe(self.total_cost)),
            "never_pays_off": self.never_pays_off,
        }


@dataclass(frozen=True)
class PayoffSavings:
    months_saved: int
    years_saved: float
    interest_saved: float
    total_saved: float


@dataclass(frozen=True)
class PayoffComparison:
    """Minimum-payment plan vs the same debt with an extra monthly payment."""

    debt_id: Any
    extra_monthly_payment: float
    current_plan: Optional[PayoffPlan]
    accelerated_plan: Optional[PayoffPlan]
    savings: Optional[PayoffSavings] = None
    status: str = "complete"
    flags: Tuple[Dict[str, Any], ...] = ()

    def get_summary(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "months_saved": self.savings.months_saved if self.savings else None,
            "interest_saved": _round(self.savings.interest_saved) if self.savings else None,
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "debt_id": make_json_safe(self.debt_id),
            "status": self.status,
            "extra_monthly_payment": _round(self.extra_monthly_payment),
            "current_plan": self.current_plan.to_api_response() if self.current_plan else None,
            "accelerated_plan": self.accelerated_plan.to_api_response() if self.accelerated_plan else None,
            "savings": make_json_safe(self.savings),
            "flags": make_json_safe(list(self.flags)),
        }
