"""Multi-debt payoff strategy result objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe
from wealth_analytics_engine.result_objects._helpers import _records, _round


@dataclass(frozen=True)
class DebtItem:
    """A debt as entered into the simulation, with its effective minimum payment."""

    debt_id: Any
    name: Optional[str]
    balance: float
    annual_rate_percent: float
    minimum_payment: float


@dataclass(frozen=True)
class PayoffStrategy:
    """
    Outcome of simulating one payoff ordering.

    ``payoff_order`` lists debts in the order they were retired, followed by
    any still unpaid at the simulation cap (``fully_paid`` is then False).
    ``first_debt_payoff_month`` is 0 when no debt was retired.
    """

    name: str
    payoff_date: date
    total_interest: float
    total_cost: float
    months_to_payoff: int
    first_debt_payoff_month: int
    payoff_order: Tuple[Any, ...] = ()
    payoff_months: Dict[Any, int] = field(default_factory=dict)
    fully_paid: bool = True

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "payoff_date": self.payoff_date.isoformat(),
            "total_interest": _round(self.total_interest),
            "total_cost": _round(self.total_cost),
            "months_to_payoff": self.months_to_payoff,
            "first_debt_payoff_month": self.first_debt_payoff_month,
            "payoff_order": make_json_safe(list(self.payoff_order)),
            "payoff_months": make_json_safe(self.payoff_months),
            "fully_paid": self.fully_paid,
        }


@dataclass(frozen=True)
class DebtPayoffComparison:
    """
    Avalanche vs snowball vs minimum-only for one set of debts.

    Example:
        ```python
        result = DebtPayoffSimulator().compare_strategies(debts, extra_monthly_payment=200)
        result.avalanche.total_interest <= result.snowball.total_interest
        result.to_api_response()["strategies"]["snowball"]["payoff_order"]
        ```
    """

    total_debt: float
    weighted_average_rate: float
    total_minimum_payment: float
    extra_monthly_payment: float
    debts: Tuple[DebtItem, ...]
    avalanche: PayoffStrategy
    snowball: PayoffStrategy
    minimum_only: PayoffStrategy
    flags: Tuple[Dict[str, Any], ...] = ()

    @property
    def strategies(self) -> Dict[str, PayoffStrategy]:
        return {
            self.avalanche.name: self.avalanche,
            self.snowball.name: self.snowball,
            self.minimum_only.name: self.minimum_only,
        }

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_debt": _round(self.total_debt),
            "weighted_average_rate": _round(self.weighted_average_rate),
            "months_to_payoff": {name: s.months_to_payoff for name, s in self.strategies.items()},
            "total_interest": {name: _round(s.total_interest) for name, s in self.strategies.items()},
        }

    def to_api_response(self) -> Dict[str, Any]:
        return {
            "total_debt": _round(self.total_debt),
            "weighted_average_rate": _round(self.weighted_average_rate),
            "total_minimum_payment": _round(self.total_minimum_payment),
            "extra_monthly_payment": _round(self.extra_monthly_payment),
            "debts": _records(self.debts),
            "strategies": {name: s.to_api_response() for name, s in self.strategies.items()},
            "flags": make_json_safe(list(self.flags)),
        }
