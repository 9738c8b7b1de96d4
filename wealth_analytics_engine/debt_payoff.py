"""Multi-debt payoff simulation (avalanche / snowball / minimum-only).

Contract notes:
- Simulation state is an immutable tuple of ``DebtState`` records; each month
  ``advance_month`` returns a new tuple plus that month's interest and the
  updated extra-payment pool.
- When a debt is retired its minimum payment joins the extra pool for all
  later months. The rollover applies to every strategy; only the ordering
  differs.
- Horizons are capped at ``DEBT_DEFAULTS["max_months"]`` (600).
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from wealth_analytics_engine._logging import analytics_logger, log_errors, log_operation, log_timing
from wealth_analytics_engine.constants import STRATEGY_AVALANCHE, STRATEGY_MINIMUM_ONLY, STRATEGY_SNOWBALL
from wealth_analytics_engine.data_objects import Debt, to_date
from wealth_analytics_engine.exceptions import InvalidInputError
from wealth_analytics_engine.flags import generate_debt_payoff_flags
from wealth_analytics_engine.periods import add_months
from wealth_analytics_engine.providers import LedgerDataSource
from wealth_analytics_engine.result_objects.amortization import PayoffPlan
from wealth_analytics_engine.result_objects.debt_payoff import DebtItem, DebtPayoffComparison, PayoffStrategy


@dataclass(frozen=True)
class DebtState:
    debt_id: Any
    balance: float
    monthly_rate: float
    minimum_payment: float
    paid_off_month: Optional[int] = None

    @property
    def active(self) -> bool:
        return self.paid_off_month is None


def estimate_minimum_payment(debt: Debt) -> float:
    """Recorded minimum, else the greater of the configured floor and a share of balance."""
    from wealth_analytics_engine import config

    if debt.minimum_payment is not None:
        return float(debt.minimum_payment)
    pct = float(config.DEBT_DEFAULTS["minimum_payment_pct"])
    floor = float(config.DEBT_DEFAULTS["minimum_payment_floor"])
    return max(floor, round(debt.balance * pct, 2))


def advance_month(
    states: Tuple[DebtState, ...],
    extra_pool: float,
    month: int,
    epsilon: float = 0.01,
) -> Tuple[Tuple[DebtState, ...], float, float]:
    """
    Apply one month of interest and payments to ``states`` (already ordered).

    The first active debt receives the whole ``extra_pool`` on top of its
    minimum; payments are capped at the balance and any unused extra is not
    carried to other debts. Returns ``(new_states, interest, new_extra_pool)``
    where the new pool includes the minimums of debts retired this month.
    """
    extra_to_apply = extra_pool
    next_pool = extra_pool
    interest_total = 0.0
    out = []
    for state in states:
        if not state.active:
            out.append(state)
            continue
        interest = state.balance * state.monthly_rate
        interest_total += interest
        balance = state.balance + interest

        payment = state.minimum_payment + extra_to_apply
        extra_to_apply = 0.0
        payment = min(payment, balance)
        balance -= payment

        if balance <= epsilon:
            out.append(replace(state, balance=0.0, paid_off_month=month))
            next_pool += state.minimum_payment
        else:
            out.append(replace(state, balance=balance))
    return tuple(out), interest_total, next_pool


def simulate_strategy(
    items: Sequence[DebtItem],
    extra_monthly_payment: float,
    name: str,
    as_of: Optional[date] = None,
) -> PayoffStrategy:
    """Run the month-by-month simulation for debts already in strategy order."""
    from wealth_analytics_engine import config

    as_of = to_date(as_of) or date.today()
    max_months = int(config.DEBT_DEFAULTS["max_months"])
    epsilon = float(config.DEBT_DEFAULTS["payoff_epsilon"])

    states = tuple(
        DebtState(
            debt_id=item.debt_id,
            balance=item.balance,
            monthly_rate=item.annual_rate_percent / 100 / 12,
            minimum_payment=item.minimum_payment,
        )
        for item in items
    )
    pool = float(extra_monthly_payment)
    total_interest = 0.0
    months = 0
    while months < max_months and any(s.active for s in states):
        months += 1
        states, interest, pool = advance_month(states, pool, months, epsilon)
        total_interest += interest

    retired = sorted((s for s in states if not s.active), key=lambda s: s.paid_off_month)
    unpaid = [s for s in states if s.active]
    first = retired[0].paid_off_month if retired else 0
    if unpaid:
        analytics_logger.info("%s: %d debts unpaid after %d months", name, len(unpaid), months)

    return PayoffStrategy(
        name=name,
        payoff_date=add_months(as_of, months),
        total_interest=round(total_interest, 2),
        total_cost=round(sum(item.balance for item in items) + total_interest, 2),
        months_to_payoff=months,
        first_debt_payoff_month=first,
        payoff_order=tuple(s.debt_id for s in retired) + tuple(s.debt_id for s in unpaid),
        payoff_months={s.debt_id: s.paid_off_month for s in retired},
        fully_paid=not unpaid,
    )


def weighted_average_rate(debts: Iterable[Any]) -> float:
    """Balance-weighted APR in percent; accepts ``Debt`` or ``DebtItem`` records."""
    debts = list(debts)
    total = sum(d.balance for d in debts)
    if total == 0:
        return 0.0
    return sum(d.balance * d.annual_rate_percent for d in debts) / total


def project_single_debt_payoff(
    balance: float,
    annual_rate_percent: float,
    monthly_payment: float,
    start: Optional[date] = None,
) -> PayoffPlan:
    """
    Months, interest and cost to retire one balance at a fixed payment.

    A payment that does not exceed the month's interest, or a balance still
    outstanding at the simulation cap, yields the never-pays-off sentinel plan.
    """
    from wealth_analytics_engine import config

    start = to_date(start) or date.today()
    max_months = int(config.DEBT_DEFAULTS["max_months"])
    monthly_rate = annual_rate_percent / 100 / 12

    never = PayoffPlan(
        monthly_payment=monthly_payment,
        months_remaining=sys.maxsize,
        payoff_date=date.max,
        total_interest=sys.float_info.max,
        total_cost=sys.float_info.max,
        never_pays_off=True,
    )

    remaining = float(balance)
    months = 0
    total_interest = 0.0
    while remaining > 0 and months < max_months:
        interest = remaining * monthly_rate
        if monthly_payment <= interest:
            return never
        remaining -= min(monthly_payment - interest, remaining)
        total_interest += interest
        months += 1

    if remaining > 0:
        return never
    return PayoffPlan(
        monthly_payment=monthly_payment,
        months_remaining=months,
        payoff_date=add_months(start, months),
        total_interest=round(total_interest, 2),
        total_cost=round(balance + total_interest, 2),
    )


class DebtPayoffSimulator:
    """
    Compares payoff orderings for a set of debts.

    Example:
        sim = DebtPayoffSimulator()
        result = sim.compare_strategies(debts, extra_monthly_payment=200)
        result.avalanche.months_to_payoff
    """

    def __init__(self, source: Optional[LedgerDataSource] = None):
        self.source = source

    @staticmethod
    def debt_items(debts: Iterable[Debt]) -> List[DebtItem]:
        return [
            DebtItem(
                debt_id=d.id,
                name=d.name,
                balance=d.balance,
                annual_rate_percent=d.annual_rate_percent,
                minimum_payment=estimate_minimum_payment(d),
            )
            for d in debts
            if d.balance > 0
        ]

    @log_errors("medium")
    @log_operation("debt_payoff_comparison")
    @log_timing(2.0)
    def compare_strategies(
        self,
        debts: Iterable[Debt],
        extra_monthly_payment: float = 0.0,
        as_of: Optional[date] = None,
    ) -> DebtPayoffComparison:
        """
        Simulate avalanche, snowball and minimum-only payoff.

        Parameters
        ----------
        debts : iterable of Debt
            Debts with zero balance are skipped.
        extra_monthly_payment : float
            Amount paid above the minimums each month (not used by
            minimum-only); must be non-negative.
        as_of : date, optional
            Simulation start for payoff dates; defaults to today.

        Returns
        -------
        DebtPayoffComparison
        """
        if extra_monthly_payment < 0:
            raise InvalidInputError("extra_monthly_payment must be non-negative")
        as_of = to_date(as_of) or date.today()
        items = self.debt_items(debts)

        if not items:
            empty = PayoffStrategy(name="", payoff_date=as_of, total_interest=0.0, total_cost=0.0,
                                   months_to_payoff=0, first_debt_payoff_month=0)
            flags = generate_debt_payoff_flags({"total_debt": 0})
            return DebtPayoffComparison(
                total_debt=0.0,
                weighted_average_rate=0.0,
                total_minimum_payment=0.0,
                extra_monthly_payment=0.0,
                debts=(),
                avalanche=replace(empty, name=STRATEGY_AVALANCHE),
                snowball=replace(empty, name=STRATEGY_SNOWBALL),
                minimum_only=replace(empty, name=STRATEGY_MINIMUM_ONLY),
                flags=tuple(flags),
            )

        # sorted() is stable, so ties keep input order
        avalanche = simulate_strategy(
            sorted(items, key=lambda d: d.annual_rate_percent, reverse=True),
            extra_monthly_payment,
            STRATEGY_AVALANCHE,
            as_of,
        )
        snowball = simulate_strategy(
            sorted(items, key=lambda d: d.balance),
            extra_monthly_payment,
            STRATEGY_SNOWBALL,
            as_of,
        )
        minimum_only = simulate_strategy(items, 0.0, STRATEGY_MINIMUM_ONLY, as_of)

        total_debt = sum(d.balance for d in items)
        flags = generate_debt_payoff_flags({
            "total_debt": total_debt,
            "fully_paid": {s.name: s.fully_paid for s in (avalanche, snowball, minimum_only)},
            "avalanche_interest": avalanche.total_interest,
            "minimum_only_interest": minimum_only.total_interest,
        })

        return DebtPayoffComparison(
            total_debt=total_debt,
            weighted_average_rate=round(weighted_average_rate(items), 2),
            total_minimum_payment=sum(d.minimum_payment for d in items),
            extra_monthly_payment=float(extra_monthly_payment),
            debts=tuple(items),
            avalanche=avalanche,
            snowball=snowball,
            minimum_only=minimum_only,
            flags=tuple(flags),
        )

    def compare_for_user(
        self, user_id: Any, extra_monthly_payment: float = 0.0, as_of: Optional[date] = None
    ) -> DebtPayoffComparison:
        if self.source is None:
            raise InvalidInputError("compare_for_user requires a data source")
        return self.compare_strategies(self.source.get_debts(user_id), extra_monthly_payment, as_of)

    def weighted_average_rate(self, debts: Iterable[Any]) -> float:
        return weighted_average_rate(debts)

    def project_single_debt_payoff(
        self, balance: float, annual_rate_percent: float, monthly_payment: float, start: Optional[date] = None
    ) -> PayoffPlan:
        return project_single_debt_payoff(balance, annual_rate_percent, monthly_payment, start)
