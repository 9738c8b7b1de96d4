"""Numeric solvers with tagged outcomes.

Root finders return one of ``Converged``, ``NonConvergent`` or ``Invalid``
instead of raising or silently returning a default, so callers can tell a
genuine 0% return apart from a solver that gave up.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple, Union

from wealth_analytics_engine._logging import analytics_logger


@dataclass(frozen=True)
class Converged:
    value: float
    iterations: int

    status = "converged"

    @property
    def converged(self) -> bool:
        return True

    def value_or(self, default: float) -> float:
        return self.value


@dataclass(frozen=True)
class NonConvergent:
    reason: str
    last_value: Optional[float] = None
    iterations: int = 0

    status = "non_convergent"

    @property
    def converged(self) -> bool:
        return False

    def value_or(self, default: float) -> float:
        return default


@dataclass(frozen=True)
class Invalid:
    reason: str

    status = "invalid"

    @property
    def converged(self) -> bool:
        return False

    def value_or(self, default: float) -> float:
        return default


SolverOutcome = Union[Converged, NonConvergent, Invalid]


def _npv_and_derivative(rate: float, flows: Sequence[Tuple[float, float]]) -> Tuple[float, float]:
    npv = 0.0
    derivative = 0.0
    for years, amount in flows:
        discount = (1.0 + rate) ** years
        npv += amount / discount
        derivative -= years * amount / (discount * (1.0 + rate))
    return npv, derivative


def solve_irr(
    cash_flows: Sequence[Tuple[date, float]],
    initial_guess: Optional[float] = None,
    max_iterations: Optional[int] = None,
    tolerance: Optional[float] = None,
) -> SolverOutcome:
    """
    Solve for the annual rate that zeroes the NPV of dated cash flows.

    Parameters
    ----------
    cash_flows : sequence of (date, amount)
        Signed cash flows. Time is measured in years from the earliest date
        using the configured day count (365.25).
    initial_guess, max_iterations, tolerance : optional
        Override the ``config.IRR_SOLVER`` values.

    Returns
    -------
    SolverOutcome
        ``Converged(rate)`` when |NPV| or the Newton step falls below the
        tolerance; ``NonConvergent`` when the derivative vanishes, the rate
        leaves the configured bounds, or the iteration budget runs out;
        ``Invalid`` when fewer than two flows are given or all flows share a
        sign.
    """
    from wealth_analytics_engine import config

    params = config.IRR_SOLVER
    guess = params["initial_guess"] if initial_guess is None else initial_guess
    iterations = params["max_iterations"] if max_iterations is None else max_iterations
    tol = params["tolerance"] if tolerance is None else tolerance
    lower, upper = params["lower_bound"], params["upper_bound"]
    day_count = params["day_count"]

    if len(cash_flows) < 2:
        return Invalid("insufficient_cash_flows")
    amounts = [float(amount) for _, amount in cash_flows]
    if not (any(a > 0 for a in amounts) and any(a < 0 for a in amounts)):
        return Invalid("no_sign_change")

    origin = min(d for d, _ in cash_flows)
    flows = [((d - origin).days / day_count, float(amount)) for d, amount in cash_flows]

    rate = float(guess)
    for i in range(1, iterations + 1):
        npv, derivative = _npv_and_derivative(rate, flows)
        if abs(npv) < tol:
            return Converged(rate, i)
        if derivative == 0:
            analytics_logger.debug("irr: zero derivative at rate %.6f", rate)
            return NonConvergent("zero_derivative", rate, i)

        new_rate = rate - npv / derivative
        if abs(new_rate - rate) < tol:
            return Converged(new_rate, i)
        rate = new_rate
        if rate < lower or rate > upper:
            analytics_logger.debug("irr: rate %.6f left [%s, %s]", rate, lower, upper)
            return NonConvergent("out_of_bounds", rate, i)

    return NonConvergent("max_iterations", rate, iterations)
