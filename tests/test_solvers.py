"""Tests for the IRR solver and its tagged outcomes."""

from datetime import date, timedelta

import pytest

from wealth_analytics_engine.solvers import Converged, Invalid, NonConvergent, solve_irr


ONE_YEAR = [(date(2021, 1, 1), -100.0), (date(2022, 1, 1), 110.0)]


class TestSolveIrr:
    def test_one_year_ten_percent(self):
        outcome = solve_irr(ONE_YEAR)
        assert isinstance(outcome, Converged)
        assert outcome.converged
        assert outcome.status == "converged"
        assert outcome.value * 100 == pytest.approx(10.0, abs=0.01)

    def test_flow_order_does_not_matter(self):
        forward = solve_irr(ONE_YEAR)
        backward = solve_irr(list(reversed(ONE_YEAR)))
        assert backward.value == pytest.approx(forward.value)

    def test_multiple_contributions(self):
        flows = [
            (date(2022, 1, 1), -1000.0),
            (date(2022, 7, 1), -500.0),
            (date(2023, 1, 1), 1600.0),
        ]
        outcome = solve_irr(flows)
        assert outcome.converged
        assert 0.0 < outcome.value < 0.10

    def test_single_flow_is_invalid(self):
        outcome = solve_irr([(date(2021, 1, 1), -100.0)])
        assert isinstance(outcome, Invalid)
        assert outcome.reason == "insufficient_cash_flows"
        assert outcome.value_or(0.0) == 0.0

    def test_flows_without_sign_change_are_invalid(self):
        outcome = solve_irr([(date(2021, 1, 1), 100.0), (date(2022, 1, 1), 110.0)])
        assert isinstance(outcome, Invalid)
        assert outcome.reason == "no_sign_change"
        assert outcome.status == "invalid"

    def test_rate_leaving_bounds_is_non_convergent(self):
        d0 = date(2021, 1, 1)
        outcome = solve_irr([(d0, -1.0), (d0 + timedelta(days=1), 1000.0)])
        assert isinstance(outcome, NonConvergent)
        assert outcome.reason == "out_of_bounds"
        assert outcome.value_or(-1.0) == -1.0

    def test_iteration_budget_exhausted(self):
        outcome = solve_irr(ONE_YEAR, initial_guess=0.5, max_iterations=1)
        assert isinstance(outcome, NonConvergent)
        assert outcome.reason == "max_iterations"
        assert outcome.iterations == 1
        assert not outcome.converged

    def test_flows_on_one_date_have_zero_derivative(self):
        d0 = date(2021, 1, 1)
        outcome = solve_irr([(d0, -100.0), (d0, 50.0)], initial_guess=0.1)
        assert isinstance(outcome, NonConvergent)
        assert outcome.reason == "zero_derivative"
        assert outcome.last_value == 0.1
        assert outcome.iterations == 1
