"""Tests for wealth_analytics_engine.debt_payoff."""

from datetime import date

import pytest

from wealth_analytics_engine import config
from wealth_analytics_engine.data_objects import Debt
from wealth_analytics_engine.debt_payoff import (
    DebtPayoffSimulator,
    DebtState,
    advance_month,
    estimate_minimum_payment,
    project_single_debt_payoff,
    weighted_average_rate,
)
from wealth_analytics_engine.exceptions import InvalidInputError


AS_OF = date(2024, 1, 1)


@pytest.fixture
def debts():
    return [
        Debt(id="small", balance=1000, annual_rate_percent=5, minimum_payment=50),
        Debt(id="large", balance=5000, annual_rate_percent=20, minimum_payment=100),
    ]


class TestAdvanceMonth:
    def test_extra_goes_to_first_active_debt(self):
        states = (
            DebtState("a", 1000.0, 0.01, 50.0),
            DebtState("b", 1000.0, 0.01, 50.0),
        )
        new_states, interest, pool = advance_month(states, 100.0, month=1)
        assert interest == pytest.approx(20.0)
        assert new_states[0].balance == pytest.approx(1000 + 10 - 150)
        assert new_states[1].balance == pytest.approx(1000 + 10 - 50)
        assert pool == 100.0

    def test_leftover_extra_is_not_redistributed(self):
        states = (
            DebtState("a", 10.0, 0.0, 5.0),
            DebtState("b", 1000.0, 0.0, 50.0),
        )
        new_states, _, pool = advance_month(states, 100.0, month=3)
        assert new_states[0].balance == 0.0
        assert new_states[0].paid_off_month == 3
        assert new_states[1].balance == 950.0
        # retired minimum rolls into next month's pool
        assert pool == 105.0

    def test_inputs_are_not_mutated(self):
        states = (DebtState("a", 500.0, 0.01, 50.0),)
        advance_month(states, 0.0, month=1)
        assert states[0].balance == 500.0

    def test_balance_strictly_decreases_while_payment_covers_interest(self):
        states = (DebtState("a", 5000.0, 0.015, 150.0),)
        previous = states[0].balance
        for month in range(1, 13):
            states, _, _ = advance_month(states, 0.0, month)
            assert states[0].balance < previous
            previous = states[0].balance


class TestHelpers:
    def test_estimated_minimum_payment(self):
        assert estimate_minimum_payment(Debt(id="a", balance=500, annual_rate_percent=10)) == 25.0
        assert estimate_minimum_payment(Debt(id="b", balance=5000, annual_rate_percent=10)) == 100.0
        assert estimate_minimum_payment(Debt(id="c", balance=5000, annual_rate_percent=10, minimum_payment=80)) == 80.0

    def test_estimated_minimum_uses_config(self, monkeypatch):
        monkeypatch.setitem(config.DEBT_DEFAULTS, "minimum_payment_floor", 40.0)
        assert estimate_minimum_payment(Debt(id="a", balance=500, annual_rate_percent=10)) == 40.0

    def test_weighted_average_rate(self, source):
        assert weighted_average_rate(source.get_debts("user-1")) == pytest.approx((5000 * 22 + 8000 * 6) / 13000)
        assert weighted_average_rate([]) == 0.0

    def test_single_debt_projection(self):
        plan = project_single_debt_payoff(1000, 0, 300, start=AS_OF)
        assert plan.months_remaining == 4
        assert plan.total_interest == 0.0
        assert plan.total_cost == 1000.0
        assert plan.payoff_date == date(2024, 5, 1)
        assert not plan.never_pays_off

    def test_single_debt_projection_never_pays_off(self):
        assert project_single_debt_payoff(5000, 24, 100, start=AS_OF).never_pays_off

    def test_single_debt_projection_capped(self, monkeypatch):
        monkeypatch.setitem(config.DEBT_DEFAULTS, "max_months", 12)
        plan = project_single_debt_payoff(5000, 0, 100, start=AS_OF)
        assert plan.never_pays_off


class TestCompareStrategies:
    def test_avalanche_never_costs_more(self, debts):
        result = DebtPayoffSimulator().compare_strategies(debts, extra_monthly_payment=300, as_of=AS_OF)
        assert result.avalanche.total_interest <= result.snowball.total_interest
        assert result.snowball.total_interest <= result.minimum_only.total_interest
        assert result.avalanche.months_to_payoff <= result.minimum_only.months_to_payoff
        assert all(s.fully_paid for s in result.strategies.values())

    def test_snowball_retires_smallest_balance_first(self, debts):
        result = DebtPayoffSimulator().compare_strategies(debts, extra_monthly_payment=300, as_of=AS_OF)
        assert result.snowball.payoff_order == ("small", "large")
        assert result.snowball.first_debt_payoff_month == result.snowball.payoff_months["small"]

    def test_summary_fields(self, debts):
        result = DebtPayoffSimulator().compare_strategies(debts, extra_monthly_payment=300, as_of=AS_OF)
        assert result.total_debt == 6000
        assert result.total_minimum_payment == 150
        assert result.weighted_average_rate == round((1000 * 5 + 5000 * 20) / 6000, 2)
        assert list(result.strategies) == ["avalanche", "snowball", "minimum_only"]
        assert result.avalanche.total_cost == pytest.approx(6000 + result.avalanche.total_interest, abs=0.01)

    def test_payoff_date_follows_months(self, debts):
        result = DebtPayoffSimulator().compare_strategies(debts, as_of=AS_OF)
        months = result.minimum_only.months_to_payoff
        expected_year = 2024 + months // 12
        assert result.minimum_only.payoff_date == date(expected_year, 1 + months % 12, 1)

    def test_zero_balance_debts_are_skipped(self, debts):
        debts.append(Debt(id="done", balance=0, annual_rate_percent=30, minimum_payment=10))
        result = DebtPayoffSimulator().compare_strategies(debts, as_of=AS_OF)
        assert [d.debt_id for d in result.debts] == ["small", "large"]

    def test_unpaid_at_horizon(self):
        debts = [Debt(id="card", balance=10000, annual_rate_percent=24, minimum_payment=100)]
        result = DebtPayoffSimulator().compare_strategies(debts, as_of=AS_OF)
        assert not result.minimum_only.fully_paid
        assert result.minimum_only.months_to_payoff == 600
        assert result.minimum_only.payoff_order == ("card",)
        assert result.minimum_only.first_debt_payoff_month == 0
        strategies = {f["details"]["strategy"] for f in result.flags if f["flag"] == "exceeds_simulation_horizon"}
        assert strategies == {"avalanche", "snowball", "minimum_only"}

    def test_empty_input(self):
        result = DebtPayoffSimulator().compare_strategies([], as_of=AS_OF)
        assert result.total_debt == 0.0
        assert result.avalanche.months_to_payoff == 0
        assert result.minimum_only.payoff_date == AS_OF
        assert [f["flag"] for f in result.flags] == ["no_outstanding_debt"]

    def test_negative_extra_raises(self, debts):
        with pytest.raises(InvalidInputError):
            DebtPayoffSimulator().compare_strategies(debts, extra_monthly_payment=-1)

    def test_api_response(self, debts):
        payload = DebtPayoffSimulator().compare_strategies(debts, 300, as_of=AS_OF).to_api_response()
        assert set(payload["strategies"]) == {"avalanche", "snowball", "minimum_only"}
        assert payload["strategies"]["snowball"]["payoff_order"] == ["small", "large"]


class TestCompareForUser:
    def test_reads_debts_from_source(self, source):
        result = DebtPayoffSimulator(source).compare_for_user("user-1", 200, as_of=AS_OF)
        assert result.total_debt == 13000
        assert result.weighted_average_rate == 12.15
        assert result.avalanche.payoff_order[0] == "card"

    def test_unknown_user_has_no_debt(self, source):
        result = DebtPayoffSimulator(source).compare_for_user("user-2", as_of=AS_OF)
        assert result.total_debt == 0.0

    def test_requires_source(self):
        with pytest.raises(InvalidInputError):
            DebtPayoffSimulator().compare_for_user("user-1")
