"""Tests for wealth_analytics_engine.reconstruction."""

from datetime import date

import pandas as pd
import pytest

from wealth_analytics_engine.cancellation import CancellationToken
from wealth_analytics_engine.data_objects import Holding, LedgerEntry
from wealth_analytics_engine.exceptions import CalculationCancelled, UnknownAccountError, UnknownHoldingError
from wealth_analytics_engine.reconstruction import (
    HistoricalStateReconstructor,
    cash_flow_amount,
    check_completeness,
    fold_cost_basis,
    fold_quantity,
)


def _entry(type_, on, quantity=None, amount=0.0, seq=0, **kw):
    return LedgerEntry(id=seq, holding_id="h", type=type_, date=on, quantity=quantity, amount=amount, sequence=seq, **kw)


def _holding(quantity):
    return Holding(holding_id="h", account_id="a", symbol="XYZ", quantity=quantity,
                   average_cost_basis=10, current_price=10)


class TestCashFlowAmount:
    def test_inflows_use_absolute_amount(self):
        assert cash_flow_amount(_entry("BUY", date(2024, 1, 1), 1, amount=-1000)) == 1000
        assert cash_flow_amount(_entry("DEPOSIT", date(2024, 1, 1), amount=250)) == 250
        assert cash_flow_amount(_entry("INITIAL_BALANCE", date(2024, 1, 1), 1, amount=500)) == 500

    def test_outflows_are_negative(self):
        assert cash_flow_amount(_entry("SELL", date(2024, 1, 1), -1, amount=-300)) == -300
        assert cash_flow_amount(_entry("SELL", date(2024, 1, 1), 1, amount=300)) == -300
        assert cash_flow_amount(_entry("DIVIDEND", date(2024, 1, 1), amount=25)) == -25
        assert cash_flow_amount(_entry("WITHDRAWAL", date(2024, 1, 1), amount=100)) == -100

    def test_internal_entries_are_zero(self):
        assert cash_flow_amount(_entry("FEE", date(2024, 1, 1), amount=10)) == 0
        assert cash_flow_amount(_entry("SPLIT", date(2024, 1, 1), split_ratio=2)) == 0


class TestFoldQuantity:
    def test_buy_sell_and_split(self):
        entries = [
            _entry("BUY", date(2024, 1, 1), 10, seq=0),
            _entry("SPLIT", date(2024, 2, 1), split_ratio=3, seq=1),
            _entry("SELL", date(2024, 3, 1), -6, seq=2),
        ]
        assert fold_quantity(entries, date(2024, 1, 15)) == 10
        assert fold_quantity(entries, date(2024, 2, 15)) == 30
        assert fold_quantity(entries, date(2024, 3, 1)) == 24

    def test_split_ratio_falls_back_to_quantity(self):
        entries = [_entry("BUY", date(2024, 1, 1), 10), _entry("SPLIT", date(2024, 2, 1), 2, seq=1)]
        assert fold_quantity(entries) == 20

    def test_same_day_entries_apply_in_insertion_order(self):
        entries = [
            _entry("SPLIT", date(2024, 1, 1), split_ratio=2, seq=1),
            _entry("BUY", date(2024, 1, 1), 10, seq=0),
        ]
        assert fold_quantity(entries) == 20

    def test_dividends_only_count_when_reinvested(self):
        entries = [
            _entry("BUY", date(2024, 1, 1), 10),
            _entry("DIVIDEND", date(2024, 2, 1), 1, amount=50, seq=1),
            _entry("DIVIDEND_REINVEST", date(2024, 3, 1), 2, amount=100, seq=2),
        ]
        assert fold_quantity(entries) == 12

    def test_cash_only_entries_do_not_move_quantity(self):
        entries = [
            _entry("BUY", date(2024, 1, 1), 10),
            _entry("FEE", date(2024, 1, 2), 3, amount=5, seq=1),
            _entry("INTEREST", date(2024, 1, 3), 3, amount=5, seq=2),
            _entry("DEPOSIT", date(2024, 1, 4), 3, amount=5, seq=3),
        ]
        assert fold_quantity(entries) == 10


class TestFoldCostBasis:
    def test_sell_reduces_cost_proportionally(self):
        entries = [
            _entry("BUY", date(2024, 1, 1), 10, amount=1000),
            _entry("SELL", date(2024, 2, 1), -4, amount=-600, seq=1),
        ]
        quantity, cost = fold_cost_basis(entries)
        assert quantity == 6
        assert cost == pytest.approx(600)

    def test_split_keeps_total_cost(self):
        entries = [
            _entry("BUY", date(2024, 1, 1), 10, amount=1000),
            _entry("SPLIT", date(2024, 2, 1), split_ratio=4, seq=1),
        ]
        assert fold_cost_basis(entries) == (40, 1000)

    def test_acquisition_without_amount_uses_price(self):
        entries = [_entry("BUY", date(2024, 1, 1), 5, price=20.0)]
        assert fold_cost_basis(entries) == (5, 100)


class TestCompleteness:
    def test_initial_balance_is_always_trusted(self):
        entries = [_entry("INITIAL_BALANCE", date(2024, 1, 1), 1)]
        result = check_completeness(_holding(100), entries)
        assert result.trusted
        assert result.has_initial_balance

    def test_reconciles_within_tolerance(self):
        result = check_completeness(_holding(104), [_entry("BUY", date(2024, 1, 1), 100)])
        assert result.trusted
        assert result.relative_difference == pytest.approx(4 / 104)

    def test_outside_tolerance_is_untrusted(self):
        result = check_completeness(_holding(106), [_entry("BUY", date(2024, 1, 1), 100)])
        assert not result.trusted

    def test_zero_current_quantity_requires_zero_fold(self):
        closed = [_entry("BUY", date(2024, 1, 1), 5), _entry("SELL", date(2024, 2, 1), 5, seq=1)]
        assert check_completeness(_holding(0), closed).trusted
        assert not check_completeness(_holding(0), closed[:1]).trusted

    def test_missing_history_is_untrusted(self):
        assert not check_completeness(_holding(20), []).trusted


class TestHistoricalStateReconstructor:
    def test_quantity_at_date_follows_split_and_sell(self, source):
        recon = HistoricalStateReconstructor(source)
        assert recon.quantity_at_date("h-split", date(2024, 1, 15)) == 10
        assert recon.quantity_at_date("h-split", date(2024, 2, 15)) == 20
        assert recon.quantity_at_date("h-split", date(2024, 3, 15)) == 15
        assert recon.quantity_at_date("h-split", date(2023, 12, 31)) == 0

    def test_cost_basis_at_date(self, source):
        recon = HistoricalStateReconstructor(source)
        assert recon.cost_basis_at_date("h-split", date(2024, 2, 15)) == pytest.approx(1000)
        assert recon.cost_basis_at_date("h-split", date(2024, 3, 15)) == pytest.approx(750)

    def test_negative_quantity_is_clamped(self):
        from wealth_analytics_engine.data_loader import InMemoryLedgerSource

        src = InMemoryLedgerSource.from_dict({
            "holdings": [{"holding_id": "h", "account_id": "a", "symbol": "X", "quantity": 0,
                          "average_cost_basis": 0, "current_price": 1}],
            "ledger": [{"id": 1, "holding_id": "h", "type": "SELL", "date": "2024-01-01", "quantity": 5}],
        })
        assert HistoricalStateReconstructor(src).quantity_at_date("h", date(2024, 2, 1)) == 0

    def test_value_at_date_excludes_untrusted_holdings(self, source):
        recon = HistoricalStateReconstructor(source)
        # TSLA has no ledger history and would add 20 * 10 if it were included
        assert recon.value_at_date("acct-1", date(2024, 1, 22)) == pytest.approx(2150)

    def test_value_falls_back_to_current_price(self, source):
        recon = HistoricalStateReconstructor(source)
        # no KO / NVDA price history: current prices are used
        expected = 20 * 60 + 11 * 62
        assert recon.value_at_date("acct-3", date(2024, 2, 15)) == pytest.approx(expected)

    def test_value_series_weekly_index(self, source, period):
        recon = HistoricalStateReconstructor(source)
        series = recon.value_series("acct-1", *period)
        assert isinstance(series.index, pd.DatetimeIndex)
        assert list(series.round(6)) == [2000.0, 2050.0, 2100.0, 2150.0, 2100.0]

    def test_value_series_appends_end_date(self, source):
        recon = HistoricalStateReconstructor(source)
        series = recon.value_series("acct-1", date(2024, 1, 1), date(2024, 1, 10))
        assert [ts.date() for ts in series.index] == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 10)]

    def test_cash_flow_series_attributes_flows_to_interval(self, source):
        recon = HistoricalStateReconstructor(source)
        snap = recon.snapshot("acct-2")
        series = recon.value_series("acct-2", date(2024, 1, 1), date(2024, 1, 22), snapshot=snap)
        flows = recon.cash_flow_series(snap, series.index)
        assert list(flows) == [0.0, 0.0, 1000.0, 0.0]

    def test_cash_flow_series_skips_excluded_holdings(self, partial_source, period):
        recon = HistoricalStateReconstructor(partial_source)
        snap = recon.snapshot("partial")
        assert [e.holding_id for e in snap.trusted_entries] == ["p-aapl"]
        series = recon.value_series("partial", *period, snapshot=snap)
        assert list(series) == [1000.0] * 5
        assert list(recon.cash_flow_series(snap, series.index)) == [0.0] * 5

    def test_cancelled_token_stops_sampling(self, source, period):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CalculationCancelled):
            HistoricalStateReconstructor(source).value_series("acct-1", *period, cancel_token=token)

    def test_unknown_ids_raise(self, source):
        recon = HistoricalStateReconstructor(source)
        with pytest.raises(UnknownAccountError):
            recon.value_at_date("nope", date(2024, 1, 1))
        with pytest.raises(UnknownHoldingError):
            recon.quantity_at_date("nope", date(2024, 1, 1))


class TestTransactionHistoryStatus:
    def test_incomplete_account_lists_holdings_needing_balance(self, source):
        status = HistoricalStateReconstructor(source).transaction_history_status("acct-1")
        assert not status.is_complete
        assert status.has_initial_balance
        assert status.first_transaction_date == date(2024, 1, 1)
        assert [h.symbol for h in status.holdings_needing_balance] == ["TSLA"]
        assert status.holdings_needing_balance[0].current_quantity == 20

    def test_complete_account(self, source):
        status = HistoricalStateReconstructor(source).transaction_history_status("acct-3")
        assert status.is_complete
        assert not status.has_initial_balance
        assert status.holdings_needing_balance == ()

    def test_empty_account(self, source):
        status = HistoricalStateReconstructor(source).transaction_history_status("acct-empty")
        assert status.is_complete
        assert status.first_transaction_date is None
        assert status.to_api_response()["first_transaction_date"] is None
