"""Tests for wealth_analytics_engine.tax_insights."""

from datetime import date

import pytest

from wealth_analytics_engine import config
from wealth_analytics_engine.cancellation import CancellationToken
from wealth_analytics_engine.constants import suggest_replacement
from wealth_analytics_engine.data_loader import InMemoryLedgerSource
from wealth_analytics_engine.data_objects import Holding
from wealth_analytics_engine.exceptions import CalculationCancelled, UnknownAccountError
from wealth_analytics_engine.tax_insights import (
    TaxLotAnalyzer,
    classify_holding_period,
    estimate_tax_liability,
    resolve_purchase_date,
)


AS_OF = date(2024, 1, 1)


def _holding(holding_id, symbol, price, cost=1000.0, quantity=1, purchase_date="2023-01-01", **extra):
    row = {
        "holding_id": holding_id,
        "account_id": "taxable",
        "symbol": symbol,
        "quantity": quantity,
        "average_cost_basis": cost,
        "current_price": price,
        "purchase_date": purchase_date,
    }
    row.update(extra)
    return row


def _analyzer(holdings, ledger=()):
    return TaxLotAnalyzer(InMemoryLedgerSource.from_dict({"holdings": holdings, "ledger": list(ledger)}))


class TestHoldingPeriod:
    def test_one_year_is_long_term(self):
        assert classify_holding_period(365) == "long_term"
        assert classify_holding_period(364) == "short_term"

    def test_configured_threshold(self, monkeypatch):
        monkeypatch.setitem(config.TAX_DEFAULTS, "long_term_days", 400)
        assert classify_holding_period(365) == "short_term"

    def test_holding_dates_at_boundary(self):
        analyzer = _analyzer([
            _holding("h1", "AAA", 1200, purchase_date="2023-01-01"),
            _holding("h2", "BBB", 1200, purchase_date="2023-01-02"),
        ])
        result = analyzer.analyze("taxable", as_of=AS_OF)
        by_symbol = {d.symbol: d for d in result.holdings}
        assert by_symbol["AAA"].holding_period_days == 365
        assert by_symbol["AAA"].tax_type == "long_term"
        assert by_symbol["BBB"].holding_period_days == 364
        assert by_symbol["BBB"].tax_type == "short_term"


class TestPurchaseDate:
    def test_holding_date_wins(self, source):
        holding = Holding("h", "a", "X", 1, 1, 1, purchase_date=date(2020, 5, 1), created_at=date(2021, 1, 1))
        entries = source.get_ledger_entries(holding_id="h-aapl")
        assert resolve_purchase_date(holding, entries) == (date(2020, 5, 1), "holding")

    def test_earliest_acquisition_in_ledger(self, source):
        holding = Holding("h-vti", "acct-2", "VTI", 20, 100, 100, created_at=date(2019, 1, 1))
        entries = source.get_ledger_entries(holding_id="h-vti")
        assert resolve_purchase_date(holding, entries) == (date(2024, 1, 1), "ledger")

    def test_created_at_fallback(self):
        holding = Holding("h", "a", "X", 1, 1, 1, created_at=date(2021, 1, 1))
        assert resolve_purchase_date(holding, []) == (date(2021, 1, 1), "created_at")

    def test_unknown(self):
        assert resolve_purchase_date(Holding("h", "a", "X", 1, 1, 1), []) == (None, "unknown")


class TestHarvesting:
    def test_loss_must_exceed_threshold(self):
        analyzer = _analyzer([
            _holding("h1", "AAA", 501),
            _holding("h2", "BBB", 500),
            _holding("h3", "CCC", 499),
        ])
        result = analyzer.analyze("taxable", as_of=AS_OF)
        assert [o.symbol for o in result.harvesting_opportunities] == ["CCC"]
        opportunity = result.harvesting_opportunities[0]
        assert opportunity.loss == -501.0
        assert opportunity.tax_type == "long_term"
        assert opportunity.tax_savings == pytest.approx(501 * 0.15)

    def test_short_term_loss_uses_ordinary_rate(self):
        analyzer = _analyzer([_holding("h1", "AAPL", 0, purchase_date="2023-06-01")])
        opportunity = analyzer.analyze("taxable", as_of=AS_OF).harvesting_opportunities[0]
        assert opportunity.tax_type == "short_term"
        assert opportunity.tax_savings == pytest.approx(1000 * 0.24)
        assert opportunity.replacement_symbol == "VGT"

    def test_ordered_by_savings(self):
        analyzer = _analyzer([
            _holding("h1", "JPM", 300),
            _holding("h2", "XOM", 100),
        ])
        result = analyzer.analyze("taxable", as_of=AS_OF)
        assert [o.symbol for o in result.harvesting_opportunities] == ["XOM", "JPM"]

    def test_configured_threshold(self, monkeypatch):
        monkeypatch.setitem(config.TAX_DEFAULTS, "harvest_loss_threshold", 100.0)
        analyzer = _analyzer([_holding("h1", "AAA", 850)])
        assert len(analyzer.analyze("taxable", as_of=AS_OF).harvesting_opportunities) == 1

    @pytest.mark.parametrize(
        "symbol, replacement",
        [("MSFT", "VGT"), ("TSLA", "DRIV"), ("SPY", "VOO"), ("KO", "VTI"), ("VTI", "ITOT"), ("vti", "ITOT")],
    )
    def test_replacement_is_never_the_same_symbol(self, symbol, replacement):
        assert suggest_replacement(symbol) == replacement


class TestLiability:
    def test_positive_gains(self):
        liability = estimate_tax_liability(1000, 2000)
        assert liability.short_term_tax == pytest.approx(240)
        assert liability.long_term_tax == pytest.approx(300)
        assert liability.total_tax == pytest.approx(540)
        assert liability.effective_rate_percent == pytest.approx(18.0)

    def test_losses_are_not_taxed(self):
        liability = estimate_tax_liability(-500, 1000)
        assert liability.short_term_tax == 0.0
        assert liability.total_tax == pytest.approx(150)
        assert liability.effective_rate_percent == pytest.approx(15.0)

    def test_no_gains(self):
        liability = estimate_tax_liability(-10, 0)
        assert liability.total_tax == 0.0
        assert liability.effective_rate_percent == 0.0

    def test_configured_rates(self, monkeypatch):
        monkeypatch.setitem(config.TAX_DEFAULTS, "short_term_rate", 0.32)
        assert estimate_tax_liability(1000, 0).total_tax == pytest.approx(320)


class TestAnalyze:
    def test_fixture_account(self, source):
        result = TaxLotAnalyzer(source).analyze("acct-1", as_of=date(2024, 6, 1))
        by_symbol = {d.symbol: d for d in result.holdings}
        assert by_symbol["AAPL"].purchase_date_source == "ledger"
        assert by_symbol["AAPL"].holding_period_days == 152
        assert by_symbol["TSLA"].purchase_date_source == "unknown"
        assert by_symbol["TSLA"].holding_period_days == 0
        assert by_symbol["TSLA"].tax_type == "short_term"
        assert [d.symbol for d in result.holdings] == ["TSLA", "AAPL", "MSFT"]

        assert result.unrealized_gains.short_term.dollar == pytest.approx(-4700)
        assert result.unrealized_gains.long_term.dollar == 0.0
        assert result.unrealized_gains.total.percent == pytest.approx(-4700 / 7000 * 100)
        assert result.estimated_tax_liability.total_tax == 0.0

        tsla = result.harvesting_opportunities[0]
        assert tsla.symbol == "TSLA"
        assert tsla.tax_savings == pytest.approx(4800 * 0.24)
        assert tsla.replacement_symbol == "DRIV"
        assert [f["flag"] for f in result.flags] == ["unknown_holding_period", "harvest_available"]

    def test_no_actions(self):
        result = _analyzer([_holding("h1", "AAA", 1200)]).analyze("taxable", as_of=AS_OF)
        assert [f["flag"] for f in result.flags] == ["no_tax_actions"]
        assert result.estimated_tax_liability.total_tax == pytest.approx(200 * 0.15)

    def test_short_term_gain_flag(self):
        result = _analyzer([_holding("h1", "AAA", 1200, purchase_date="2023-10-01")]).analyze("taxable", as_of=AS_OF)
        assert result.flags[0]["flag"] == "short_term_gains"
        assert result.flags[0]["details"]["amount"] == 200.0

    def test_api_response(self, source):
        payload = TaxLotAnalyzer(source).analyze("acct-1", as_of=date(2024, 6, 1)).to_api_response()
        assert payload["as_of"] == "2024-06-01"
        assert payload["unrealized_gains"]["short_term"]["dollar"] == pytest.approx(-4700)
        assert payload["harvesting_opportunities"][0]["replacement_symbol"] == "DRIV"

    def test_unknown_account(self, source):
        with pytest.raises(UnknownAccountError):
            TaxLotAnalyzer(source).analyze("missing")

    def test_cancellation(self, source):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(CalculationCancelled):
            TaxLotAnalyzer(source).analyze("acct-1", cancel_token=token)
