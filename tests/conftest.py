"""Shared test fixtures for wealth_analytics_engine.

The ``ledger_data`` portfolio is built so that weekly valuations are easy to
check by hand over 2024-01-01 .. 2024-01-29 (five weekly samples):

acct-1  AAPL 10 sh (initial balance) + MSFT 5 sh (buy), plus a TSLA holding
        with no ledger history (excluded from valuations).
        values: 2000, 2050, 2100, 2150, 2100
acct-2  VTI 10 sh initial balance, +10 sh bought 2024-01-10 at a flat $100.
acct-3  split / sell / dividend history for fold tests.
"""

from datetime import date

import pytest

from wealth_analytics_engine.data_loader import BenchmarkCache, InMemoryLedgerSource


WEEKS = [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22), date(2024, 1, 29)]
AAPL_CLOSES = [100.0, 110.0, 105.0, 115.0, 120.0]
MSFT_CLOSES = [200.0, 190.0, 210.0, 200.0, 180.0]
SPY_CLOSES = [400.0, 404.0, 400.0, 408.0, 412.0]
ACCT1_VALUES = [2000.0, 2050.0, 2100.0, 2150.0, 2100.0]


def _closes(values):
    return [{"date": d.isoformat(), "close": c} for d, c in zip(WEEKS, values)]


@pytest.fixture
def ledger_data():
    return {
        "accounts": ["acct-1", "acct-2", "acct-3", "acct-empty"],
        "holdings": [
            {"holding_id": "h-aapl", "account_id": "acct-1", "symbol": "AAPL", "quantity": 10,
             "average_cost_basis": 100, "current_price": 120},
            {"holding_id": "h-msft", "account_id": "acct-1", "symbol": "MSFT", "quantity": 5,
             "average_cost_basis": 200, "current_price": 180},
            {"holding_id": "h-tsla", "account_id": "acct-1", "symbol": "TSLA", "quantity": 20,
             "average_cost_basis": 250, "current_price": 10},
            {"holding_id": "h-vti", "account_id": "acct-2", "symbol": "VTI", "quantity": 20,
             "average_cost_basis": 100, "current_price": 100},
            {"holding_id": "h-split", "account_id": "acct-3", "symbol": "NVDA", "quantity": 15,
             "average_cost_basis": 50, "current_price": 60},
            {"holding_id": "h-div", "account_id": "acct-3", "symbol": "KO", "quantity": 11,
             "average_cost_basis": 60, "current_price": 62},
        ],
        "ledger": [
            {"id": 1, "holding_id": "h-aapl", "type": "INITIAL_BALANCE", "date": "2024-01-01",
             "quantity": 10, "price": 100, "amount": 1000},
            {"id": 2, "holding_id": "h-msft", "type": "BUY", "date": "2024-01-01",
             "quantity": 5, "price": 200, "amount": 1000},
            {"id": 3, "holding_id": "h-vti", "type": "INITIAL_BALANCE", "date": "2024-01-01",
             "quantity": 10, "price": 100, "amount": 1000},
            {"id": 4, "holding_id": "h-vti", "type": "BUY", "date": "2024-01-10",
             "quantity": 10, "price": 100, "amount": 1000},
            {"id": 5, "holding_id": "h-split", "type": "BUY", "date": "2024-01-01",
             "quantity": 10, "price": 100, "amount": 1000},
            {"id": 6, "holding_id": "h-split", "type": "SPLIT", "date": "2024-02-01", "split_ratio": 2},
            {"id": 7, "holding_id": "h-split", "type": "SELL", "date": "2024-03-01",
             "quantity": -5, "price": 60, "amount": -300},
            {"id": 8, "holding_id": "h-div", "type": "BUY", "date": "2024-01-01",
             "quantity": 10, "price": 60, "amount": 600},
            {"id": 9, "holding_id": "h-div", "type": "DIVIDEND_REINVEST", "date": "2024-02-01",
             "quantity": 1, "price": 60, "amount": 60},
            {"id": 10, "holding_id": "h-div", "type": "DIVIDEND", "date": "2024-03-01", "amount": 25},
        ],
        "prices": {
            "AAPL": _closes(AAPL_CLOSES),
            "MSFT": _closes(MSFT_CLOSES),
            "SPY": _closes(SPY_CLOSES),
            "VTI": [{"date": "2024-01-01", "close": 100.0}],
        },
        "debts": {
            "user-1": [
                {"id": "card", "balance": 5000, "annual_rate_percent": 22, "minimum_payment": 150},
                {"id": "auto", "balance": 8000, "annual_rate_percent": 6, "minimum_payment": 250},
            ],
        },
    }


@pytest.fixture
def source(ledger_data):
    return InMemoryLedgerSource.from_dict(ledger_data)


@pytest.fixture
def benchmark_cache():
    return BenchmarkCache(ttl_seconds=3600, max_entries=16)


@pytest.fixture
def period():
    return WEEKS[0], WEEKS[-1]


@pytest.fixture
def partial_source():
    """Flat-priced account whose MSFT ledger only explains 10 of its 100 shares."""
    flat = [100.0] * len(WEEKS)
    return InMemoryLedgerSource.from_dict({
        "holdings": [
            {"holding_id": "p-aapl", "account_id": "partial", "symbol": "AAPL", "quantity": 10,
             "average_cost_basis": 100, "current_price": 100},
            {"holding_id": "p-msft", "account_id": "partial", "symbol": "MSFT", "quantity": 100,
             "average_cost_basis": 100, "current_price": 100},
        ],
        "ledger": [
            {"id": 1, "holding_id": "p-aapl", "type": "INITIAL_BALANCE", "date": "2024-01-01",
             "quantity": 10, "price": 100, "amount": 1000},
            {"id": 2, "holding_id": "p-msft", "type": "BUY", "date": "2024-01-10",
             "quantity": 10, "price": 100, "amount": 1000},
        ],
        "prices": {"AAPL": _closes(flat), "MSFT": _closes(flat)},
    })
