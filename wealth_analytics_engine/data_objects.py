"""
Core Data Objects Module

Immutable records handed to the analytics engines by the data-access layer.

Classes:
- LedgerEntry: one append-only account transaction
- Holding: current aggregate state of a position (never the source of truth
  for historical reconstruction; the ledger is)
- PricePoint: one trading day of OHLCV data
- Debt: a liability with balance, APR and payment terms

All records validate and normalize their inputs in ``__post_init__`` and raise
``InvalidInputError`` on malformed data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional

import pandas as pd

from wealth_analytics_engine.constants import TransactionType, parse_transaction_type
from wealth_analytics_engine.exceptions import InvalidInputError


def to_date(value: Any) -> Optional[date]:
    """Normalize ``date``/``datetime``/ISO string/Timestamp to a ``date``."""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return pd.Timestamp(value).date()
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Unparseable date: {value!r}") from exc


def _optional_float(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be numeric, got {value!r}") from exc


@dataclass(frozen=True)
class LedgerEntry:
    """
    One immutable ledger transaction.

    ``quantity`` and ``amount`` are taken as recorded; sell-side magnitudes may
    be negative-signed, so consumers always fold ``abs()`` values. ``sequence``
    is the insertion order used to break same-day ties.
    """

    id: Any
    holding_id: Any
    type: TransactionType
    date: date
    amount: float = 0.0
    quantity: Optional[float] = None
    price: Optional[float] = None
    account_id: Any = None
    reinvested: bool = False
    split_ratio: Optional[float] = None
    sequence: int = 0

    def __post_init__(self):
        try:
            tx_type, reinvested = parse_transaction_type(self.type, self.quantity)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        object.__setattr__(self, "type", tx_type)
        object.__setattr__(self, "reinvested", bool(self.reinvested or reinvested))
        entry_date = to_date(self.date)
        if entry_date is None:
            raise InvalidInputError(f"Ledger entry {self.id!r} has no date")
        object.__setattr__(self, "date", entry_date)
        object.__setattr__(self, "amount", float(_optional_float(self.amount, "amount") or 0.0))
        object.__setattr__(self, "quantity", _optional_float(self.quantity, "quantity"))
        object.__setattr__(self, "price", _optional_float(self.price, "price"))
        object.__setattr__(self, "split_ratio", _optional_float(self.split_ratio, "split_ratio"))
        if self.price is not None and self.price < 0:
            raise InvalidInputError(f"Ledger entry {self.id!r} has a negative price")
        if tx_type is TransactionType.SPLIT:
            ratio = self.split_ratio if self.split_ratio is not None else self.quantity
            if ratio is None or ratio <= 0:
                raise InvalidInputError(f"Split entry {self.id!r} needs a positive ratio")

    @property
    def sort_key(self):
        return (self.date, self.sequence)

    @property
    def ratio(self) -> float:
        """Split ratio, falling back to ``quantity`` when no explicit ratio is recorded."""
        if self.split_ratio is not None:
            return self.split_ratio
        return float(self.quantity or 1.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], sequence: int = 0) -> "LedgerEntry":
        return cls(
            id=data.get("id"),
            holding_id=data.get("holding_id"),
            account_id=data.get("account_id"),
            type=data.get("type"),
            date=data.get("date"),
            amount=data.get("amount", 0.0),
            quantity=data.get("quantity"),
            price=data.get("price"),
            reinvested=bool(data.get("reinvested", False)),
            split_ratio=data.get("split_ratio"),
            sequence=int(data.get("sequence", sequence)),
        )


@dataclass(frozen=True)
class Holding:
    """Current aggregate state of one position in an account."""

    holding_id: Any
    account_id: Any
    symbol: str
    quantity: float
    average_cost_basis: float
    current_price: float
    purchase_date: Optional[date] = None
    created_at: Optional[date] = None
    name: Optional[str] = None

    def __post_init__(self):
        if not self.symbol:
            raise InvalidInputError(f"Holding {self.holding_id!r} has an empty symbol")
        object.__setattr__(self, "symbol", str(self.symbol).upper())
        for name in ("quantity", "average_cost_basis", "current_price"):
            object.__setattr__(self, name, float(_optional_float(getattr(self, name), name) or 0.0))
        if self.current_price < 0 or self.average_cost_basis < 0:
            raise InvalidInputError(f"Holding {self.holding_id!r} has a negative price or cost basis")
        object.__setattr__(self, "purchase_date", to_date(self.purchase_date))
        object.__setattr__(self, "created_at", to_date(self.created_at))

    @property
    def current_value(self) -> float:
        return self.quantity * self.current_price

    @property
    def total_cost_basis(self) -> float:
        return self.quantity * self.average_cost_basis

    @property
    def unrealized_gain_loss(self) -> float:
        return self.current_value - self.total_cost_basis

    @property
    def unrealized_gain_loss_percent(self) -> float:
        basis = self.total_cost_basis
        return (self.unrealized_gain_loss / basis) * 100 if basis else 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Holding":
        return cls(
            holding_id=data.get("holding_id", data.get("id")),
            account_id=data.get("account_id"),
            symbol=data.get("symbol", ""),
            quantity=data.get("quantity", 0.0),
            average_cost_basis=data.get("average_cost_basis", 0.0),
            current_price=data.get("current_price", 0.0),
            purchase_date=data.get("purchase_date"),
            created_at=data.get("created_at"),
            name=data.get("name"),
        )


@dataclass(frozen=True)
class PricePoint:
    symbol: str
    date: date
    close: float
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    volume: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "symbol", str(self.symbol).upper())
        object.__setattr__(self, "date", to_date(self.date))
        object.__setattr__(self, "close", float(self.close))
        if self.close < 0:
            raise InvalidInputError(f"Negative close for {self.symbol} on {self.date}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], symbol: Optional[str] = None) -> "PricePoint":
        return cls(
            symbol=data.get("symbol", symbol),
            date=data.get("date"),
            close=data.get("close"),
            open=data.get("open"),
            high=data.get("high"),
            low=data.get("low"),
            volume=data.get("volume"),
        )


@dataclass(frozen=True)
class Debt:
    """
    A liability account.

    ``annual_rate_percent`` is an APR in percent (19.99 for 19.99%).
    ``minimum_payment`` may be omitted, in which case payoff simulations
    estimate it as the greater of the configured floor and a share of balance.
    """

    id: Any
    balance: float
    annual_rate_percent: float
    minimum_payment: Optional[float] = None
    original_amount: Optional[float] = None
    term_months: Optional[int] = None
    start_date: Optional[date] = None
    name: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "balance", float(self.balance))
        object.__setattr__(self, "annual_rate_percent", float(self.annual_rate_percent or 0.0))
        object.__setattr__(self, "minimum_payment", _optional_float(self.minimum_payment, "minimum_payment"))
        object.__setattr__(self, "original_amount", _optional_float(self.original_amount, "original_amount"))
        object.__setattr__(self, "start_date", to_date(self.start_date))
        if self.balance < 0:
            raise InvalidInputError(f"Debt {self.id!r} has a negative balance")
        if self.annual_rate_percent < 0:
            raise InvalidInputError(f"Debt {self.id!r} has a negative interest rate")
        if self.term_months is not None:
            object.__setattr__(self, "term_months", int(self.term_months))
            if self.term_months < 0:
                raise InvalidInputError(f"Debt {self.id!r} has a negative term")

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate_percent / 100 / 12

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Debt":
        return cls(
            id=data.get("id"),
            balance=data.get("balance", 0.0),
            annual_rate_percent=data.get("annual_rate_percent", 0.0),
            minimum_payment=data.get("minimum_payment"),
            original_amount=data.get("original_amount"),
            term_months=data.get("term_months"),
            start_date=data.get("start_date"),
            name=data.get("name"),
        )
