"""Ledger reconstruction records: per-holding completeness and account history status."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple

from wealth_analytics_engine._vendor import make_json_safe


@dataclass(frozen=True)
class HoldingCompleteness:
    """
    Whether a holding's ledger is trustworthy enough to reconstruct history.

    ``trusted`` is True when the ledger carries an INITIAL_BALANCE entry or
    when the full-ledger quantity fold reconciles with the current quantity
    within the configured relative tolerance. ``relative_difference`` is
    ``None`` when the current quantity is zero.
    """

    holding_id: Any
    symbol: str
    trusted: bool
    has_initial_balance: bool
    reconstructed_quantity: float
    current_quantity: float
    relative_difference: Optional[float] = None

    def to_api_response(self) -> Dict[str, Any]:
        return make_json_safe(self)


@dataclass(frozen=True)
class HoldingNeedingBalance:
    holding_id: Any
    symbol: str
    current_quantity: float
    current_price: float


@dataclass(frozen=True)
class TransactionHistoryStatus:
    """Account-level summary of ledger completeness."""

    account_id: Any
    is_complete: bool
    has_initial_balance: bool
    first_transaction_date: Optional[date]
    holdings_needing_balance: Tuple[HoldingNeedingBalance, ...] = ()

    def to_api_response(self) -> Dict[str, Any]:
        return make_json_safe(self)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "is_complete": self.is_complete,
            "has_initial_balance": self.has_initial_balance,
            "holdings_needing_balance": len(self.holdings_needing_balance),
        }
