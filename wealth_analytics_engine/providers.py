"""Read-only data-access protocol consumed by the analytics engines."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from wealth_analytics_engine.data_objects import Debt, Holding, LedgerEntry, PricePoint


@runtime_checkable
class LedgerDataSource(Protocol):
    """
    Narrow read-only view over ledger, holdings, prices and debts.

    Implementations return fully materialized, immutable snapshots; the
    engines never trigger implicit loads. ``get_ledger_entries`` takes exactly
    one of ``holding_id`` / ``account_id`` and returns entries ordered by
    (date, insertion order). Unknown account or holding ids raise
    ``UnknownAccountError`` / ``UnknownHoldingError``.
    """

    def get_ledger_entries(
        self,
        *,
        holding_id: Any = None,
        account_id: Any = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[LedgerEntry]: ...

    def get_holdings(self, account_id: Any) -> Sequence[Holding]: ...

    def get_holding(self, holding_id: Any) -> Holding: ...

    def get_price_at_or_before(self, symbol: str, on: date) -> Optional[PricePoint]: ...

    def get_price_history(self, symbol: str, start: date, end: date) -> Sequence[PricePoint]: ...

    def get_debts(self, user_id: Any) -> Sequence[Debt]: ...
