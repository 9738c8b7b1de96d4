"""
Data loading and caching collaborators.

- ``InMemoryLedgerSource``: a ``LedgerDataSource`` over materialized records,
  built from Python dicts or a YAML fixture file.
- ``BenchmarkCache``: explicit TTL + LRU cache injected into engines that
  repeatedly read the same benchmark series (replaces a process-wide static
  dictionary).
"""

from __future__ import annotations

import bisect
import threading
import time
from collections import OrderedDict, defaultdict
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Union

import yaml

from wealth_analytics_engine._logging import analytics_logger
from wealth_analytics_engine.data_objects import Debt, Holding, LedgerEntry, PricePoint, to_date
from wealth_analytics_engine.exceptions import InvalidInputError, UnknownAccountError, UnknownHoldingError


class InMemoryLedgerSource:
    """
    Read-only in-memory implementation of ``LedgerDataSource``.

    Example:
        source = InMemoryLedgerSource.from_yaml("fixtures/brokerage.yaml")
        holdings = source.get_holdings("acct-1")
    """

    def __init__(
        self,
        holdings: Iterable[Holding] = (),
        ledger: Iterable[LedgerEntry] = (),
        prices: Iterable[PricePoint] = (),
        debts: Optional[Dict[Any, Iterable[Debt]]] = None,
        accounts: Iterable[Any] = (),
    ):
        self._holdings: Dict[Any, Holding] = {h.holding_id: h for h in holdings}
        self._accounts = set(accounts) | {h.account_id for h in self._holdings.values()}

        entries: List[LedgerEntry] = []
        for entry in ledger:
            if entry.account_id is None and entry.holding_id in self._holdings:
                # ledger rows recorded without an account inherit the holding's account
                entry = LedgerEntry(
                    id=entry.id,
                    holding_id=entry.holding_id,
                    account_id=self._holdings[entry.holding_id].account_id,
                    type=entry.type,
                    date=entry.date,
                    amount=entry.amount,
                    quantity=entry.quantity,
                    price=entry.price,
                    reinvested=entry.reinvested,
                    split_ratio=entry.split_ratio,
                    sequence=entry.sequence,
                )
            entries.append(entry)
        self._ledger = tuple(sorted(entries, key=lambda e: e.sort_key))

        by_symbol: Dict[str, List[PricePoint]] = defaultdict(list)
        for point in prices:
            by_symbol[point.symbol].append(point)
        self._prices = {sym: sorted(points, key=lambda p: p.date) for sym, points in by_symbol.items()}
        self._price_dates = {sym: [p.date for p in points] for sym, points in self._prices.items()}

        self._debts = {user: tuple(items) for user, items in (debts or {}).items()}

    # ── LedgerDataSource ────────────────────────────────────────────────────

    def get_ledger_entries(
        self,
        *,
        holding_id: Any = None,
        account_id: Any = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[LedgerEntry]:
        if (holding_id is None) == (account_id is None):
            raise InvalidInputError("Pass exactly one of holding_id or account_id")
        if holding_id is not None and holding_id not in self._holdings:
            raise UnknownHoldingError(holding_id)
        if account_id is not None and account_id not in self._accounts:
            raise UnknownAccountError(account_id)
        start, end = to_date(start), to_date(end)

        out = []
        for entry in self._ledger:
            if holding_id is not None and entry.holding_id != holding_id:
                continue
            if account_id is not None and entry.account_id != account_id:
                continue
            if start is not None and entry.date < start:
                continue
            if end is not None and entry.date > end:
                continue
            out.append(entry)
        return tuple(out)

    def get_holdings(self, account_id: Any) -> Sequence[Holding]:
        if account_id not in self._accounts:
            raise UnknownAccountError(account_id)
        return tuple(h for h in self._holdings.values() if h.account_id == account_id)

    def get_holding(self, holding_id: Any) -> Holding:
        try:
            return self._holdings[holding_id]
        except KeyError:
            raise UnknownHoldingError(holding_id) from None

    def get_price_at_or_before(self, symbol: str, on: date) -> Optional[PricePoint]:
        sym = str(symbol).upper()
        dates = self._price_dates.get(sym)
        if not dates:
            return None
        idx = bisect.bisect_right(dates, to_date(on))
        if idx == 0:
            return None
        return self._prices[sym][idx - 1]

    def get_price_history(self, symbol: str, start: date, end: date) -> Sequence[PricePoint]:
        sym = str(symbol).upper()
        start, end = to_date(start), to_date(end)
        return tuple(p for p in self._prices.get(sym, ()) if start <= p.date <= end)

    def get_debts(self, user_id: Any) -> Sequence[Debt]:
        return self._debts.get(user_id, ())

    # ── Construction ────────────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryLedgerSource":
        """
        Build a source from a plain mapping.

        Expected keys (all optional): ``accounts`` (list of ids), ``holdings``
        (list of holding dicts), ``ledger`` (list of entry dicts, insertion
        order preserved as the tie-break), ``prices`` (``{symbol: [{date,
        close, ...}]}``) and ``debts`` (``{user_id: [debt dicts]}``).
        """
        holdings = [Holding.from_dict(h) for h in data.get("holdings") or []]
        ledger = [LedgerEntry.from_dict(e, sequence=i) for i, e in enumerate(data.get("ledger") or [])]
        prices = [
            PricePoint.from_dict(row, symbol=symbol)
            for symbol, rows in (data.get("prices") or {}).items()
            for row in rows or []
        ]
        debts = {
            user: [Debt.from_dict(d) for d in items or []]
            for user, items in (data.get("debts") or {}).items()
        }
        return cls(
            holdings=holdings,
            ledger=ledger,
            prices=prices,
            debts=debts,
            accounts=data.get("accounts") or [],
        )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "InMemoryLedgerSource":
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise InvalidInputError(f"Ledger fixture {yaml_path} must contain a mapping")
        return cls.from_dict(data)


class BenchmarkCache:
    """
    Thread-safe TTL cache with least-recently-used eviction.

    ``read(key, loader)`` returns the cached value when it is younger than
    ``ttl_seconds``; otherwise it calls ``loader()``, stores and returns the
    result. Expired entries are dropped on access; the oldest entry is evicted
    once ``max_entries`` is exceeded.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        from wealth_analytics_engine import config

        self.ttl_seconds = float(ttl_seconds if ttl_seconds is not None else config.BENCHMARK_CACHE["ttl_seconds"])
        self.max_entries = int(max_entries if max_entries is not None else config.BENCHMARK_CACHE["max_entries"])
        if self.max_entries <= 0:
            raise InvalidInputError("max_entries must be positive")
        self._clock = clock
        self._entries: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def read(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        now = self._clock()
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                fetched_at, value = cached
                if now - fetched_at < self.ttl_seconds:
                    self._entries.move_to_end(key)
                    self.hits += 1
                    return value
                del self._entries[key]
            self.misses += 1

        value = loader()

        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                analytics_logger.debug("benchmark_cache evicted %s", evicted)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        return len(self._entries)
