"""
Stock tracking: which symbols each user follows.

A symbol is quoted and stored the first time any user tracks it.
refresh_tracked_prices() re-quotes every tracked symbol in one request; call
it from a scheduler to keep stored prices current.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict

from stocksim_core.market.lookup import StockLookup, normalize_symbol
from stocksim_core.models import Stock
from stocksim_core.store.base import Store

logger = logging.getLogger(__name__)


class StockTrackingService:
    def __init__(self, store: Store, lookup: StockLookup) -> None:
        self.store = store
        self.lookup = lookup
        self._lock = threading.Lock()
        self._tracked: dict[int, set[str]] = defaultdict(set)

    def track_stock(self, user_id: int, symbol: str) -> Stock | None:
        """
        Add symbol to the user's tracked set. Returns the stored stock when
        this call stored it, else None.
        """
        sym = normalize_symbol(symbol)
        with self._lock:
            first = self._untracked(sym)
            self._tracked[user_id].add(sym)
        logger.info("User %s tracking %s", user_id, sym)
        if not first:
            return None
        try:
            return self.fetch_and_store_stock(sym)
        except Exception:
            with self._lock:
                self._tracked[user_id].discard(sym)
            raise

    def untrack_stock(self, user_id: int, symbol: str) -> None:
        sym = normalize_symbol(symbol)
        with self._lock:
            tracked = self._tracked.get(user_id)
            if tracked is None or sym not in tracked:
                return
            tracked.discard(sym)
            if not tracked:
                del self._tracked[user_id]
        logger.info("User %s stopped tracking %s", user_id, sym)

    def get_user_tracked_stocks(self, user_id: int) -> set[str]:
        with self._lock:
            return set(self._tracked.get(user_id, ()))

    def get_all_tracked_stocks(self) -> set[str]:
        with self._lock:
            return set().union(*self._tracked.values()) if self._tracked else set()

    def is_stock_untracked(self, symbol: str) -> bool:
        """True if no user tracks symbol."""
        sym = normalize_symbol(symbol)
        with self._lock:
            return self._untracked(sym)

    def _untracked(self, symbol: str) -> bool:
        return not any(symbol in symbols for symbols in self._tracked.values())

    def fetch_and_store_stock(self, symbol: str) -> Stock:
        """Quote symbol and store it in its own unit of work."""
        sym = normalize_symbol(symbol)
        with self.store.begin() as uow:
            stock = self.lookup.fetch_and_store(uow, sym)
            uow.commit()
        return stock

    def refresh_tracked_prices(self) -> list[Stock]:
        symbols = sorted(self.get_all_tracked_stocks())
        if not symbols:
            return []
        with self.store.begin() as uow:
            stocks = self.lookup.refresh(uow, symbols)
            uow.commit()
        logger.info("Refreshed prices for %d of %d tracked stock(s)", len(stocks), len(symbols))
        return stocks
