"""
Stock lookup: resolve a symbol to a stored Stock, quoting it on first use.

Writes go through the caller's unit of work, so a stock stored while
processing an order is rolled back with the order. quote_and_commit() is
the exception: it stores a fresh quote in its own unit of work, so orders
that only read the stock never conflict on its price.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

import pandas as pd

from stocksim_core.config import Settings
from stocksim_core.errors import ConcurrentModificationError, InvalidOrderError, StockLookupError
from stocksim_core.market.source import MarketDataSource
from stocksim_core.models import Stock
from stocksim_core.store.base import Store, UnitOfWork

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    """Upper-case, stripped symbol. Raises InvalidOrderError if empty."""
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidOrderError(f"Invalid stock symbol: {symbol!r}")
    return symbol.strip().upper()


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: Decimal
    # None when the source sent no name
    company_name: str | None = None


class StockLookup:
    """
    Stock cache in front of a MarketDataSource.
    resolve() returns the stored stock when there is one and only quotes
    unseen symbols. Callers wanting a fresh price per order use
    quote_and_commit() first (see settings.refresh_prices_on_order).
    """

    def __init__(self, source: MarketDataSource, *, settings: Settings | None = None) -> None:
        self.source = source
        self.settings = settings or Settings()

    def resolve(self, uow: UnitOfWork, symbol: str) -> Stock:
        stock = uow.stocks.find_by_symbol(symbol)
        if stock is not None:
            return stock
        return self.fetch_and_store(uow, symbol)

    def fetch_and_store(self, uow: UnitOfWork, symbol: str) -> Stock:
        """Quote symbol now and insert or update the stored stock."""
        quotes = self._fetch_quotes([symbol])
        if symbol not in quotes:
            logger.warning("No market data for %s", symbol)
            raise StockLookupError(symbol, "no market data")
        return self._store_quote(uow, quotes[symbol])

    def quote_and_commit(self, store: Store, symbol: str) -> Stock:
        """
        Quote symbol and store it in a unit of work of its own.
        Losing a race against another unit storing the same stock is not an
        error: that unit's quote is at least as fresh, and it is returned.
        """
        try:
            with store.begin() as uow:
                stock = self.fetch_and_store(uow, symbol)
                uow.commit()
            return stock
        except ConcurrentModificationError as e:
            logger.info("Concurrent quote for %s already stored: %s", symbol, e)
        with store.begin() as uow:
            stock = uow.stocks.find_by_symbol(symbol)
        if stock is None:
            raise StockLookupError(symbol, "quote lost to a concurrent writer")
        return stock

    def refresh(self, uow: UnitOfWork, symbols: list[str]) -> list[Stock]:
        """
        Re-quote symbols in one request. Symbols without a usable quote
        (missing row, bad price) are logged and skipped.
        """
        if not symbols:
            return []
        errors: dict[str, StockLookupError] = {}
        quotes = self._fetch_quotes(symbols, errors=errors)
        stocks: list[Stock] = []
        for sym in symbols:
            if sym in errors:
                logger.warning("Price refresh skipped %s: %s", sym, errors[sym].reason)
                continue
            if sym not in quotes:
                logger.warning("Price refresh skipped %s: no market data", sym)
                continue
            stocks.append(self._store_quote(uow, quotes[sym]))
        return stocks

    def _store_quote(self, uow: UnitOfWork, quote: Quote) -> Stock:
        stock = uow.stocks.find_by_symbol(quote.symbol)
        if stock is None:
            stock = uow.stocks.add(quote.symbol, quote.company_name or quote.symbol, quote.price)
            logger.info("Stored new stock %s (%s) at %s", stock.symbol, stock.company_name, stock.current_price)
            return stock
        company_name = quote.company_name or stock.company_name
        if stock.current_price == quote.price and stock.company_name == company_name:
            return stock
        logger.info("Stock %s price updated: %s -> %s", stock.symbol, stock.current_price, quote.price)
        return uow.stocks.save(replace(stock, current_price=quote.price, company_name=company_name))

    def _fetch_quotes(
        self, symbols: list[str], *, errors: dict[str, StockLookupError] | None = None
    ) -> dict[str, Quote]:
        """
        Quotes by symbol. A bad price raises StockLookupError, or is recorded
        in errors when that dict is given.
        """
        df = self.source.get_quotes(symbols)
        quotes: dict[str, Quote] = {}
        if df.empty or "close" not in df.columns or "symbol" not in df.columns:
            return quotes
        for sym in symbols:
            sub = df[df["symbol"] == sym]
            if sub.empty:
                continue
            row = sub.iloc[-1]
            try:
                price = self._price(row["close"], sym)
            except StockLookupError as e:
                if errors is None:
                    raise
                errors[sym] = e
                continue
            quotes[sym] = Quote(symbol=sym, price=price, company_name=self._company_name(row))
        return quotes

    @staticmethod
    def _company_name(row: pd.Series) -> str | None:
        name = row.get("company_name")
        if name is None or pd.isna(name) or not str(name).strip():
            return None
        return str(name)

    def _price(self, raw: object, symbol: str) -> Decimal:
        if raw is None or pd.isna(raw):
            raise StockLookupError(symbol, "missing price")
        try:
            price = Decimal(str(raw))
        except InvalidOperation:
            raise StockLookupError(symbol, f"unparseable price {raw!r}") from None
        if not price.is_finite() or price <= 0:
            raise StockLookupError(symbol, f"invalid price {raw!r}")
        return price.quantize(self.settings.price_quantum, rounding=ROUND_HALF_EVEN)
