"""
Market data sources: where stock quotes come from.

MarketDataSource ABC returns one row per symbol in a DataFrame with columns
symbol, company_name, close. StaticMarketDataSource serves simulated prices
from a mapping or a callable. Live quote providers implement the same interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from decimal import Decimal

import pandas as pd

QUOTE_COLUMNS = ["symbol", "company_name", "close"]


def empty_quotes() -> pd.DataFrame:
    return pd.DataFrame(columns=QUOTE_COLUMNS)


class MarketDataSource(ABC):
    @abstractmethod
    def get_quotes(self, symbols: list[str]) -> pd.DataFrame:
        """
        Return latest quotes for the given symbols.
        Symbols with no quote are simply missing from the frame.
        """
        ...


def _prices_to_dataframe(
    symbols: list[str],
    prices: Mapping[str, float | Decimal | str],
    company_names: Mapping[str, str],
) -> pd.DataFrame:
    """Build a one-row-per-symbol quote frame from a prices mapping."""
    rows = [
        {"symbol": s, "company_name": company_names.get(s, s), "close": prices[s]}
        for s in symbols
        if s in prices
    ]
    return pd.DataFrame(rows, columns=QUOTE_COLUMNS) if rows else empty_quotes()


class StaticMarketDataSource(MarketDataSource):
    """
    Simulated quotes. Pass latest_prices (symbol -> price, read on every call
    so later updates to the mapping are seen) or quote_source (symbols -> DataFrame).
    """

    def __init__(
        self,
        latest_prices: dict[str, float | Decimal | str] | None = None,
        *,
        company_names: dict[str, str] | None = None,
        quote_source: Callable[[list[str]], pd.DataFrame] | None = None,
    ) -> None:
        self.latest_prices = latest_prices if latest_prices is not None else {}
        self.company_names = company_names if company_names is not None else {}
        self._quote_source = quote_source

    def set_price(self, symbol: str, price: float | Decimal | str, company_name: str | None = None) -> None:
        self.latest_prices[symbol] = price
        if company_name is not None:
            self.company_names[symbol] = company_name

    def get_quotes(self, symbols: list[str]) -> pd.DataFrame:
        if self._quote_source is not None:
            return self._quote_source(symbols)
        return _prices_to_dataframe(symbols, self.latest_prices, self.company_names)
