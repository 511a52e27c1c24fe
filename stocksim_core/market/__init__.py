"""
Market layer: quote sources, stock lookup/cache, stock tracking.
"""

from stocksim_core.market.lookup import Quote, StockLookup, normalize_symbol
from stocksim_core.market.source import MarketDataSource, StaticMarketDataSource
from stocksim_core.market.tracking import StockTrackingService

__all__ = [
    "MarketDataSource",
    "StaticMarketDataSource",
    "Quote",
    "StockLookup",
    "StockTrackingService",
    "normalize_symbol",
]
