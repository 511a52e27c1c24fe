"""
stocksim-core: simulated stock-trading backend.

Users hold cash and share positions; buy/sell orders execute atomically
against an injected store and append to an immutable transaction log.
"""

__version__ = "0.1.0"

from stocksim_core.config import Settings
from stocksim_core.errors import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidOrderError,
    NoPositionError,
    StockLookupError,
    TradingError,
    UserNotFoundError,
)
from stocksim_core.ledger import PortfolioLedger
from stocksim_core.models import PortfolioState, Position, Side, Stock, Transaction, TransactionSummary, User
from stocksim_core.trading import TransactionService

__all__ = [
    "Settings",
    "Side",
    "User",
    "Stock",
    "Position",
    "Transaction",
    "TransactionSummary",
    "PortfolioState",
    "PortfolioLedger",
    "TransactionService",
    "TradingError",
    "UserNotFoundError",
    "InvalidOrderError",
    "InsufficientFundsError",
    "NoPositionError",
    "InsufficientSharesError",
    "StockLookupError",
    "ConcurrentModificationError",
]
