"""
Error taxonomy for order processing.

Every failure aborts the order before anything is committed. Callers either
catch TradingError or let it propagate; only the api layer turns these into
responses.
"""

from __future__ import annotations

from decimal import Decimal


class TradingError(Exception):
    """Base class for errors raised while processing orders."""


class UserNotFoundError(TradingError, LookupError):
    def __init__(self, user_id: int) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class InvalidOrderError(TradingError, ValueError):
    """Order rejected before any state was read (bad quantity or symbol)."""


class InsufficientFundsError(TradingError):
    def __init__(self, user_id: int, balance: Decimal, required: Decimal) -> None:
        super().__init__(f"Insufficient balance: user {user_id} has {balance}, needs {required}")
        self.user_id = user_id
        self.balance = balance
        self.required = required


class NoPositionError(TradingError):
    def __init__(self, user_id: int, symbol: str) -> None:
        super().__init__(f"User {user_id} does not own stock {symbol}")
        self.user_id = user_id
        self.symbol = symbol


class InsufficientSharesError(TradingError):
    def __init__(self, user_id: int, symbol: str, held: int, requested: int) -> None:
        super().__init__(
            f"Insufficient shares: user {user_id} has {held} shares of {symbol}, trying to sell {requested}"
        )
        self.user_id = user_id
        self.symbol = symbol
        self.held = held
        self.requested = requested


class StockLookupError(TradingError):
    """No usable quote for a symbol from the market data source."""

    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(f"Stock lookup failed for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


class ConcurrentModificationError(TradingError):
    """Commit found an entity changed by another unit of work since it was read."""
