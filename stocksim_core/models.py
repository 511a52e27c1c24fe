"""
Value objects for users, stocks, positions and the transaction log.

Entities reference each other by id only. Mutable entities carry a version
used by the store for optimistic concurrency; updates go through
dataclasses.replace and are never applied in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum


class Side(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass(frozen=True)
class User:
    """Account holder. Balance is exact and never negative."""

    id: int
    balance: Decimal
    version: int = 0


@dataclass(frozen=True)
class Stock:
    """Tracked stock. Price is written by the lookup layer, read by trading."""

    id: int
    symbol: str
    company_name: str
    current_price: Decimal
    version: int = 0


@dataclass(frozen=True)
class Position:
    """Quantity of one stock held by one user. Zero means no holding."""

    user_id: int
    stock_id: int
    quantity: int = 0
    average_price: Decimal = Decimal("0")
    version: int = 0

    @property
    def key(self) -> tuple[int, int]:
        return (self.user_id, self.stock_id)


@dataclass(frozen=True)
class Transaction:
    """Executed order. Append-only; total_price is price * quantity at execution."""

    id: int
    user_id: int
    stock_id: int
    side: Side
    price: Decimal
    quantity: int
    total_price: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class TransactionSummary:
    """Display view of a transaction with the stock's symbol and company name."""

    id: int
    symbol: str
    company_name: str
    side: Side
    price: Decimal
    total_price: Decimal
    quantity: int
    timestamp: datetime


@dataclass
class PortfolioState:
    """
    Snapshot of a user's account: cash plus symbol -> quantity.
    Positions at zero are omitted.
    """

    user_id: int
    cash: Decimal
    positions: dict[str, int] = field(default_factory=dict)

    def position(self, symbol: str) -> int:
        """Quantity held in symbol. 0 if not present."""
        return self.positions.get(symbol, 0)
