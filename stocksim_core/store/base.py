"""
Persistence abstraction: repositories grouped in a unit of work.

Store.begin() opens a UnitOfWork. Reads inside it see committed state plus
the unit's own staged writes; writes stay staged until commit(). Leaving the
``with`` block without committing, or with an exception, rolls back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from types import TracebackType

from stocksim_core.models import Position, Side, Stock, Transaction, User


class UserRepository(ABC):
    @abstractmethod
    def get(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    def add(self, balance: Decimal) -> User:
        """Create a user with a fresh id."""
        ...

    @abstractmethod
    def save(self, user: User) -> User:
        ...


class StockRepository(ABC):
    @abstractmethod
    def get(self, stock_id: int) -> Stock | None:
        ...

    @abstractmethod
    def find_by_symbol(self, symbol: str) -> Stock | None:
        ...

    def exists_by_symbol(self, symbol: str) -> bool:
        return self.find_by_symbol(symbol) is not None

    @abstractmethod
    def add(self, symbol: str, company_name: str, current_price: Decimal) -> Stock:
        """Create a stock with a fresh id. Symbol must not exist yet."""
        ...

    @abstractmethod
    def save(self, stock: Stock) -> Stock:
        ...


class PositionRepository(ABC):
    @abstractmethod
    def find(self, user_id: int, stock_id: int) -> Position | None:
        ...

    @abstractmethod
    def for_user(self, user_id: int) -> list[Position]:
        ...

    @abstractmethod
    def save(self, position: Position) -> Position:
        """Insert (first save of a key) or update a position."""
        ...


class TransactionRepository(ABC):
    @abstractmethod
    def add(
        self,
        *,
        user_id: int,
        stock_id: int,
        side: Side,
        price: Decimal,
        quantity: int,
        total_price: Decimal,
        timestamp: datetime,
    ) -> Transaction:
        """Append a transaction. Ids increase in creation order."""
        ...

    @abstractmethod
    def for_user(self, user_id: int) -> list[Transaction]:
        """All transactions of user_id, oldest first."""
        ...


class UnitOfWork(ABC):
    """
    One atomic scope. Either every staged write is applied by commit()
    or none is. Entities handed out keep the version they were read or
    staged with; commit does not update them, so re-read after commit
    before saving the same entity in a later unit of work.
    """

    users: UserRepository
    stocks: StockRepository
    positions: PositionRepository
    transactions: TransactionRepository

    @abstractmethod
    def commit(self) -> None:
        """Apply all staged writes. Raises ConcurrentModificationError on a version conflict."""
        ...

    @abstractmethod
    def rollback(self) -> None:
        """Discard all staged writes."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once commit() or rollback() has run."""
        ...

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self.closed:
            self.rollback()


class Store(ABC):
    """Factory for units of work over one backing store."""

    @abstractmethod
    def begin(self) -> UnitOfWork:
        ...
