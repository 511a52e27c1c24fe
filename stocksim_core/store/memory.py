"""
In-memory store with optimistic concurrency.

Committed state lives in InMemoryStore behind one lock. Each unit of work
stages its writes and, on commit, checks that every entity it updates still
has the version it read. Version 0 marks an entity never committed; commit
writes version + 1.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from stocksim_core.errors import ConcurrentModificationError
from stocksim_core.models import Position, Side, Stock, Transaction, User
from stocksim_core.store.base import (
    PositionRepository,
    Store,
    StockRepository,
    TransactionRepository,
    UnitOfWork,
    UserRepository,
)

logger = logging.getLogger(__name__)


class InMemoryStore(Store):
    """Process-local store. Safe to share between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[int, User] = {}
        self._stocks: dict[int, Stock] = {}
        self._stock_ids: dict[str, int] = {}
        self._positions: dict[tuple[int, int], Position] = {}
        self._transactions: list[Transaction] = []
        self._user_seq = itertools.count(1)
        self._stock_seq = itertools.count(1)
        self._transaction_seq = itertools.count(1)

    def begin(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self)

    def _next_id(self, seq: itertools.count) -> int:
        # Ids are not reused after rollback, like a database sequence.
        with self._lock:
            return next(seq)


class _Users(UserRepository):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    def get(self, user_id: int) -> User | None:
        self._uow._check_open()
        if user_id in self._uow._users:
            return self._uow._users[user_id]
        with self._uow._store._lock:
            return self._uow._store._users.get(user_id)

    def add(self, balance: Decimal) -> User:
        self._uow._check_open()
        user = User(id=self._uow._store._next_id(self._uow._store._user_seq), balance=balance)
        self._uow._users[user.id] = user
        return user

    def save(self, user: User) -> User:
        self._uow._check_open()
        self._uow._users[user.id] = user
        return user


class _Stocks(StockRepository):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    def get(self, stock_id: int) -> Stock | None:
        self._uow._check_open()
        if stock_id in self._uow._stocks:
            return self._uow._stocks[stock_id]
        with self._uow._store._lock:
            return self._uow._store._stocks.get(stock_id)

    def find_by_symbol(self, symbol: str) -> Stock | None:
        self._uow._check_open()
        for stock in self._uow._stocks.values():
            if stock.symbol == symbol:
                return stock
        store = self._uow._store
        with store._lock:
            stock_id = store._stock_ids.get(symbol)
            return store._stocks.get(stock_id) if stock_id is not None else None

    def add(self, symbol: str, company_name: str, current_price: Decimal) -> Stock:
        if self.exists_by_symbol(symbol):
            raise ValueError(f"Stock {symbol} already exists")
        stock = Stock(
            id=self._uow._store._next_id(self._uow._store._stock_seq),
            symbol=symbol,
            company_name=company_name,
            current_price=current_price,
        )
        self._uow._stocks[stock.id] = stock
        return stock

    def save(self, stock: Stock) -> Stock:
        self._uow._check_open()
        self._uow._stocks[stock.id] = stock
        return stock


class _Positions(PositionRepository):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

    def find(self, user_id: int, stock_id: int) -> Position | None:
        self._uow._check_open()
        key = (user_id, stock_id)
        if key in self._uow._positions:
            return self._uow._positions[key]
        with self._uow._store._lock:
            return self._uow._store._positions.get(key)

    def for_user(self, user_id: int) -> list[Position]:
        self._uow._check_open()
        with self._uow._store._lock:
            found = {k: p for k, p in self._uow._store._positions.items() if k[0] == user_id}
        found.update({k: p for k, p in self._uow._positions.items() if k[0] == user_id})
        return [found[k] for k in sorted(found)]

    def save(self, position: Position) -> Position:
        self._uow._check_open()
        self._uow._positions[position.key] = position
        return position


class _Transactions(TransactionRepository):
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow

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
        self._uow._check_open()
        transaction = Transaction(
            id=self._uow._store._next_id(self._uow._store._transaction_seq),
            user_id=user_id,
            stock_id=stock_id,
            side=side,
            price=price,
            quantity=quantity,
            total_price=total_price,
            timestamp=timestamp,
        )
        self._uow._transactions.append(transaction)
        return transaction

    def for_user(self, user_id: int) -> list[Transaction]:
        self._uow._check_open()
        with self._uow._store._lock:
            found = [t for t in self._uow._store._transactions if t.user_id == user_id]
        found.extend(t for t in self._uow._transactions if t.user_id == user_id)
        return sorted(found, key=lambda t: t.id)


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._users: dict[int, User] = {}
        self._stocks: dict[int, Stock] = {}
        self._positions: dict[tuple[int, int], Position] = {}
        self._transactions: list[Transaction] = []
        self._closed = False
        self.users = _Users(self)
        self.stocks = _Stocks(self)
        self.positions = _Positions(self)
        self.transactions = _Transactions(self)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("Unit of work is closed")

    def _conflicts(self) -> list[str]:
        """Describe every staged write that no longer matches committed state. Caller holds the lock."""
        store = self._store
        conflicts: list[str] = []
        for user in self._users.values():
            current = store._users.get(user.id)
            if user.version == 0:
                if current is not None:
                    conflicts.append(f"user {user.id} already exists")
            elif current is None or current.version != user.version:
                conflicts.append(f"user {user.id} changed since read")
        for stock in self._stocks.values():
            current = store._stocks.get(stock.id)
            if stock.version == 0:
                if stock.symbol in store._stock_ids:
                    conflicts.append(f"stock {stock.symbol} already exists")
            elif current is None or current.version != stock.version:
                conflicts.append(f"stock {stock.symbol} changed since read")
        for key, position in self._positions.items():
            current = store._positions.get(key)
            if position.version == 0:
                if current is not None:
                    conflicts.append(f"position {key} already exists")
            elif current is None or current.version != position.version:
                conflicts.append(f"position {key} changed since read")
        return conflicts

    def commit(self) -> None:
        self._check_open()
        store = self._store
        with store._lock:
            conflicts = self._conflicts()
            if conflicts:
                self._discard()
                logger.warning("Commit rejected: %s", "; ".join(conflicts))
                raise ConcurrentModificationError("; ".join(conflicts))
            for user in self._users.values():
                store._users[user.id] = replace(user, version=user.version + 1)
            for stock in self._stocks.values():
                store._stocks[stock.id] = replace(stock, version=stock.version + 1)
                store._stock_ids[stock.symbol] = stock.id
            for key, position in self._positions.items():
                store._positions[key] = replace(position, version=position.version + 1)
            store._transactions.extend(self._transactions)
        logger.debug(
            "Committed %d user(s), %d stock(s), %d position(s), %d transaction(s)",
            len(self._users),
            len(self._stocks),
            len(self._positions),
            len(self._transactions),
        )
        self._discard()

    def rollback(self) -> None:
        if self._closed:
            return
        if self._users or self._stocks or self._positions or self._transactions:
            logger.debug("Rolled back unit of work with staged writes")
        self._discard()

    def _discard(self) -> None:
        self._users.clear()
        self._stocks.clear()
        self._positions.clear()
        self._transactions.clear()
        self._closed = True
