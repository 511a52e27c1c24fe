"""
Transaction service: execute buy/sell orders and serve transaction history.

Each order runs in one unit of work: load user → resolve stock → validate
funds or holdings → write balance → append transaction → adjust position →
commit. Any error rolls the whole order back and propagates to the caller.
Concurrent orders on the same user or position are caught at commit by the
store's version check. The order only reads the stock row, so orders by
different users on the same symbol never conflict. With
refresh_prices_on_order set, the price is re-quoted and committed in a unit
of work of its own just before the order starts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from stocksim_core.errors import (
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidOrderError,
    NoPositionError,
    UserNotFoundError,
)
from stocksim_core.ledger import PortfolioLedger
from stocksim_core.market.lookup import StockLookup, normalize_symbol
from stocksim_core.models import PortfolioState, Side, Stock, Transaction, TransactionSummary, User
from stocksim_core.store.base import Store, UnitOfWork

logger = logging.getLogger(__name__)


def _validate_order(symbol: str, quantity: int) -> str:
    """Return the normalized symbol. Raises InvalidOrderError."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidOrderError(f"Quantity must be an integer, got {quantity!r}")
    if quantity <= 0:
        raise InvalidOrderError(f"Quantity must be positive, got {quantity}")
    return normalize_symbol(symbol)


class TransactionService:
    def __init__(
        self,
        store: Store,
        stock_lookup: StockLookup,
        ledger: PortfolioLedger | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.stock_lookup = stock_lookup
        self.ledger = ledger or PortfolioLedger()
        self.clock = clock

    def _load_user(self, uow: UnitOfWork, user_id: int) -> User:
        user = uow.users.get(user_id)
        if user is None:
            logger.warning("User not found: %s", user_id)
            raise UserNotFoundError(user_id)
        return user

    def _requote(self, symbol: str) -> None:
        if self.stock_lookup.settings.refresh_prices_on_order:
            self.stock_lookup.quote_and_commit(self.store, symbol)

    def buy(self, user_id: int, symbol: str, quantity: int) -> Transaction:
        """Buy quantity shares of symbol at the stock's current price."""
        symbol = _validate_order(symbol, quantity)
        logger.info("Processing buy order: user %s buying %s shares of %s", user_id, quantity, symbol)
        self._requote(symbol)

        with self.store.begin() as uow:
            user = self._load_user(uow, user_id)
            stock = self.stock_lookup.resolve(uow, symbol)

            total_cost = stock.current_price * quantity
            if user.balance < total_cost:
                logger.warning(
                    "Insufficient balance: user %s has %s, needs %s", user_id, user.balance, total_cost
                )
                raise InsufficientFundsError(user_id, user.balance, total_cost)

            user = uow.users.save(replace(user, balance=user.balance - total_cost))
            transaction = self._record(uow, user, stock, Side.BUY, quantity, total_cost)
            self.ledger.adjust(uow, user.id, stock.id, quantity, stock.current_price)
            uow.commit()

        logger.info(
            "User %s bought %s shares of %s at %s; balance %s",
            user_id, quantity, symbol, stock.current_price, user.balance,
        )
        return transaction

    def sell(self, user_id: int, symbol: str, quantity: int) -> Transaction:
        """Sell quantity shares of symbol at the stock's current price."""
        symbol = _validate_order(symbol, quantity)
        logger.info("Processing sell order: user %s selling %s shares of %s", user_id, quantity, symbol)
        self._requote(symbol)

        with self.store.begin() as uow:
            user = self._load_user(uow, user_id)
            stock = self.stock_lookup.resolve(uow, symbol)

            position = self.ledger.find_position(uow, user.id, stock.id)
            if position is None:
                logger.warning("User %s does not own stock %s", user_id, symbol)
                raise NoPositionError(user_id, symbol)
            if position.quantity < quantity:
                logger.warning(
                    "Insufficient shares: user %s has %s shares of %s, trying to sell %s",
                    user_id, position.quantity, symbol, quantity,
                )
                raise InsufficientSharesError(user_id, symbol, position.quantity, quantity)

            total_earnings = stock.current_price * quantity
            user = uow.users.save(replace(user, balance=user.balance + total_earnings))
            transaction = self._record(uow, user, stock, Side.SELL, quantity, total_earnings)
            self.ledger.adjust(uow, user.id, stock.id, -quantity, stock.current_price)
            uow.commit()

        logger.info(
            "User %s sold %s shares of %s at %s; balance %s",
            user_id, quantity, symbol, stock.current_price, user.balance,
        )
        return transaction

    def _record(
        self, uow: UnitOfWork, user: User, stock: Stock, side: Side, quantity: int, total: Decimal
    ) -> Transaction:
        return uow.transactions.add(
            user_id=user.id,
            stock_id=stock.id,
            side=side,
            price=stock.current_price,
            quantity=quantity,
            total_price=total,
            timestamp=self.clock(),
        )

    def get_user_transactions(self, user_id: int) -> list[TransactionSummary]:
        """Full history for user_id, oldest first. Empty for unknown users."""
        logger.info("Fetching transactions for user %s", user_id)
        with self.store.begin() as uow:
            transactions = uow.transactions.for_user(user_id)
            stocks: dict[int, Stock | None] = {}
            summaries = []
            for t in transactions:
                if t.stock_id not in stocks:
                    stocks[t.stock_id] = uow.stocks.get(t.stock_id)
                summaries.append(_summarize(t, stocks[t.stock_id]))
        return summaries

    def get_portfolio(self, user_id: int) -> PortfolioState:
        """Cash and non-zero positions by symbol. Raises UserNotFoundError."""
        with self.store.begin() as uow:
            user = self._load_user(uow, user_id)
            positions: dict[str, int] = {}
            for position in self.ledger.positions_for(uow, user_id):
                if position.quantity == 0:
                    continue
                stock = uow.stocks.get(position.stock_id)
                positions[stock.symbol if stock else str(position.stock_id)] = position.quantity
        return PortfolioState(user_id=user_id, cash=user.balance, positions=positions)


def _summarize(transaction: Transaction, stock: Stock | None) -> TransactionSummary:
    return TransactionSummary(
        id=transaction.id,
        symbol=stock.symbol if stock else "",
        company_name=stock.company_name if stock else "",
        side=transaction.side,
        price=transaction.price,
        total_price=transaction.total_price,
        quantity=transaction.quantity,
        timestamp=transaction.timestamp,
    )
