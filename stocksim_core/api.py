"""
Caller-facing surface: wraps TransactionService results in ApiResponse.

Transport-agnostic. An HTTP layer can serialize ApiResponse directly; status
codes follow HTTP meanings. TradingError becomes an error response with
data=None; any other exception propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Generic, TypeVar

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
from stocksim_core.models import PortfolioState, Transaction, TransactionSummary, User
from stocksim_core.trading import TransactionService

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_OK = 200
STATUS_CREATED = 201
STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_BAD_GATEWAY = 502

# Most specific first; TradingError is the fallback.
_ERROR_STATUS: list[tuple[type[TradingError], int]] = [
    (UserNotFoundError, STATUS_NOT_FOUND),
    (InvalidOrderError, STATUS_BAD_REQUEST),
    (InsufficientFundsError, STATUS_BAD_REQUEST),
    (NoPositionError, STATUS_BAD_REQUEST),
    (InsufficientSharesError, STATUS_BAD_REQUEST),
    (ConcurrentModificationError, STATUS_CONFLICT),
    (StockLookupError, STATUS_BAD_GATEWAY),
    (TradingError, STATUS_BAD_REQUEST),
]


@dataclass(frozen=True)
class ApiResponse(Generic[T]):
    status: int
    message: str
    data: T | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def status_for(error: TradingError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return STATUS_BAD_REQUEST


def _parse_balance(raw: object) -> Decimal:
    try:
        balance = Decimal(str(raw))
    except InvalidOperation:
        raise InvalidOrderError(f"Invalid initial balance: {raw!r}") from None
    if not balance.is_finite() or balance < 0:
        raise InvalidOrderError(f"Initial balance must be >= 0, got {raw!r}")
    return balance


class TradingApi:
    def __init__(self, service: TransactionService, *, settings: Settings | None = None) -> None:
        self.service = service
        self.settings = settings or Settings()

    def _call(self, action: Callable[[], T], message: str, status: int = STATUS_OK) -> ApiResponse[T]:
        try:
            data = action()
        except TradingError as e:
            code = status_for(e)
            logger.info("Request failed (%s): %s", code, e)
            return ApiResponse(status=code, message=str(e))
        return ApiResponse(status=status, message=message, data=data)

    def register_user(self, initial_balance: Decimal | None = None) -> ApiResponse[User]:
        def create() -> User:
            balance = self.settings.starting_balance if initial_balance is None else _parse_balance(initial_balance)
            with self.service.store.begin() as uow:
                user = uow.users.add(balance)
                uow.commit()
            # re-read so the caller gets the committed version
            with self.service.store.begin() as uow:
                user = uow.users.get(user.id)
            logger.info("Registered user %s with balance %s", user.id, balance)
            return user

        return self._call(create, "User registered successfully", STATUS_CREATED)

    def buy(self, user_id: int, symbol: str, quantity: int) -> ApiResponse[Transaction]:
        return self._call(lambda: self.service.buy(user_id, symbol, quantity), "Stock purchased successfully")

    def sell(self, user_id: int, symbol: str, quantity: int) -> ApiResponse[Transaction]:
        return self._call(lambda: self.service.sell(user_id, symbol, quantity), "Stock sold successfully")

    def list_transactions(self, user_id: int) -> ApiResponse[list[TransactionSummary]]:
        return self._call(lambda: self.service.get_user_transactions(user_id), "Transactions retrieved successfully")

    def get_portfolio(self, user_id: int) -> ApiResponse[PortfolioState]:
        return self._call(lambda: self.service.get_portfolio(user_id), "Portfolio retrieved successfully")
