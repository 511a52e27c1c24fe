"""
Portfolio ledger: one position per (user, stock), adjusted by signed deltas.

Positions are created on first buy and kept at zero after a full sell.
Buys move the average price; sells leave it as is.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import ROUND_HALF_EVEN, Decimal

from stocksim_core.models import Position
from stocksim_core.store.base import UnitOfWork

AVERAGE_PRICE_QUANTUM = Decimal("0.0001")


class PortfolioLedger:
    def find_position(self, uow: UnitOfWork, user_id: int, stock_id: int) -> Position | None:
        return uow.positions.find(user_id, stock_id)

    def positions_for(self, uow: UnitOfWork, user_id: int) -> list[Position]:
        return uow.positions.for_user(user_id)

    def adjust(self, uow: UnitOfWork, user_id: int, stock_id: int, delta: int, price: Decimal) -> Position:
        """
        Add delta (positive = buy) to the position at price.
        Raises ValueError if the result would be negative; callers check holdings first.
        """
        position = uow.positions.find(user_id, stock_id)
        if position is None:
            position = Position(user_id=user_id, stock_id=stock_id)
        quantity = position.quantity + delta
        if quantity < 0:
            raise ValueError(
                f"Position ({user_id}, {stock_id}) would go negative: {position.quantity} + {delta}"
            )
        average = position.average_price
        if delta > 0:
            cost = position.average_price * position.quantity + price * delta
            average = (cost / quantity).quantize(AVERAGE_PRICE_QUANTUM, rounding=ROUND_HALF_EVEN)
        return uow.positions.save(replace(position, quantity=quantity, average_price=average))
