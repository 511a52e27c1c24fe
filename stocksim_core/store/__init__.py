"""
Persistence layer: repository interfaces, unit of work, in-memory store.
"""

from stocksim_core.store.base import (
    PositionRepository,
    Store,
    StockRepository,
    TransactionRepository,
    UnitOfWork,
    UserRepository,
)
from stocksim_core.store.memory import InMemoryStore, InMemoryUnitOfWork

__all__ = [
    "Store",
    "UnitOfWork",
    "UserRepository",
    "StockRepository",
    "PositionRepository",
    "TransactionRepository",
    "InMemoryStore",
    "InMemoryUnitOfWork",
]
