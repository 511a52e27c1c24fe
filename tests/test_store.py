"""
Tests for the in-memory store: unit of work staging, commit, rollback, version conflicts.
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal

import pytest

from stocksim_core import ConcurrentModificationError, PortfolioLedger, Side
from stocksim_core.store import InMemoryStore


def _make_store_with_user(balance: str = "100.00") -> tuple[InMemoryStore, int]:
    store = InMemoryStore()
    with store.begin() as uow:
        user = uow.users.add(Decimal(balance))
        uow.commit()
    return store, user.id


def _add_transaction(uow, user_id: int, stock_id: int = 1, quantity: int = 1):
    return uow.transactions.add(
        user_id=user_id,
        stock_id=stock_id,
        side=Side.BUY,
        price=Decimal("1.00"),
        quantity=quantity,
        total_price=Decimal("1.00") * quantity,
        timestamp=datetime(2024, 1, 1),
    )


# --- Commit / rollback ---


def test_commit_makes_writes_visible_with_bumped_version():
    store, user_id = _make_store_with_user()
    with store.begin() as uow:
        user = uow.users.get(user_id)
    assert user.balance == Decimal("100.00")
    assert user.version == 1


def test_leaving_block_without_commit_rolls_back():
    store, user_id = _make_store_with_user()
    with store.begin() as uow:
        user = uow.users.get(user_id)
        uow.users.save(replace(user, balance=Decimal("0")))
        _add_transaction(uow, user_id)
    assert uow.closed
    with store.begin() as uow:
        assert uow.users.get(user_id).balance == Decimal("100.00")
        assert uow.transactions.for_user(user_id) == []


def test_exception_in_block_rolls_back_and_propagates():
    store, user_id = _make_store_with_user()
    with pytest.raises(RuntimeError, match="boom"):
        with store.begin() as uow:
            uow.users.save(replace(uow.users.get(user_id), balance=Decimal("5")))
            raise RuntimeError("boom")
    with store.begin() as uow:
        assert uow.users.get(user_id).balance == Decimal("100.00")


def test_staged_writes_visible_inside_unit():
    store, user_id = _make_store_with_user()
    with store.begin() as uow:
        uow.users.save(replace(uow.users.get(user_id), balance=Decimal("1")))
        stock = uow.stocks.add("XYZ", "XYZ Holdings", Decimal("10.00"))
        _add_transaction(uow, user_id, stock.id)
        assert uow.users.get(user_id).balance == Decimal("1")
        assert uow.stocks.find_by_symbol("XYZ") == stock
        assert uow.stocks.get(stock.id) == stock
        assert len(uow.transactions.for_user(user_id)) == 1


def test_closed_unit_rejects_use():
    store, user_id = _make_store_with_user()
    uow = store.begin()
    uow.commit()
    with pytest.raises(RuntimeError):
        uow.users.get(user_id)
    with pytest.raises(RuntimeError):
        uow.commit()


def test_duplicate_symbol_in_same_unit_rejected():
    store = InMemoryStore()
    with store.begin() as uow:
        uow.stocks.add("XYZ", "XYZ Holdings", Decimal("10.00"))
        with pytest.raises(ValueError):
            uow.stocks.add("XYZ", "Other", Decimal("11.00"))


def test_transactions_for_user_in_id_order():
    store, user_id = _make_store_with_user()
    with store.begin() as uow:
        other_id = uow.users.add(Decimal("0")).id
        first = _add_transaction(uow, user_id, quantity=1)
        _add_transaction(uow, other_id, quantity=2)
        uow.commit()
    with store.begin() as uow:
        second = _add_transaction(uow, user_id, quantity=3)
        history = uow.transactions.for_user(user_id)
    assert [t.id for t in history] == [first.id, second.id]
    assert [t.quantity for t in history] == [1, 3]


def test_ids_not_reused_after_rollback():
    store, user_id = _make_store_with_user()
    with store.begin() as uow:
        rolled_back = _add_transaction(uow, user_id)
    with store.begin() as uow:
        kept = _add_transaction(uow, user_id)
        uow.commit()
    assert kept.id > rolled_back.id


# --- Optimistic concurrency ---


def test_stale_user_update_conflicts():
    store, user_id = _make_store_with_user()
    a = store.begin()
    stale = a.users.get(user_id)

    with store.begin() as b:
        b.users.save(replace(b.users.get(user_id), balance=Decimal("50.00")))
        b.commit()

    a.users.save(replace(stale, balance=stale.balance - Decimal("80.00")))
    _add_transaction(a, user_id)
    with pytest.raises(ConcurrentModificationError):
        a.commit()
    assert a.closed

    with store.begin() as uow:
        assert uow.users.get(user_id).balance == Decimal("50.00")
        assert uow.users.get(user_id).version == 2
        # nothing from the failed unit was applied
        assert uow.transactions.for_user(user_id) == []


def test_concurrent_stock_insert_conflicts():
    store = InMemoryStore()
    a = store.begin()
    a.stocks.add("XYZ", "XYZ Holdings", Decimal("10.00"))
    with store.begin() as b:
        b.stocks.add("XYZ", "XYZ Holdings", Decimal("10.00"))
        b.commit()
    with pytest.raises(ConcurrentModificationError):
        a.commit()


def test_concurrent_position_insert_conflicts():
    store, user_id = _make_store_with_user()
    ledger = PortfolioLedger()
    a = store.begin()
    ledger.adjust(a, user_id, 1, 5, Decimal("10.00"))
    with store.begin() as b:
        ledger.adjust(b, user_id, 1, 2, Decimal("10.00"))
        b.commit()
    with pytest.raises(ConcurrentModificationError):
        a.commit()
    with store.begin() as uow:
        assert uow.positions.find(user_id, 1).quantity == 2


# --- Ledger ---


def test_ledger_adjust_creates_and_updates_position():
    store, user_id = _make_store_with_user()
    ledger = PortfolioLedger()
    with store.begin() as uow:
        assert ledger.find_position(uow, user_id, 1) is None
        ledger.adjust(uow, user_id, 1, 4, Decimal("10.00"))
        ledger.adjust(uow, user_id, 1, 4, Decimal("20.00"))
        position = ledger.adjust(uow, user_id, 1, -8, Decimal("30.00"))
        uow.commit()
    assert position.quantity == 0
    assert position.average_price == Decimal("15.0000")
    with store.begin() as uow:
        assert [p.quantity for p in ledger.positions_for(uow, user_id)] == [0]


def test_ledger_refuses_negative_position():
    store, user_id = _make_store_with_user()
    ledger = PortfolioLedger()
    with store.begin() as uow:
        ledger.adjust(uow, user_id, 1, 1, Decimal("10.00"))
        with pytest.raises(ValueError):
            ledger.adjust(uow, user_id, 1, -2, Decimal("10.00"))
