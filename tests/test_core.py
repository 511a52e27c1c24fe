"""
Tests for stocksim_core basics: models, errors, Settings.
"""

from dataclasses import FrozenInstanceError
from datetime import datetime
from decimal import Decimal

import pytest

from stocksim_core import (
    InsufficientSharesError,
    InvalidOrderError,
    PortfolioState,
    Position,
    Settings,
    Side,
    Transaction,
    TradingError,
    User,
    UserNotFoundError,
)


# --- Models ---


def test_user_immutable():
    u = User(id=1, balance=Decimal("10.00"))
    assert u.version == 0
    with pytest.raises(AttributeError):
        u.balance = Decimal("0")


def test_transaction_immutable():
    t = Transaction(
        id=1,
        user_id=1,
        stock_id=1,
        side=Side.BUY,
        price=Decimal("50.00"),
        quantity=10,
        total_price=Decimal("500.00"),
        timestamp=datetime(2024, 1, 1),
    )
    with pytest.raises(FrozenInstanceError):
        t.quantity = 11


def test_position_defaults_and_key():
    p = Position(user_id=3, stock_id=7)
    assert p.quantity == 0
    assert p.average_price == Decimal("0")
    assert p.key == (3, 7)


def test_portfolio_state_position():
    s = PortfolioState(user_id=1, cash=Decimal("5"), positions={"XYZ": 6})
    assert s.position("XYZ") == 6
    assert s.position("ACME") == 0


# --- Errors ---


def test_error_hierarchy():
    assert issubclass(UserNotFoundError, LookupError)
    assert issubclass(InvalidOrderError, ValueError)
    assert issubclass(InsufficientSharesError, TradingError)


def test_error_attributes():
    e = InsufficientSharesError(1, "XYZ", held=3, requested=4)
    assert (e.user_id, e.symbol, e.held, e.requested) == (1, "XYZ", 3, 4)
    assert "trying to sell 4" in str(e)
    assert UserNotFoundError(9).user_id == 9


# --- Settings ---


def test_settings_defaults():
    s = Settings.from_env({})
    assert s == Settings()
    assert s.price_places == 2
    assert s.price_quantum == Decimal("0.01")
    assert s.refresh_prices_on_order is False
    assert s.starting_balance == Decimal("10000.00")


def test_settings_from_env():
    s = Settings.from_env(
        {
            "STOCKSIM_PRICE_PLACES": "4",
            "STOCKSIM_REFRESH_PRICES_ON_ORDER": "TRUE",
            "STOCKSIM_STARTING_BALANCE": "250.5",
        }
    )
    assert s.price_quantum == Decimal("0.0001")
    assert s.refresh_prices_on_order is True
    assert s.starting_balance == Decimal("250.5")


@pytest.mark.parametrize(
    "env",
    [
        {"STOCKSIM_PRICE_PLACES": "two"},
        {"STOCKSIM_PRICE_PLACES": "-1"},
        {"STOCKSIM_STARTING_BALANCE": "lots"},
        {"STOCKSIM_STARTING_BALANCE": "-10"},
    ],
)
def test_settings_invalid_values(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_settings_reads_os_environ(monkeypatch):
    monkeypatch.setenv("STOCKSIM_PRICE_PLACES", "3")
    assert Settings.from_env().price_places == 3
