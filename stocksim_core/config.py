"""
Runtime settings read from the environment.

All variables are optional; unset means the default below.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# Decimal places stock prices are quantized to when quoted.
PRICE_PLACES_ENV = "STOCKSIM_PRICE_PLACES"
# "true" re-quotes a stock on every order instead of using the stored price.
REFRESH_PRICES_ENV = "STOCKSIM_REFRESH_PRICES_ON_ORDER"
# Cash balance for users registered without an explicit amount.
STARTING_BALANCE_ENV = "STOCKSIM_STARTING_BALANCE"


@dataclass(frozen=True)
class Settings:
    price_places: int = 2
    refresh_prices_on_order: bool = False
    starting_balance: Decimal = Decimal("10000.00")

    @property
    def price_quantum(self) -> Decimal:
        """Smallest price increment, e.g. Decimal('0.01') for 2 places."""
        return Decimal(1).scaleb(-self.price_places)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environ (default os.environ). Raises ValueError on bad values."""
        env = os.environ if environ is None else environ
        defaults = cls()

        places = defaults.price_places
        raw = env.get(PRICE_PLACES_ENV)
        if raw is not None:
            try:
                places = int(raw)
            except ValueError:
                raise ValueError(f"{PRICE_PLACES_ENV} must be an integer, got {raw!r}") from None
            if places < 0:
                raise ValueError(f"{PRICE_PLACES_ENV} must be >= 0, got {places}")

        refresh = env.get(REFRESH_PRICES_ENV, "").lower() == "true"

        balance = defaults.starting_balance
        raw = env.get(STARTING_BALANCE_ENV)
        if raw is not None:
            try:
                balance = Decimal(raw)
            except InvalidOperation:
                raise ValueError(f"{STARTING_BALANCE_ENV} must be a decimal, got {raw!r}") from None
            if balance < 0:
                raise ValueError(f"{STARTING_BALANCE_ENV} must be >= 0, got {balance}")

        return cls(price_places=places, refresh_prices_on_order=refresh, starting_balance=balance)
