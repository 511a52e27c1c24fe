"""
Trading session example: register a user, buy and sell, print the history.

Shows: StaticMarketDataSource, StockLookup, TransactionService, TradingApi
responses (including a rejected order) and the account report.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from reporting import print_report
from stocksim_core import Settings, TransactionService
from stocksim_core.api import TradingApi
from stocksim_core.market import StaticMarketDataSource, StockLookup, StockTrackingService
from stocksim_core.store import InMemoryStore


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = Settings.from_env()

    # Simulated quotes (in real use, a live MarketDataSource)
    source = StaticMarketDataSource(
        {"XYZ": "50.00", "ACME": "12.50"},
        company_names={"XYZ": "XYZ Holdings", "ACME": "Acme Corp"},
    )
    store = InMemoryStore()
    lookup = StockLookup(source, settings=settings)
    service = TransactionService(store, lookup)
    api = TradingApi(service, settings=settings)
    tracking = StockTrackingService(store, lookup)

    user = api.register_user(Decimal("1000.00")).data
    tracking.track_stock(user.id, "XYZ")

    print("--- Buy 10 XYZ @ 50.00 ---")
    response = api.buy(user.id, "XYZ", 10)
    print(f"{response.status} {response.message}: total={response.data.total_price}")

    print("\n--- Price moves to 60.00, sell 4 XYZ ---")
    source.set_price("XYZ", "60.00")
    tracking.refresh_tracked_prices()
    response = api.sell(user.id, "XYZ", 4)
    print(f"{response.status} {response.message}: total={response.data.total_price}")

    print("\n--- Rejected: buy 1000 ACME ---")
    response = api.buy(user.id, "ACME", 1000)
    print(f"{response.status} {response.message}")

    print()
    history = api.list_transactions(user.id).data
    portfolio = api.get_portfolio(user.id).data
    print_report(history, portfolio)


if __name__ == "__main__":
    main()
