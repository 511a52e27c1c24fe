"""
Tests for reporting: transactions_to_frame, summarize_by_symbol, compute_activity, print_report.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from reporting import compute_activity, print_report, summarize_by_symbol, transactions_to_frame
from stocksim_core import PortfolioState, Side, TransactionSummary


def _make_summaries() -> list[TransactionSummary]:
    def summary(id_, symbol, side, price, quantity):
        price = Decimal(price)
        return TransactionSummary(
            id=id_,
            symbol=symbol,
            company_name=f"{symbol} Inc",
            side=side,
            price=price,
            total_price=price * quantity,
            quantity=quantity,
            timestamp=datetime(2024, 1, id_),
        )

    return [
        summary(1, "XYZ", Side.BUY, "50.00", 10),
        summary(2, "ACME", Side.BUY, "12.50", 4),
        summary(3, "XYZ", Side.SELL, "60.00", 4),
    ]


# --- transactions_to_frame ---


def test_transactions_to_frame_columns_and_order():
    df = transactions_to_frame(list(reversed(_make_summaries())))
    assert list(df.columns) == ["id", "timestamp", "symbol", "company_name", "side", "price", "quantity", "total_price"]
    assert df["id"].tolist() == [1, 2, 3]
    assert df["side"].tolist() == ["buy", "buy", "sell"]
    assert df["total_price"].tolist() == [500.0, 50.0, 240.0]


def test_transactions_to_frame_empty():
    df = transactions_to_frame([])
    assert df.empty
    assert "symbol" in df.columns


# --- summarize_by_symbol ---


def test_summarize_by_symbol():
    out = summarize_by_symbol(transactions_to_frame(_make_summaries()))
    xyz = out.loc["XYZ"]
    assert xyz["bought"] == 10
    assert xyz["sold"] == 4
    assert xyz["net_quantity"] == 6
    assert xyz["spent"] == pytest.approx(500.0)
    assert xyz["received"] == pytest.approx(240.0)
    assert xyz["net_cash_flow"] == pytest.approx(-260.0)
    assert out.loc["ACME"]["net_quantity"] == 4


def test_summarize_by_symbol_empty():
    out = summarize_by_symbol(transactions_to_frame([]))
    assert out.empty
    assert list(out.columns) == ["bought", "sold", "net_quantity", "spent", "received", "net_cash_flow"]


# --- compute_activity / print_report ---


def test_compute_activity():
    a = compute_activity(_make_summaries())
    assert a.trade_count == 3
    assert a.buy_count == 2
    assert a.sell_count == 1
    assert a.gross_bought == Decimal("550.00")
    assert a.gross_sold == Decimal("240.00")
    assert a.net_cash_flow == Decimal("-310.00")


def test_compute_activity_empty():
    a = compute_activity([])
    assert a.trade_count == 0
    assert a.net_cash_flow == Decimal("0")


def test_print_report(capsys):
    portfolio = PortfolioState(user_id=1, cash=Decimal("690.00"), positions={"XYZ": 6, "ACME": 4})
    activity = print_report(_make_summaries(), portfolio)
    out = capsys.readouterr().out
    assert "Account 1" in out
    assert "690.00" in out
    assert "XYZ" in out
    assert activity.trade_count == 3
