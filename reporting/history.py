"""
Transaction history as pandas frames, plus account activity totals.

Frames carry money as float for display and aggregation. Activity keeps
exact Decimal totals.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

import pandas as pd

from stocksim_core.models import Side, TransactionSummary

HISTORY_COLUMNS = ["id", "timestamp", "symbol", "company_name", "side", "price", "quantity", "total_price"]
SYMBOL_SUMMARY_COLUMNS = ["bought", "sold", "net_quantity", "spent", "received", "net_cash_flow"]


@dataclass
class Activity:
    """Trading activity totals for one account."""

    trade_count: int
    buy_count: int
    sell_count: int
    gross_bought: Decimal
    gross_sold: Decimal
    net_cash_flow: Decimal


def transactions_to_frame(summaries: Sequence[TransactionSummary]) -> pd.DataFrame:
    """
    One row per transaction, ordered by id.

    Parameters
    ----------
    summaries : sequence of TransactionSummary
        Output of TransactionService.get_user_transactions().

    Returns
    -------
    pd.DataFrame
        Columns id, timestamp, symbol, company_name, side ('buy'/'sell'),
        price, quantity, total_price.
    """
    rows = [
        {
            "id": s.id,
            "timestamp": s.timestamp,
            "symbol": s.symbol,
            "company_name": s.company_name,
            "side": s.side.value,
            "price": float(s.price),
            "quantity": s.quantity,
            "total_price": float(s.total_price),
        }
        for s in summaries
    ]
    if not rows:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS).sort_values("id").reset_index(drop=True)


def summarize_by_symbol(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Per-symbol totals from a transactions_to_frame() frame.

    Returns
    -------
    pd.DataFrame
        Indexed by symbol with bought, sold, net_quantity (shares) and
        spent, received, net_cash_flow (cash; negative means net investment).
    """
    if frame.empty:
        out = pd.DataFrame(columns=SYMBOL_SUMMARY_COLUMNS)
        out.index.name = "symbol"
        return out
    is_buy = frame["side"] == Side.BUY.value
    work = pd.DataFrame(
        {
            "symbol": frame["symbol"],
            "bought": frame["quantity"].where(is_buy, 0),
            "sold": frame["quantity"].where(~is_buy, 0),
            "spent": frame["total_price"].where(is_buy, 0.0),
            "received": frame["total_price"].where(~is_buy, 0.0),
        }
    )
    out = work.groupby("symbol").sum()
    out["net_quantity"] = out["bought"] - out["sold"]
    out["net_cash_flow"] = out["received"] - out["spent"]
    return out[SYMBOL_SUMMARY_COLUMNS]


def compute_activity(summaries: Sequence[TransactionSummary]) -> Activity:
    """Count trades and total cash moved. Empty history gives zeros."""
    gross_bought = Decimal("0")
    gross_sold = Decimal("0")
    buy_count = 0
    for s in summaries:
        if s.side == Side.BUY:
            buy_count += 1
            gross_bought += s.total_price
        else:
            gross_sold += s.total_price
    return Activity(
        trade_count=len(summaries),
        buy_count=buy_count,
        sell_count=len(summaries) - buy_count,
        gross_bought=gross_bought,
        gross_sold=gross_sold,
        net_cash_flow=gross_sold - gross_bought,
    )
