"""
Account report: print cash, positions and trading activity for one user.
"""

from __future__ import annotations

from collections.abc import Sequence

from reporting.history import Activity, compute_activity, summarize_by_symbol, transactions_to_frame
from stocksim_core.models import PortfolioState, TransactionSummary


def print_report(
    summaries: Sequence[TransactionSummary],
    portfolio: PortfolioState,
) -> Activity:
    """
    Compute activity from the user's history and print an account summary.

    Parameters
    ----------
    summaries : sequence of TransactionSummary
        Output of TransactionService.get_user_transactions().
    portfolio : PortfolioState
        Output of TransactionService.get_portfolio() for the same user.

    Returns
    -------
    Activity
        The computed totals (e.g. for programmatic use).
    """
    activity = compute_activity(summaries)
    print(f"--- Account {portfolio.user_id} ---")
    print(f"Cash:            {portfolio.cash:,.2f}")
    print(f"Trades:          {activity.trade_count} ({activity.buy_count} buy, {activity.sell_count} sell)")
    print(f"Gross bought:    {activity.gross_bought:,.2f}")
    print(f"Gross sold:      {activity.gross_sold:,.2f}")
    print(f"Net cash flow:   {activity.net_cash_flow:,.2f}")
    if portfolio.positions:
        print("Positions:")
        for symbol, quantity in sorted(portfolio.positions.items()):
            print(f"  {symbol:<8} {quantity:>8}")
    by_symbol = summarize_by_symbol(transactions_to_frame(summaries))
    if not by_symbol.empty:
        print("By symbol:")
        print(by_symbol.to_string())
    print("------------------------")
    return activity
