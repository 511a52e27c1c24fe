"""
Reporting on top of stocksim-core: transaction history frames and account summaries.
"""

from reporting.account_report import print_report
from reporting.history import Activity, compute_activity, summarize_by_symbol, transactions_to_frame

__all__ = [
    "Activity",
    "compute_activity",
    "summarize_by_symbol",
    "transactions_to_frame",
    "print_report",
]
