"""Read-side queries: filtering and summaries."""

from finance_assistant.queries.filter import (
    TransactionFilter,
    entry_sort_key,
    filter_transactions,
)
from finance_assistant.queries.summaries import (
    CategoryExpense,
    FinancialSummary,
    calculate_financial_summary,
    current_month_transactions,
    group_expenses_by_category,
    month_bounds,
)

__all__ = [
    "CategoryExpense",
    "FinancialSummary",
    "TransactionFilter",
    "calculate_financial_summary",
    "current_month_transactions",
    "entry_sort_key",
    "filter_transactions",
    "group_expenses_by_category",
    "month_bounds",
]
