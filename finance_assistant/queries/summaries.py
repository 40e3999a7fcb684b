"""
Financial Summaries

Deterministic aggregates over stored records.

DESIGN DECISION: The language model never computes totals. These helpers
compute them from real records, and the model only phrases the result.
Only CONFIRMED records count towards totals; pending and canceled
records are not money that moved.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from finance_assistant.models.finance import (
    Category,
    TransactionKind,
    TransactionRecord,
    TransactionStatus,
)


class FinancialSummary(BaseModel):
    """Income, expenses and their difference for a set of records."""

    income: Decimal = Decimal("0.00")
    expenses: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")


class CategoryExpense(BaseModel):
    """Expenses of one category with its share of all expenses."""

    category_id: str
    name: str
    color: str
    amount: Decimal
    percentage: float


def month_bounds(today: date) -> tuple[date, date]:
    """First and last day of the month containing `today`."""
    start = today.replace(day=1)
    if today.month == 12:
        next_month = date(today.year + 1, 1, 1)
    else:
        next_month = date(today.year, today.month + 1, 1)
    return start, date.fromordinal(next_month.toordinal() - 1)


def current_month_transactions(
    records: list[TransactionRecord],
    today: Optional[date] = None,
) -> list[TransactionRecord]:
    """Records dated within the current calendar month."""
    start, end = month_bounds(today or date.today())
    return [
        r for r in records
        if r.transaction_date is not None and start <= r.transaction_date <= end
    ]


def _confirmed(records: list[TransactionRecord], kind: TransactionKind) -> list[TransactionRecord]:
    return [
        r for r in records
        if r.kind == kind and r.status == TransactionStatus.CONFIRMED
    ]


def calculate_financial_summary(records: list[TransactionRecord]) -> FinancialSummary:
    income = sum((r.amount for r in _confirmed(records, TransactionKind.INCOME)), Decimal("0.00"))
    expenses = sum((r.amount for r in _confirmed(records, TransactionKind.EXPENSE)), Decimal("0.00"))
    return FinancialSummary(
        income=income,
        expenses=expenses,
        balance=income - expenses,
    )


def group_expenses_by_category(
    records: list[TransactionRecord],
    categories: list[Category],
) -> list[CategoryExpense]:
    """
    Confirmed expenses per category, largest first.

    Records whose category no longer exists are left out.
    """
    expenses = _confirmed(records, TransactionKind.EXPENSE)
    total = sum((r.amount for r in expenses), Decimal("0.00"))
    if total == 0:
        return []

    by_id = {c.id: c for c in categories}
    totals: dict[str, Decimal] = {}
    for record in expenses:
        if record.category_id not in by_id:
            continue
        totals[record.category_id] = totals.get(record.category_id, Decimal("0.00")) + record.amount

    groups = [
        CategoryExpense(
            category_id=category_id,
            name=by_id[category_id].name,
            color=by_id[category_id].color,
            amount=amount,
            percentage=round(float(amount / total * 100), 2),
        )
        for category_id, amount in totals.items()
    ]
    return sorted(groups, key=lambda g: g.amount, reverse=True)
