"""
Financial Context for Questions

When an utterance is not a command it is answered by the language model.
The model gets a small slice of the user's real data, chosen by keywords:

- expenses: this month's confirmed expenses grouped by category
- balances: account names and balances
- summary: this month's income, expenses and balance
- goals: goal names, targets and progress

DESIGN DECISION: Classification is plain keyword membership checked in a
fixed order (expenses, balances, summary, goals). The first set with a
hit wins. It is predictable, and a wrong guess only costs context, never data.
"""

import json
from datetime import date
from enum import Enum
from typing import Optional

import structlog

from finance_assistant.queries.summaries import (
    calculate_financial_summary,
    current_month_transactions,
    group_expenses_by_category,
)
from finance_assistant.services.storage import FinanceStorageInterface, StorageError


logger = structlog.get_logger()


class ContextCategory(str, Enum):
    EXPENSES = "expenses"
    BALANCES = "balances"
    SUMMARY = "summary"
    GOALS = "goals"
    NONE = "none"


# Checked in this order; first hit wins
CONTEXT_KEYWORDS: list[tuple[ContextCategory, tuple[str, ...]]] = [
    (ContextCategory.EXPENSES, ("gasto", "gastei", "gastos", "despesa", "despesas")),
    (ContextCategory.BALANCES, ("saldo", "saldos", "conta", "contas")),
    (ContextCategory.SUMMARY, ("resumo", "visão geral", "geral", "total")),
    (ContextCategory.GOALS, ("meta", "metas", "objetivo", "objetivos")),
]

NO_CONTEXT = "The user did not ask for specific financial data."
CONTEXT_UNAVAILABLE = (
    "An error occurred while fetching the user's financial data to answer "
    "this question. Tell the user about the error."
)


def classify_query(question: str) -> ContextCategory:
    """Pick the data slice a question is about."""
    text = question.casefold()
    for category, keywords in CONTEXT_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return ContextCategory.NONE


def _to_json(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class FinancialContextBuilder:
    """
    Assembles the context text handed to the language model.

    Reads from storage only; never writes.
    """

    def __init__(self, storage: FinanceStorageInterface):
        self._storage = storage

    async def build(
        self,
        category: ContextCategory,
        today: Optional[date] = None,
    ) -> str:
        """
        Build the context for one category.

        A storage failure does not fail the question. The model is told
        the data could not be fetched so it can say so.
        """
        today = today or date.today()
        try:
            if category == ContextCategory.EXPENSES:
                return await self._expenses(today)
            if category == ContextCategory.BALANCES:
                return await self._balances()
            if category == ContextCategory.SUMMARY:
                return await self._summary(today)
            if category == ContextCategory.GOALS:
                return await self._goals()
        except StorageError as e:
            logger.warning("context_fetch_failed", category=category.value, error=str(e))
            return CONTEXT_UNAVAILABLE

        return NO_CONTEXT

    async def _expenses(self, today: date) -> str:
        records = current_month_transactions(await self._storage.list_transactions(), today)
        categories = await self._storage.list_categories()
        groups = group_expenses_by_category(records, categories)
        data = [
            {
                "category": g.name,
                "amount": g.amount,
                "percentage": g.percentage,
            }
            for g in groups
        ]
        return f"User's expenses for this month (grouped by category):\n{_to_json(data)}"

    async def _balances(self) -> str:
        accounts = await self._storage.list_accounts()
        data = [
            {"name": a.name, "current_balance": a.current_balance}
            for a in accounts
        ]
        return f"User's account balances:\n{_to_json(data)}"

    async def _summary(self, today: date) -> str:
        records = current_month_transactions(await self._storage.list_transactions(), today)
        summary = calculate_financial_summary(records)
        data = summary.model_dump()
        return f"User's financial summary for the current month:\n{_to_json(data)}"

    async def _goals(self) -> str:
        goals = await self._storage.list_goals()
        data = [
            {
                "name": g.name,
                "kind": g.kind.value,
                "target_amount": g.target_amount,
                "current_amount": g.current_amount,
                "end_date": g.end_date,
            }
            for g in goals
        ]
        return f"User's financial goals:\n{_to_json(data)}"
