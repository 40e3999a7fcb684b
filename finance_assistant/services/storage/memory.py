"""
In-Memory Storage

Process-local implementations of the storage interfaces.
Used by the tests and for local runs without a backend.

Records are deep-copied on the way in and out so callers cannot
mutate stored state behind the storage's back.
"""

from typing import Optional
from uuid import UUID

import structlog

from finance_assistant.models.audit import AuditEvent
from finance_assistant.models.finance import (
    Account,
    Category,
    Goal,
    TransactionRecord,
    TransactionStatus,
)
from finance_assistant.services.storage.interface import (
    AuditStorageInterface,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger()


class InMemoryFinanceStorage(FinanceStorageInterface):
    """
    Finance storage backed by plain lists.

    `fail_on` names operations that should raise StorageError,
    e.g. {"create_transaction"}, to exercise failure paths.
    """

    def __init__(
        self,
        categories: Optional[list[Category]] = None,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[TransactionRecord]] = None,
        goals: Optional[list[Goal]] = None,
        fail_on: Optional[set[str]] = None,
    ):
        self._categories = [c.model_copy(deep=True) for c in categories or []]
        self._accounts = [a.model_copy(deep=True) for a in accounts or []]
        self._transactions = [t.model_copy(deep=True) for t in transactions or []]
        self._goals = [g.model_copy(deep=True) for g in goals or []]
        self.fail_on = set(fail_on or ())

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            logger.warning("storage_failure_injected", operation=operation)
            raise StorageError(f"{operation} failed")

    async def list_categories(self) -> list[Category]:
        self._check("list_categories")
        return [c.model_copy(deep=True) for c in self._categories]

    async def list_accounts(self) -> list[Account]:
        self._check("list_accounts")
        return [a.model_copy(deep=True) for a in self._accounts]

    async def list_transactions(self) -> list[TransactionRecord]:
        self._check("list_transactions")
        return [t.model_copy(deep=True) for t in self._transactions]

    async def list_goals(self) -> list[Goal]:
        self._check("list_goals")
        return [g.model_copy(deep=True) for g in self._goals]

    async def create_transaction(self, record: TransactionRecord) -> TransactionRecord:
        self._check("create_transaction")
        self._transactions.append(record.model_copy(deep=True))
        logger.debug("transaction_stored", transaction_id=record.id)
        return record

    async def create_goal(self, goal: Goal) -> Goal:
        self._check("create_goal")
        self._goals.append(goal.model_copy(deep=True))
        logger.debug("goal_stored", goal_id=goal.id)
        return goal

    async def create_account(self, account: Account) -> Account:
        self._check("create_account")
        self._accounts.append(account.model_copy(deep=True))
        logger.debug("account_stored", account_id=account.id)
        return account

    async def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
    ) -> TransactionRecord:
        self._check("update_transaction_status")
        for index, record in enumerate(self._transactions):
            if record.id == transaction_id:
                updated = record.model_copy(update={"status": status})
                self._transactions[index] = updated
                return updated.model_copy(deep=True)
        raise NotFoundError("transaction", transaction_id)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)
