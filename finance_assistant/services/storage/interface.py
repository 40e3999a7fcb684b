"""
Abstract Storage Interface

DESIGN DECISION: The command interpreter and the installment engine never
talk to a database directly. They go through this interface, which allows us to:
1. Run everything against in-memory storage in tests
2. Plug in a real backend without touching business logic
3. Keep persistence failures in one exception hierarchy

The interface is intentionally small. Only `status` of a transaction
changes after creation, so there is no generic update.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finance_assistant.models.audit import AuditEvent
from finance_assistant.models.finance import (
    Account,
    Category,
    Goal,
    TransactionRecord,
    TransactionStatus,
)


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the user's financial data.

    Any storage implementation must implement these methods.
    Failures are raised as StorageError and are never retried here.
    """

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """Return all categories in insertion order."""
        pass

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """Return all accounts in insertion order."""
        pass

    @abstractmethod
    async def list_transactions(self) -> list[TransactionRecord]:
        """
        Return the flat transaction records.

        Installment members are returned as individual records;
        grouping happens on read, above storage.
        """
        pass

    @abstractmethod
    async def list_goals(self) -> list[Goal]:
        """Return all goals in insertion order."""
        pass

    @abstractmethod
    async def create_transaction(self, record: TransactionRecord) -> TransactionRecord:
        """
        Persist a new transaction record.

        Args:
            record: The record to persist

        Returns:
            The stored record

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def create_goal(self, goal: Goal) -> Goal:
        """
        Persist a new goal.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        """
        Persist a new account.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
    ) -> TransactionRecord:
        """
        Change the status of one record.

        Args:
            transaction_id: The record's identifier
            status: The new status

        Returns:
            The updated record

        Raises:
            NotFoundError: If no record has this id
            StorageError: If the write fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one chat utterance).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""

    def __init__(self, entity_type: str, entity_id: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")
