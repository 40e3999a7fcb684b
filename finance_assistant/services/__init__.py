"""Services package."""

from finance_assistant.services.storage import (
    AuditStorageInterface,
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "FinanceStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "StorageError",
]
