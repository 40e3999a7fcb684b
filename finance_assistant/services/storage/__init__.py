"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Ships an in-memory backend; a real backend implements the same interfaces.
"""

from finance_assistant.services.storage.interface import (
    AuditStorageInterface,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_assistant.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
]
