"""
Data Models Package

This package contains all Pydantic models used in the Finance Assistant.
All data flowing through the system must conform to these schemas.
"""

from finance_assistant.models.finance import (
    ALL,
    Account,
    AccountKind,
    AccountPayload,
    Category,
    FilterCriteria,
    Goal,
    GoalKind,
    GoalPayload,
    GroupedEntry,
    InstallmentGroup,
    StandaloneTransaction,
    TransactionKind,
    TransactionPayload,
    TransactionRecord,
    TransactionStatus,
)
from finance_assistant.models.actions import (
    ChatReply,
    CreateAccountAction,
    CreateGoalAction,
    CreateTransactionAction,
    Intent,
    ParsedAction,
    ParsedCommand,
    RejectedAction,
    RejectionReason,
    ReplyOutcome,
    ValidationContext,
)
from finance_assistant.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ALL",
    "Account",
    "AccountKind",
    "AccountPayload",
    "Category",
    "FilterCriteria",
    "Goal",
    "GoalKind",
    "GoalPayload",
    "GroupedEntry",
    "InstallmentGroup",
    "StandaloneTransaction",
    "TransactionKind",
    "TransactionPayload",
    "TransactionRecord",
    "TransactionStatus",
    # Command and action models
    "ChatReply",
    "CreateAccountAction",
    "CreateGoalAction",
    "CreateTransactionAction",
    "Intent",
    "ParsedAction",
    "ParsedCommand",
    "RejectedAction",
    "RejectionReason",
    "ReplyOutcome",
    "ValidationContext",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
