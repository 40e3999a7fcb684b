"""
Audit Models for Finance Assistant

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability from utterance to persisted record
2. Debugging information when a command is misread
3. A history of what the assistant did on the user's behalf

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the command and ledger flows has its own event type.
    """
    # Command interpretation
    COMMAND_RECEIVED = "command_received"
    COMMAND_PARSED = "command_parsed"
    COMMAND_UNMATCHED = "command_unmatched"

    # Validation and execution
    ACTION_REJECTED = "action_rejected"
    ACTION_EXECUTED = "action_executed"
    EXECUTION_FAILED = "execution_failed"

    # Ledger
    INSTALLMENTS_CREATED = "installments_created"
    TRANSACTION_STATUS_UPDATED = "transaction_status_updated"

    # Language model
    QUESTION_ANSWERED = "question_answered"
    LANGUAGE_MODEL_FAILED = "language_model_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'goal', 'account')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one utterance share it
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.command_received(utterance, correlation_id)
        event = AuditEventBuilder.action_executed("goal", goal_id, ...)
    """

    @staticmethod
    def command_received(
        utterance: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_RECEIVED,
            entity_type="utterance",
            correlation_id=correlation_id,
            description="Chat message received",
            details={
                "length": len(utterance),
            },
            is_user_action=True,
        )

    @staticmethod
    def command_parsed(
        intent: str,
        pattern: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_PARSED,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Command recognised: {intent}",
            details={
                "intent": intent,
                "pattern": pattern,
            },
        )

    @staticmethod
    def command_unmatched(
        context_category: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_UNMATCHED,
            entity_type="command",
            correlation_id=correlation_id,
            description="No command matched, routing to language model",
            details={
                "context_category": context_category,
            },
        )

    @staticmethod
    def action_rejected(
        intent: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="command",
            correlation_id=correlation_id,
            description=f"Command {intent} rejected: {reason}",
            details={
                "intent": intent,
                "reason": reason,
            },
        )

    @staticmethod
    def action_executed(
        entity_type: str,
        entity_id: str,
        summary: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACTION_EXECUTED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Created {entity_type}: {summary}"[:500],
            details={
                "summary": summary,
            },
        )

    @staticmethod
    def execution_failed(
        entity_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXECUTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Failed to create {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def installments_created(
        group_id: str,
        installment_count: int,
        total_amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTALLMENTS_CREATED,
            entity_type="installment_group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Purchase of {total_amount} split into {installment_count} installments",
            details={
                "installment_count": installment_count,
                "total_amount": total_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_status_updated(
        transaction_id: str,
        old_status: str,
        new_status: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_STATUS_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Status changed from {old_status} to {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
            },
            is_user_action=True,
        )

    @staticmethod
    def question_answered(
        context_category: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUESTION_ANSWERED,
            entity_type="question",
            correlation_id=correlation_id,
            description=f"Language model answered using {context_category} context",
            details={
                "context_category": context_category,
            },
        )

    @staticmethod
    def language_model_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LANGUAGE_MODEL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="question",
            correlation_id=correlation_id,
            description="Language model call failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
