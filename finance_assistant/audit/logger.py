"""
Audit Logger

DESIGN DECISION: Every step from utterance to persisted record is logged.
This provides:
1. Complete traceability
2. Debugging capability when a command is misread
3. A history of what the assistant did for the user

The audit logger:
- Is async so it composes with the storage flows
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_assistant.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_assistant.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_command_received(
        self,
        utterance: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.command_received(utterance, correlation_id))

    async def log_command_parsed(
        self,
        intent: str,
        pattern: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.command_parsed(intent, pattern, correlation_id))

    async def log_command_unmatched(
        self,
        context_category: str,
        correlation_id: UUID,
    ) -> None:
        """Log an utterance that is routed to the language model."""
        await self.log(
            AuditEventBuilder.command_unmatched(context_category, correlation_id)
        )

    async def log_action_rejected(
        self,
        intent: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.action_rejected(intent, reason, correlation_id))

    async def log_action_executed(
        self,
        entity_type: str,
        entity_id: str,
        summary: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.action_executed(
            entity_type=entity_type,
            entity_id=entity_id,
            summary=summary,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_execution_failed(
        self,
        entity_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.execution_failed(
            entity_type=entity_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_installments_created(
        self,
        group_id: str,
        installment_count: int,
        total_amount: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.installments_created(
            group_id=group_id,
            installment_count=installment_count,
            total_amount=total_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_status_updated(
        self,
        transaction_id: str,
        old_status: str,
        new_status: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_status_updated(
            transaction_id=transaction_id,
            old_status=old_status,
            new_status=new_status,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_question_answered(
        self,
        context_category: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.question_answered(context_category, correlation_id)
        )

    async def log_language_model_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.language_model_failed(error_message, correlation_id)
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one chat message).
    Pass it through all subsequent operations.
    """
    return uuid4()
