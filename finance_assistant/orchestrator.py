"""
Main Orchestrator for Finance Assistant

This module ties together all the components and defines the
end-to-end flows for:
1. Chat commands (utterance → parse → validate → execute → reply)
2. Questions (utterance → context → language model → reply)
3. The ledger (create single/installment transactions, change status, list)

DESIGN DECISION: The orchestrator owns every boundary call:
- Reference data is re-read from storage before every utterance
- Rejections come back as values and are shown to the user as-is
- Storage and language model failures become a generic retry message,
  the validated action is discarded and never queued
- Every step is audited under one correlation id
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_assistant.agents import (
    FinancialContextBuilder,
    GeminiChatAgent,
    LanguageModelError,
    LanguageModelInterface,
    classify_query,
)
from finance_assistant.audit import AuditLogger, create_correlation_id
from finance_assistant.config import get_settings
from finance_assistant.formatting import format_currency
from finance_assistant.installments import InstallmentGrouper, InstallmentSplitter
from finance_assistant.models.actions import (
    ChatReply,
    CreateAccountAction,
    CreateGoalAction,
    CreateTransactionAction,
    ParsedAction,
    RejectedAction,
    ReplyOutcome,
    ValidationContext,
)
from finance_assistant.models.finance import (
    FilterCriteria,
    GroupedEntry,
    TransactionPayload,
    TransactionRecord,
    TransactionStatus,
)
from finance_assistant.parsing import CommandParser
from finance_assistant.queries import TransactionFilter
from finance_assistant.services.storage import (
    AuditStorageInterface,
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageError,
)
from finance_assistant.validation import ActionValidator


logger = structlog.get_logger()

EXECUTION_FAILED_MESSAGE = "❌ Could not complete the action. Please try again."
ANSWER_FAILED_MESSAGE = (
    "Sorry, something went wrong while processing your message. Please try again."
)


class CommandFlow:
    """
    Orchestrates one chat utterance.

    Flow:
    1. Parse → ParsedCommand, or None for a question
    2. Refresh → categories and accounts from storage
    3. Validate → ParsedAction (create or rejected)
    4. Execute → persist through storage (transactions are CONFIRMED)

    A question (no command matched) goes to the language model with a
    context slice chosen by keywords.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        language_model: Optional[LanguageModelInterface] = None,
        parser: Optional[CommandParser] = None,
        validator: Optional[ActionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency_symbol: Optional[str] = None,
    ):
        self._storage = storage
        # Built on first question so commands and the ledger need no API key
        self._language_model = language_model
        self._parser = parser or CommandParser()
        self._validator = validator or ActionValidator()
        self._context_builder = FinancialContextBuilder(storage)
        self._audit_logger = audit_logger
        self._currency_symbol = currency_symbol or get_settings().app.currency_symbol

    async def handle_message(
        self,
        utterance: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        """
        Process one utterance end to end.

        Never raises for user input or collaborator failures; every
        outcome is a ChatReply.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()

        if self._audit_logger:
            await self._audit_logger.log_command_received(utterance, correlation_id)

        command = self._parser.parse(utterance)
        if command is None:
            return await self._answer_question(utterance, today, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_command_parsed(
                intent=command.intent.value,
                pattern=command.pattern,
                correlation_id=correlation_id,
            )

        # Reference data may have changed since the last utterance
        try:
            context = ValidationContext(
                categories=await self._storage.list_categories(),
                accounts=await self._storage.list_accounts(),
            )
        except StorageError as e:
            return await self._failed("reference_data", e, correlation_id)

        action = self._validator.validate(command, context, today=today)

        if isinstance(action, RejectedAction):
            if self._audit_logger:
                await self._audit_logger.log_action_rejected(
                    intent=action.intent.value,
                    reason=action.reason.value,
                    correlation_id=correlation_id,
                )
            return ChatReply(
                outcome=ReplyOutcome.REJECTED,
                message=f"❌ {action.message}",
                action=action,
            )

        return await self.execute(action, correlation_id)

    async def execute(
        self,
        action: ParsedAction,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        """
        Persist a validated action.

        Storage failures are converted to a FAILED reply; nothing is retried.
        """
        correlation_id = correlation_id or create_correlation_id()

        if isinstance(action, RejectedAction):
            return ChatReply(
                outcome=ReplyOutcome.REJECTED,
                message=f"❌ {action.message}",
                action=action,
            )

        try:
            if isinstance(action, CreateTransactionAction):
                record = action.payload.to_record(status=TransactionStatus.CONFIRMED)
                stored = await self._storage.create_transaction(record)
                entity_type, entity_id = "transaction", stored.id
                message = (
                    f"✅ Transaction created: {stored.description} - "
                    f"{format_currency(stored.amount, self._currency_symbol)}"
                )
            elif isinstance(action, CreateGoalAction):
                stored = await self._storage.create_goal(action.payload.to_goal())
                entity_type, entity_id = "goal", stored.id
                message = (
                    f"🎯 Goal created: {stored.name} - "
                    f"{format_currency(stored.target_amount, self._currency_symbol)}"
                )
            else:
                stored = await self._storage.create_account(action.payload.to_account())
                entity_type, entity_id = "account", stored.id
                message = f"🏦 Account created: {stored.name}"
        except StorageError as e:
            return await self._failed(action.action, e, correlation_id, action)

        if self._audit_logger:
            await self._audit_logger.log_action_executed(
                entity_type=entity_type,
                entity_id=entity_id,
                summary=message,
                correlation_id=correlation_id,
            )

        return ChatReply(
            outcome=ReplyOutcome.EXECUTED,
            message=message,
            action=action,
        )

    def _get_language_model(self) -> LanguageModelInterface:
        """
        Return the language model, creating the Gemini agent on first use.

        Raises:
            LanguageModelError: Gemini settings are missing or invalid
        """
        if self._language_model is None:
            try:
                self._language_model = GeminiChatAgent()
            except ValidationError as e:
                raise LanguageModelError(f"Gemini is not configured: {e}") from e
        return self._language_model

    async def _answer_question(
        self,
        question: str,
        today: date,
        correlation_id: UUID,
    ) -> ChatReply:
        category = classify_query(question)

        if self._audit_logger:
            await self._audit_logger.log_command_unmatched(category.value, correlation_id)

        financial_context = await self._context_builder.build(category, today=today)

        try:
            answer = await self._get_language_model().answer(question, financial_context)
        except LanguageModelError as e:
            logger.error("question_failed", error=str(e), correlation_id=str(correlation_id))
            if self._audit_logger:
                await self._audit_logger.log_language_model_failed(str(e), correlation_id)
            return ChatReply(
                outcome=ReplyOutcome.FAILED,
                message=ANSWER_FAILED_MESSAGE,
                error_message=str(e),
                context_category=category.value,
            )

        if self._audit_logger:
            await self._audit_logger.log_question_answered(category.value, correlation_id)

        return ChatReply(
            outcome=ReplyOutcome.ANSWERED,
            message=answer,
            context_category=category.value,
        )

    async def _failed(
        self,
        entity_type: str,
        error: StorageError,
        correlation_id: UUID,
        action: Optional[ParsedAction] = None,
    ) -> ChatReply:
        logger.error(
            "command_execution_failed",
            entity_type=entity_type,
            error=str(error),
            correlation_id=str(correlation_id),
        )
        if self._audit_logger:
            await self._audit_logger.log_execution_failed(
                entity_type=entity_type,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        return ChatReply(
            outcome=ReplyOutcome.FAILED,
            message=EXECUTION_FAILED_MESSAGE,
            action=action,
            error_message=str(error),
        )


class LedgerFlow:
    """
    Orchestrates the transaction ledger.

    Writes go to storage as flat records; reads fold them back into
    logical purchases and apply search and filters.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        splitter: Optional[InstallmentSplitter] = None,
        grouper: Optional[InstallmentGrouper] = None,
        transaction_filter: Optional[TransactionFilter] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._splitter = splitter or InstallmentSplitter()
        self._grouper = grouper or InstallmentGrouper()
        self._filter = transaction_filter or TransactionFilter()
        self._audit_logger = audit_logger

    async def record_transaction(
        self,
        payload: TransactionPayload,
        installment_count: int = 1,
        correlation_id: Optional[UUID] = None,
    ) -> list[TransactionRecord]:
        """
        Create one transaction, or one record per installment.

        Records are written in installment order. A storage failure
        propagates as StorageError; records written before it stay.

        Raises:
            InstallmentError: installment_count out of range
            StorageError: A write failed
        """
        correlation_id = correlation_id or create_correlation_id()

        if installment_count == 1:
            records = [payload.to_record()]
        else:
            records = self._splitter.split(payload, installment_count)

        stored = []
        try:
            for record in records:
                stored.append(await self._storage.create_transaction(record))
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="transaction_write_failed",
                    error_message=str(e),
                    details={"written": len(stored), "requested": len(records)},
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            if installment_count > 1:
                await self._audit_logger.log_installments_created(
                    group_id=records[0].installment_group_id,
                    installment_count=installment_count,
                    total_amount=str(payload.amount),
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_action_executed(
                    entity_type="transaction",
                    entity_id=records[0].id,
                    summary=payload.description,
                    correlation_id=correlation_id,
                )

        return stored

    async def update_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """
        Change the status of one record.

        Raises:
            NotFoundError: Unknown transaction id
        """
        correlation_id = correlation_id or create_correlation_id()

        current = next(
            (r for r in await self._storage.list_transactions() if r.id == transaction_id),
            None,
        )
        if current is None:
            raise NotFoundError("transaction", transaction_id)

        updated = await self._storage.update_transaction_status(transaction_id, status)

        if self._audit_logger:
            await self._audit_logger.log_status_updated(
                transaction_id=transaction_id,
                old_status=current.status.value,
                new_status=status.value,
                correlation_id=correlation_id,
            )
        return updated

    async def list_transactions(
        self,
        search_text: Optional[str] = None,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[GroupedEntry]:
        """Grouped, filtered view, most recent first."""
        records = await self._storage.list_transactions()
        view = self._grouper.group(records)
        return self._filter.apply(view, search_text, criteria)


def create_app_components(
    language_model: Optional[LanguageModelInterface] = None,
    storage: Optional[FinanceStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[CommandFlow, LedgerFlow, FinanceStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        language_model: Question answering collaborator.
                        Defaults to Gemini, created on the first question
                        (needs GEMINI_API_KEY only then).
        storage: Finance storage. Defaults to in-memory storage.
        audit_storage: Audit storage. Defaults to in-memory storage.

    Returns:
        (command_flow, ledger_flow, storage)
    """
    storage = storage or InMemoryFinanceStorage()
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    command_flow = CommandFlow(
        storage=storage,
        language_model=language_model,
        audit_logger=audit_logger,
    )
    ledger_flow = LedgerFlow(
        storage=storage,
        audit_logger=audit_logger,
    )
    return command_flow, ledger_flow, storage
