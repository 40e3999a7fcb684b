"""
Integration tests for the chat and ledger flows.

Flows run against in-memory storage and a fake language model.
Async code is driven with asyncio.run; no network calls are made.
"""

import asyncio
import json
import pytest
from datetime import date
from decimal import Decimal

from finance_assistant.agents import (
    ContextCategory,
    FinancialContextBuilder,
    LanguageModelError,
    LanguageModelInterface,
    classify_query,
)
from finance_assistant.agents.context import CONTEXT_UNAVAILABLE, NO_CONTEXT
from finance_assistant.audit import AuditLogger
from finance_assistant.config import get_settings
from finance_assistant.installments import InstallmentError, InstallmentSplitter
from finance_assistant.models.actions import (
    CreateAccountAction,
    CreateGoalAction,
    CreateTransactionAction,
    RejectedAction,
    RejectionReason,
    ReplyOutcome,
)
from finance_assistant.models.audit import AuditEventType
from finance_assistant.models.finance import (
    Account,
    AccountKind,
    Category,
    FilterCriteria,
    Goal,
    InstallmentGroup,
    StandaloneTransaction,
    TransactionKind,
    TransactionPayload,
    TransactionRecord,
    TransactionStatus,
)
from finance_assistant.orchestrator import (
    ANSWER_FAILED_MESSAGE,
    EXECUTION_FAILED_MESSAGE,
    CommandFlow,
    LedgerFlow,
    create_app_components,
)
from finance_assistant.services.storage import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageError,
)


TODAY = date(2024, 3, 15)


class FakeLanguageModel(LanguageModelInterface):
    """Records calls and returns a canned answer."""

    def __init__(self, answer_text="Your balance is R$ 100,00.", error=None):
        self.answer_text = answer_text
        self.error = error
        self.calls = []

    async def answer(self, question: str, financial_context: str) -> str:
        self.calls.append((question, financial_context))
        if self.error:
            raise self.error
        return self.answer_text


def make_storage(**overrides) -> InMemoryFinanceStorage:
    fields = dict(
        categories=[
            Category(id="inc", name="Salário", kind=TransactionKind.INCOME),
            Category(id="food", name="Alimentação", kind=TransactionKind.EXPENSE),
        ],
        accounts=[Account(id="main", name="Main", current_balance=Decimal("100.00"))],
    )
    fields.update(overrides)
    return InMemoryFinanceStorage(**fields)


def make_flow(storage, language_model=None, audit_storage=None) -> CommandFlow:
    return CommandFlow(
        storage=storage,
        language_model=language_model or FakeLanguageModel(),
        audit_logger=AuditLogger(audit_storage),
        currency_symbol="R$",
    )


def make_payload(amount="300.00", description="Notebook") -> TransactionPayload:
    return TransactionPayload(
        description=description,
        amount=Decimal(amount),
        kind=TransactionKind.EXPENSE,
        account_id="main",
        category_id="food",
        transaction_date=date(2024, 1, 31),
    )


class TestClassifyQuery:
    """Tests for picking the context slice of a question."""

    @pytest.mark.parametrize(
        "question, category",
        [
            ("Quanto gastei este mês?", ContextCategory.EXPENSES),
            ("Qual o meu saldo?", ContextCategory.BALANCES),
            ("Me dê um resumo", ContextCategory.SUMMARY),
            ("Como estão minhas metas?", ContextCategory.GOALS),
            ("Olá!", ContextCategory.NONE),
        ],
    )
    def test_keyword_sets(self, question, category):
        """Test each keyword set."""
        assert classify_query(question) == category

    def test_expenses_checked_first(self):
        """Test that the first matching set wins."""
        assert classify_query("Total de despesas por conta") == ContextCategory.EXPENSES


class TestFinancialContextBuilder:
    """Tests for the context text handed to the language model."""

    def test_balances_context(self):
        """Test account balances as JSON."""
        builder = FinancialContextBuilder(make_storage())
        text = asyncio.run(builder.build(ContextCategory.BALANCES, today=TODAY))

        payload = json.loads(text.split("\n", 1)[1])
        assert payload == [{"name": "Main", "current_balance": "100.00"}]

    def test_expenses_context_uses_current_month(self):
        """Test that only this month's confirmed expenses are included."""
        storage = make_storage(transactions=[
            TransactionRecord(description="Lunch", amount=Decimal("40.00"), kind=TransactionKind.EXPENSE,
                              account_id="main", category_id="food", transaction_date=date(2024, 3, 2)),
            TransactionRecord(description="Old", amount=Decimal("99.00"), kind=TransactionKind.EXPENSE,
                              account_id="main", category_id="food", transaction_date=date(2024, 2, 2)),
        ])
        builder = FinancialContextBuilder(storage)

        text = asyncio.run(builder.build(ContextCategory.EXPENSES, today=TODAY))

        payload = json.loads(text.split("\n", 1)[1])
        assert payload == [{"category": "Alimentação", "amount": "40.00", "percentage": 100.0}]

    def test_summary_context(self):
        """Test the monthly summary."""
        storage = make_storage(transactions=[
            TransactionRecord(description="Salary", amount=Decimal("1000.00"), kind=TransactionKind.INCOME,
                              account_id="main", category_id="inc", transaction_date=date(2024, 3, 1)),
        ])
        text = asyncio.run(FinancialContextBuilder(storage).build(ContextCategory.SUMMARY, today=TODAY))

        payload = json.loads(text.split("\n", 1)[1])
        assert payload["income"] == "1000.00"
        assert payload["balance"] == "1000.00"

    def test_goals_context(self):
        """Test the goals slice."""
        storage = make_storage(goals=[
            Goal(name="Trip", target_amount=Decimal("500.00"),
                 start_date=date(2024, 3, 1), end_date=date(2024, 6, 1)),
        ])
        text = asyncio.run(FinancialContextBuilder(storage).build(ContextCategory.GOALS, today=TODAY))

        payload = json.loads(text.split("\n", 1)[1])
        assert payload[0]["name"] == "Trip"
        assert payload[0]["target_amount"] == "500.00"

    def test_no_category(self):
        """Test the text sent when no data was asked for."""
        text = asyncio.run(FinancialContextBuilder(make_storage()).build(ContextCategory.NONE))
        assert text == NO_CONTEXT

    def test_storage_failure_becomes_notice(self):
        """Test that a storage error does not fail the question."""
        storage = make_storage(fail_on={"list_accounts"})
        text = asyncio.run(FinancialContextBuilder(storage).build(ContextCategory.BALANCES))
        assert text == CONTEXT_UNAVAILABLE


class TestCommandFlow:
    """Tests for one utterance end to end."""

    def test_transaction_executed(self):
        """Test that a valid command is persisted as CONFIRMED."""
        storage = make_storage()
        flow = make_flow(storage)

        reply = asyncio.run(flow.handle_message("Gastei R$ 25 com alimentação", today=TODAY))

        assert reply.outcome == ReplyOutcome.EXECUTED
        assert isinstance(reply.action, CreateTransactionAction)
        assert reply.message == "✅ Transaction created: Expense: alimentação - R$ 25,00"

        stored = asyncio.run(storage.list_transactions())
        assert len(stored) == 1
        assert stored[0].status == TransactionStatus.CONFIRMED
        assert stored[0].category_id == "food"
        assert stored[0].account_id == "main"
        assert stored[0].transaction_date == TODAY

    def test_goal_executed(self):
        """Test goal creation from chat."""
        storage = make_storage()
        reply = asyncio.run(make_flow(storage).handle_message("Criar meta de R$ 1000", today=TODAY))

        assert reply.outcome == ReplyOutcome.EXECUTED
        assert isinstance(reply.action, CreateGoalAction)
        assert reply.message == "🎯 Goal created: Savings Goal - R$ 1.000,00"

        goals = asyncio.run(storage.list_goals())
        assert goals[0].end_date == date(2024, 4, 14)

    def test_account_executed(self):
        """Test account creation from chat."""
        storage = make_storage(accounts=[])
        reply = asyncio.run(make_flow(storage).handle_message("Nova conta poupança Reserva"))

        assert reply.outcome == ReplyOutcome.EXECUTED
        assert isinstance(reply.action, CreateAccountAction)
        assert reply.message == "🏦 Account created: Savings Reserva"

        accounts = asyncio.run(storage.list_accounts())
        assert accounts[0].kind == AccountKind.SAVINGS

    def test_rejected_without_accounts(self):
        """Test that a missing account is reported, not persisted."""
        storage = make_storage(accounts=[])
        reply = asyncio.run(make_flow(storage).handle_message("Gastei R$ 25 com alimentação"))

        assert reply.outcome == ReplyOutcome.REJECTED
        assert isinstance(reply.action, RejectedAction)
        assert reply.action.reason == RejectionReason.NO_ACCOUNTS
        assert reply.message.startswith("❌ ")
        assert asyncio.run(storage.list_transactions()) == []

    def test_reference_data_refreshed_between_utterances(self):
        """Test that an account created by chat is used by the next command."""
        storage = make_storage(accounts=[])
        flow = make_flow(storage)

        first = asyncio.run(flow.handle_message("Gastei 10 com alimentação"))
        asyncio.run(flow.handle_message("Criar conta corrente Banco"))
        second = asyncio.run(flow.handle_message("Gastei 10 com alimentação"))

        assert first.outcome == ReplyOutcome.REJECTED
        assert second.outcome == ReplyOutcome.EXECUTED

    def test_storage_failure_on_create(self):
        """Test that a failed write becomes a generic retry message."""
        storage = make_storage(fail_on={"create_transaction"})
        reply = asyncio.run(make_flow(storage).handle_message("Gastei R$ 25 com alimentação"))

        assert reply.outcome == ReplyOutcome.FAILED
        assert reply.message == EXECUTION_FAILED_MESSAGE
        assert reply.error_message == "create_transaction failed"

        storage.fail_on.clear()
        assert asyncio.run(storage.list_transactions()) == []

    def test_storage_failure_on_refresh(self):
        """Test that failing to load reference data fails the command."""
        storage = make_storage(fail_on={"list_categories"})
        reply = asyncio.run(make_flow(storage).handle_message("Gastei R$ 25 com alimentação"))

        assert reply.outcome == ReplyOutcome.FAILED
        assert reply.message == EXECUTION_FAILED_MESSAGE

    def test_question_goes_to_language_model(self):
        """Test that a non-command is answered with context."""
        model = FakeLanguageModel()
        reply = asyncio.run(make_flow(make_storage(), model).handle_message("Qual o meu saldo?"))

        assert reply.outcome == ReplyOutcome.ANSWERED
        assert reply.message == "Your balance is R$ 100,00."
        assert reply.context_category == "balances"
        question, context = model.calls[0]
        assert question == "Qual o meu saldo?"
        assert "Main" in context

    def test_commands_do_not_reach_language_model(self):
        """Test that recognised commands never call the model."""
        model = FakeLanguageModel()
        asyncio.run(make_flow(make_storage(), model).handle_message("Gastei 5 com alimentação"))
        assert model.calls == []

    def test_language_model_failure(self):
        """Test that a model failure becomes a generic message."""
        model = FakeLanguageModel(error=LanguageModelError("quota exceeded"))
        reply = asyncio.run(make_flow(make_storage(), model).handle_message("Qual o meu saldo?"))

        assert reply.outcome == ReplyOutcome.FAILED
        assert reply.message == ANSWER_FAILED_MESSAGE
        assert reply.error_message == "quota exceeded"

    def test_audit_trail_shares_correlation_id(self):
        """Test that one utterance is audited under one correlation id."""
        audit_storage = InMemoryAuditStorage()
        flow = make_flow(make_storage(), audit_storage=audit_storage)

        asyncio.run(flow.handle_message("Gastei R$ 25 com alimentação"))

        events = audit_storage.events
        assert [e.event_type for e in events] == [
            AuditEventType.COMMAND_RECEIVED,
            AuditEventType.COMMAND_PARSED,
            AuditEventType.ACTION_EXECUTED,
        ]
        assert len({e.correlation_id for e in events}) == 1

    def test_rejection_is_audited(self):
        """Test the audit trail of a rejected command."""
        audit_storage = InMemoryAuditStorage()
        flow = make_flow(make_storage(), audit_storage=audit_storage)

        asyncio.run(flow.handle_message("criar conta x"))

        assert audit_storage.events[-1].event_type == AuditEventType.ACTION_REJECTED


class TestLedgerFlow:
    """Tests for creating, updating and listing transactions."""

    def make_ledger(self, storage, audit_storage=None) -> LedgerFlow:
        return LedgerFlow(
            storage=storage,
            splitter=InstallmentSplitter(max_installments=24),
            audit_logger=AuditLogger(audit_storage),
        )

    def test_single_transaction(self):
        """Test that a count of one stores one standalone record."""
        storage = make_storage()
        records = asyncio.run(self.make_ledger(storage).record_transaction(make_payload()))

        assert len(records) == 1
        assert records[0].installment_group_id is None
        assert records[0].status == TransactionStatus.CONFIRMED

    def test_installment_purchase_listed_as_one_row(self):
        """Test split on write and group on read."""
        storage = make_storage()
        audit_storage = InMemoryAuditStorage()
        ledger = self.make_ledger(storage, audit_storage)

        records = asyncio.run(ledger.record_transaction(make_payload("100.00"), installment_count=3))
        view = asyncio.run(ledger.list_transactions())

        assert len(records) == 3
        assert len(asyncio.run(storage.list_transactions())) == 3
        assert len(view) == 1
        assert isinstance(view[0], InstallmentGroup)
        assert view[0].total_amount == Decimal("100.00")
        assert view[0].description == "Notebook"
        assert audit_storage.events[-1].event_type == AuditEventType.INSTALLMENTS_CREATED

    def test_invalid_installment_count(self):
        """Test that nothing is stored when the count is out of range."""
        storage = make_storage()
        with pytest.raises(InstallmentError):
            asyncio.run(self.make_ledger(storage).record_transaction(make_payload(), installment_count=30))
        assert asyncio.run(storage.list_transactions()) == []

    @pytest.mark.parametrize("count", [0, -2])
    def test_non_positive_count_is_not_a_single_record(self, count):
        """Test that zero or negative counts are refused instead of stored once."""
        storage = make_storage()
        with pytest.raises(InstallmentError):
            asyncio.run(self.make_ledger(storage).record_transaction(make_payload(), installment_count=count))
        assert asyncio.run(storage.list_transactions()) == []

    def test_storage_failure_propagates(self):
        """Test that ledger writes surface storage errors to the caller."""
        storage = make_storage(fail_on={"create_transaction"})
        with pytest.raises(StorageError):
            asyncio.run(self.make_ledger(storage).record_transaction(make_payload()))

    def test_update_status(self):
        """Test that status is the one mutable field."""
        storage = make_storage()
        audit_storage = InMemoryAuditStorage()
        ledger = self.make_ledger(storage, audit_storage)
        record = asyncio.run(ledger.record_transaction(make_payload()))[0]

        updated = asyncio.run(ledger.update_status(record.id, TransactionStatus.CANCELED))

        assert updated.status == TransactionStatus.CANCELED
        assert updated.amount == record.amount
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.TRANSACTION_STATUS_UPDATED
        assert event.details == {"old_status": "CONFIRMED", "new_status": "CANCELED"}

    def test_update_unknown_transaction(self):
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            asyncio.run(self.make_ledger(make_storage()).update_status("missing", TransactionStatus.CANCELED))

    def test_list_with_search_and_criteria(self):
        """Test that listing groups, filters and sorts."""
        storage = make_storage()
        ledger = self.make_ledger(storage)
        asyncio.run(ledger.record_transaction(make_payload("100.00", "Notebook"), installment_count=2))
        asyncio.run(ledger.record_transaction(make_payload("20.00", "Coffee")))
        coffee = asyncio.run(ledger.list_transactions("coffee"))[0]
        asyncio.run(ledger.update_status(coffee.id, TransactionStatus.PENDING))

        pending = asyncio.run(ledger.list_transactions(
            criteria=FilterCriteria(status=TransactionStatus.PENDING)
        ))

        assert len(pending) == 1
        assert isinstance(pending[0], StandaloneTransaction)
        assert pending[0].description == "Coffee"


class TestCreateAppComponents:
    """Tests for the component factory."""

    def test_components_share_storage(self):
        """Test that chat and ledger see the same data."""
        command_flow, ledger_flow, storage = create_app_components(
            language_model=FakeLanguageModel(),
            storage=make_storage(),
        )

        asyncio.run(command_flow.handle_message("Gastei 15 com alimentação"))
        view = asyncio.run(ledger_flow.list_transactions())

        assert len(view) == 1
        assert view[0].description == "Expense: alimentação"

    def test_commands_and_ledger_need_no_gemini_key(self, monkeypatch):
        """Test that the default language model is only built for questions."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        get_settings.cache_clear()
        try:
            command_flow, ledger_flow, _ = create_app_components(storage=make_storage())

            command = asyncio.run(command_flow.handle_message("Gastei 15 com alimentação"))
            view = asyncio.run(ledger_flow.list_transactions())
            question = asyncio.run(command_flow.handle_message("Qual o meu saldo?"))
        finally:
            get_settings.cache_clear()

        assert command.outcome == ReplyOutcome.EXECUTED
        assert len(view) == 1
        assert question.outcome == ReplyOutcome.FAILED
        assert question.message == ANSWER_FAILED_MESSAGE
        assert "not configured" in question.error_message
