"""
Action Validation

DESIGN DECISION: Validation turns a ParsedCommand into exactly one
ParsedAction variant. It checks business preconditions against the
user's reference data, in a fixed order, and stops at the first failure.

Each failure has its own RejectionReason so the chat can tell the user
what to do next ("create an account first", "use a positive amount").

IMPORTANT: Validation NEVER raises for bad input and NEVER substitutes
a default for a bad amount. It returns RejectedAction and lets the user
try again.

The validator is pure: reference data comes in through ValidationContext
and `today` can be pinned by the caller.
"""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from finance_assistant.config import AppSettings, get_settings
from finance_assistant.models.actions import (
    CreateAccountAction,
    CreateGoalAction,
    CreateTransactionAction,
    Intent,
    ParsedAction,
    ParsedCommand,
    RejectedAction,
    RejectionReason,
    ValidationContext,
)
from finance_assistant.models.finance import (
    AccountKind,
    AccountPayload,
    GoalKind,
    GoalPayload,
    TransactionKind,
    TransactionPayload,
)
from finance_assistant.parsing.resolver import resolve_account, resolve_category


logger = structlog.get_logger()

CENT = Decimal("0.01")

REJECTION_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.NO_ACCOUNTS: (
        "You need at least one account before recording an expense. "
        "Create one first, e.g. \"Criar conta corrente Banco do Brasil\"."
    ),
    RejectionReason.NO_CATEGORIES: (
        "You need at least one category before recording an expense. "
        "Create a category and try again."
    ),
    RejectionReason.INVALID_AMOUNT: "The amount must be a positive number.",
    RejectionReason.CATEGORY_UNRESOLVED: (
        "Could not find a valid category. Check your registered categories."
    ),
    RejectionReason.ACCOUNT_UNRESOLVED: (
        "Could not find a valid account. Check your registered accounts."
    ),
    RejectionReason.NAME_TOO_SHORT: (
        "The account name is too short. Try e.g. \"Criar conta poupança Reserva\"."
    ),
}


def is_valid_amount(amount: Optional[Decimal]) -> bool:
    """True for a finite amount greater than zero."""
    return amount is not None and amount.is_finite() and amount > 0


class ActionValidator:
    """
    Validates parsed commands against the user's reference data.

    Checks are short-circuiting and ordered:
    - CreateTransaction: accounts -> categories -> amount -> category -> account
    - CreateGoal: amount
    - CreateAccount: name length
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        """
        Initialize validator.

        Args:
            settings: Application settings. Defaults to the cached settings.
        """
        self._settings = settings or get_settings().app

    def validate(
        self,
        command: ParsedCommand,
        context: ValidationContext,
        today: Optional[date] = None,
    ) -> ParsedAction:
        """
        Decide what a parsed command becomes.

        Args:
            command: Output of the command parser
            context: Categories and accounts as currently stored
            today: Date to stamp on new records (defaults to date.today())

        Returns:
            A create action with a complete payload, or RejectedAction
        """
        today = today or date.today()

        if command.intent == Intent.CREATE_TRANSACTION:
            result = self._validate_transaction(command, context, today)
        elif command.intent == Intent.CREATE_GOAL:
            result = self._validate_goal(command, today)
        else:
            result = self._validate_account(command)

        if isinstance(result, RejectedAction):
            logger.info(
                "command_rejected",
                intent=command.intent.value,
                reason=result.reason.value,
            )
        return result

    def _reject(self, intent: Intent, reason: RejectionReason) -> RejectedAction:
        return RejectedAction(
            intent=intent,
            reason=reason,
            message=REJECTION_MESSAGES[reason],
        )

    def _validate_transaction(
        self,
        command: ParsedCommand,
        context: ValidationContext,
        today: date,
    ) -> ParsedAction:
        intent = Intent.CREATE_TRANSACTION

        if not context.accounts:
            return self._reject(intent, RejectionReason.NO_ACCOUNTS)

        if not context.categories:
            return self._reject(intent, RejectionReason.NO_CATEGORIES)

        if not is_valid_amount(command.amount):
            return self._reject(intent, RejectionReason.INVALID_AMOUNT)

        fragment = command.description_fragment or ""
        category = resolve_category(
            fragment,
            context.categories,
            preferred_kind=TransactionKind.EXPENSE,
        )
        if category is None or not category.id:
            return self._reject(intent, RejectionReason.CATEGORY_UNRESOLVED)

        account = resolve_account(context.accounts)
        if account is None or not account.id:
            return self._reject(intent, RejectionReason.ACCOUNT_UNRESOLVED)

        payload = TransactionPayload(
            description=f"{self._settings.expense_description_prefix}{fragment}"[:300],
            amount=command.amount.quantize(CENT, rounding=ROUND_HALF_UP),
            kind=TransactionKind.EXPENSE,
            account_id=account.id,
            category_id=category.id,
            transaction_date=today,
        )
        return CreateTransactionAction(payload=payload)

    def _validate_goal(self, command: ParsedCommand, today: date) -> ParsedAction:
        if not is_valid_amount(command.amount):
            return self._reject(Intent.CREATE_GOAL, RejectionReason.INVALID_AMOUNT)

        payload = GoalPayload(
            name=self._settings.default_goal_name,
            kind=GoalKind.SAVINGS,
            target_amount=command.amount.quantize(CENT, rounding=ROUND_HALF_UP),
            start_date=today,
            end_date=today + timedelta(days=self._settings.default_goal_duration_days),
        )
        return CreateGoalAction(payload=payload)

    def _validate_account(self, command: ParsedCommand) -> ParsedAction:
        name = (command.account_name or "").strip()
        if len(name) < self._settings.min_account_name_length:
            return self._reject(Intent.CREATE_ACCOUNT, RejectionReason.NAME_TOO_SHORT)

        payload = AccountPayload(
            name=name[:100],
            kind=command.account_kind or AccountKind.CHECKING,
        )
        return CreateAccountAction(payload=payload)
