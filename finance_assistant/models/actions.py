"""
Command and Action Models

A free-text utterance goes through two shapes:

1. ParsedCommand - what the parser recognised (intent + raw parameters).
   Nothing here has been checked against the user's data yet.
2. ParsedAction - what the validator decided. Exactly one of:
   CreateTransactionAction, CreateGoalAction, CreateAccountAction,
   RejectedAction.

DESIGN DECISION: Rejections are VALUES, not exceptions.
The caller renders them inline and the user supplies more data.
Using a discriminated union means there is one path per outcome and no
truthiness checks on half-filled objects.
"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from finance_assistant.models.finance import (
    AccountKind,
    AccountPayload,
    Category,
    Account,
    GoalPayload,
    TransactionPayload,
)


class Intent(str, Enum):
    """The fixed vocabulary of commands the interpreter understands."""
    CREATE_TRANSACTION = "create_transaction"
    CREATE_GOAL = "create_goal"
    CREATE_ACCOUNT = "create_account"


class RejectionReason(str, Enum):
    """
    Named preconditions.

    Each reason maps to a specific remediation message for the user.
    """
    NO_ACCOUNTS = "no_accounts"
    NO_CATEGORIES = "no_categories"
    INVALID_AMOUNT = "invalid_amount"
    CATEGORY_UNRESOLVED = "category_unresolved"
    ACCOUNT_UNRESOLVED = "account_unresolved"
    NAME_TOO_SHORT = "name_too_short"


class ParsedCommand(BaseModel):
    """
    Output of the command parser.

    Parameters are raw: amount may be None (unparseable) or non-positive,
    names may be too short. The validator decides.
    """

    intent: Intent
    utterance: str
    pattern: str = Field(
        ...,
        description="Name of the grammar rule that matched"
    )

    amount_text: Optional[str] = None
    amount: Optional[Decimal] = None

    # CreateTransaction
    description_fragment: Optional[str] = None

    # CreateAccount
    account_kind: Optional[AccountKind] = None
    account_name: Optional[str] = None


class ValidationContext(BaseModel):
    """
    Snapshot of the user's reference data.

    Passed explicitly into every validation and refreshed by the caller
    between utterances; the validator holds no state.
    """

    categories: list[Category] = Field(default_factory=list)
    accounts: list[Account] = Field(default_factory=list)


# =============================================================================
# ACTION VARIANTS
# =============================================================================

class CreateTransactionAction(BaseModel):
    action: Literal["create_transaction"] = "create_transaction"
    payload: TransactionPayload


class CreateGoalAction(BaseModel):
    action: Literal["create_goal"] = "create_goal"
    payload: GoalPayload


class CreateAccountAction(BaseModel):
    action: Literal["create_account"] = "create_account"
    payload: AccountPayload


class RejectedAction(BaseModel):
    """A named precondition failed. Always user-facing, never retried."""

    action: Literal["rejected"] = "rejected"
    intent: Intent
    reason: RejectionReason
    message: str


ParsedAction = Annotated[
    Union[
        CreateTransactionAction,
        CreateGoalAction,
        CreateAccountAction,
        RejectedAction,
    ],
    Field(discriminator="action"),
]


# =============================================================================
# REPLIES
# =============================================================================

class ReplyOutcome(str, Enum):
    """How one utterance ended."""
    EXECUTED = "executed"    # Action validated and persisted
    REJECTED = "rejected"    # Validation failed, user must supply more data
    FAILED = "failed"        # Persistence or language model call failed
    ANSWERED = "answered"    # No intent matched, language model answered


class ChatReply(BaseModel):
    """What the chat surface shows for one utterance."""

    outcome: ReplyOutcome
    message: str
    action: Optional[ParsedAction] = None
    error_message: Optional[str] = Field(
        default=None,
        description="Original error text for FAILED outcomes (not shown to users)"
    )
    context_category: Optional[str] = Field(
        default=None,
        description="Context fetched for the language model, if any"
    )
