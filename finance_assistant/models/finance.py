"""
Core Data Models for Finance Assistant

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money exact (Decimal, two places)
3. Be serializable for storage and logging
4. Make the installment invariants impossible to violate silently

DESIGN DECISION: Field names follow the persisted records, except that the
calendar day of a transaction is `transaction_date` so it never shadows the
`date` type inside a model body.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def new_id() -> str:
    """Generate a fresh string identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of money for a transaction or category."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionStatus(str, Enum):
    """
    Transaction status.

    Status is the only field that changes after a record is created.
    """
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELED = "CANCELED"


class AccountKind(str, Enum):
    """Supported account types."""
    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    INVESTMENT = "INVESTMENT"
    WALLET = "WALLET"
    CARD = "CARD"


class GoalKind(str, Enum):
    """Supported goal types."""
    SAVINGS = "SAVINGS"
    MAX_SPEND = "MAX_SPEND"
    MIN_INCOME = "MIN_INCOME"


# Sentinel used by the transaction filter for "do not filter"
ALL = "ALL"


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Category(BaseModel):
    """
    A transaction category.

    Only name and color may change once a transaction references it,
    and those edits belong to the persistence collaborator.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name shown to the user"
    )
    kind: TransactionKind
    color: str = Field(
        default="#6b7280",
        description="Display color"
    )


class Account(BaseModel):
    """
    A money account.

    `active=False` excludes the account from auto-selection.
    A missing value (None) counts as active.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    kind: AccountKind = AccountKind.CHECKING
    current_balance: Decimal = Field(
        default=Decimal("0.00"),
        decimal_places=2,
    )
    active: Optional[bool] = True


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionRecord(BaseModel):
    """
    The flat, persisted unit of money movement.

    A record may belong to an installment group. When it does,
    index and total are mandatory and 1 <= index <= total.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    description: str = Field(
        ...,
        min_length=1,
        max_length=300,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive amount; direction comes from kind"
    )
    kind: TransactionKind
    account_id: str
    category_id: str
    transaction_date: Optional[date] = Field(
        default=None,
        description="Calendar day of the transaction"
    )
    status: TransactionStatus = TransactionStatus.CONFIRMED
    notes: Optional[str] = Field(default=None, max_length=1000)

    # Installment membership
    installment_group_id: Optional[str] = None
    installment_index: Optional[int] = None
    installment_total: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode='after')
    def validate_installment_fields(self) -> 'TransactionRecord':
        """Installment fields are all-or-nothing and the index is in range."""
        if self.installment_group_id is None:
            return self

        if self.installment_index is None or self.installment_total is None:
            raise ValueError(
                "Installment records need both installment_index and installment_total"
            )
        if not 1 <= self.installment_index <= self.installment_total:
            raise ValueError(
                f"Installment index {self.installment_index} is outside "
                f"1..{self.installment_total}"
            )
        return self

    @property
    def is_installment(self) -> bool:
        return self.installment_group_id is not None


class TransactionPayload(BaseModel):
    """
    A transaction ready to be created.

    Status is left unset by the command interpreter; whoever executes
    the payload decides it.
    """

    description: str = Field(..., min_length=1, max_length=300)
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    kind: TransactionKind
    account_id: str
    category_id: str
    transaction_date: date
    status: Optional[TransactionStatus] = None
    notes: Optional[str] = None

    def to_record(
        self,
        status: TransactionStatus = TransactionStatus.CONFIRMED,
    ) -> TransactionRecord:
        """Build the record to persist, keeping an explicit status if set."""
        return TransactionRecord(
            description=self.description,
            amount=self.amount,
            kind=self.kind,
            account_id=self.account_id,
            category_id=self.category_id,
            transaction_date=self.transaction_date,
            status=self.status or status,
            notes=self.notes,
        )


# =============================================================================
# GROUPED VIEW
# =============================================================================

class StandaloneTransaction(TransactionRecord):
    """A record that is not part of an installment group, tagged for display."""

    entry_type: Literal["standalone"] = "standalone"


class InstallmentGroup(BaseModel):
    """
    One logical purchase reconstructed from its installments.

    Derived on every read, never persisted.
    """

    entry_type: Literal["installment_group"] = "installment_group"

    id: str = Field(..., description="The shared installment_group_id")
    description: str = Field(..., description="Base description without (i/n)")
    total_amount: Decimal
    kind: TransactionKind
    account_id: str
    category_id: str
    transaction_date: Optional[date] = Field(
        default=None,
        description="Earliest member date"
    )
    status: TransactionStatus
    installment_total: int
    created_at: datetime
    members: list[TransactionRecord] = Field(default_factory=list)

    @property
    def amount(self) -> Decimal:
        return self.total_amount

    @property
    def member_count(self) -> int:
        return len(self.members)


GroupedEntry = Annotated[
    Union[StandaloneTransaction, InstallmentGroup],
    Field(discriminator="entry_type"),
]


class FilterCriteria(BaseModel):
    """
    Criteria for the transaction list.

    "ALL" disables the kind/status filters; None disables the others.
    """

    kind: Union[TransactionKind, Literal["ALL"]] = ALL
    status: Union[TransactionStatus, Literal["ALL"]] = ALL
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


# =============================================================================
# GOALS AND ACCOUNTS TO CREATE
# =============================================================================

class Goal(BaseModel):
    """A financial goal over a date range."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    kind: GoalKind = GoalKind.SAVINGS
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    start_date: date
    end_date: date

    @model_validator(mode='after')
    def validate_dates(self) -> 'Goal':
        """End date cannot precede start date."""
        if self.end_date < self.start_date:
            raise ValueError("Goal end date cannot be before start date")
        return self


class GoalPayload(BaseModel):
    """A goal ready to be created."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    kind: GoalKind = GoalKind.SAVINGS
    target_amount: Decimal = Field(..., gt=0, decimal_places=2)
    start_date: date
    end_date: date

    @model_validator(mode='after')
    def validate_dates(self) -> 'GoalPayload':
        if self.end_date < self.start_date:
            raise ValueError("Goal end date cannot be before start date")
        return self

    def to_goal(self) -> Goal:
        return Goal(**self.model_dump())


class AccountPayload(BaseModel):
    """An account ready to be created."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    kind: AccountKind = AccountKind.CHECKING
    current_balance: Decimal = Field(default=Decimal("0.00"), decimal_places=2)
    active: bool = True

    def to_account(self) -> Account:
        return Account(**self.model_dump())
