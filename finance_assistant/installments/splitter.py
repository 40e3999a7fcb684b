"""
Installment Splitter

Expands one purchase into N monthly installment records.

DESIGN DECISION: Money is split with Decimal, never float.
Every installment but the last is amount / count rounded half-up to the
cent. The last installment takes whatever is left, so the installments
always add up to the purchase amount exactly.

Installment k (0-based) is dated k months after the purchase. When the
target month is shorter, the day is clipped to the month's last day
(Jan 31 -> Feb 28/29 -> Mar 31 ...), always counted from the purchase
date so one short month does not drag the following ones.
"""

from calendar import monthrange
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import structlog

from finance_assistant.config import get_settings
from finance_assistant.models.finance import (
    TransactionPayload,
    TransactionRecord,
    TransactionStatus,
    new_id,
)


logger = structlog.get_logger()

CENT = Decimal("0.01")
MIN_INSTALLMENTS = 2


class InstallmentError(ValueError):
    """The purchase cannot be split as requested."""
    pass


class RoundingInvariantViolation(AssertionError):
    """
    The installments do not add up to the purchase amount.

    This is a programming error, not a user error. It is never caught.
    """
    pass


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def add_months(base: date, months: int) -> date:
    """Move `months` calendar months forward, clipping the day."""
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    return date(year, month, min(base.day, days_in_month(year, month)))


def split_amount(amount: Decimal, count: int) -> list[Decimal]:
    """
    Split an amount into `count` cent-exact parts.

    >>> split_amount(Decimal("100.00"), 3)
    [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
    """
    per_installment = (amount / count).quantize(CENT, rounding=ROUND_HALF_UP)
    last = amount - per_installment * (count - 1)
    parts = [per_installment] * (count - 1) + [last]

    if sum(parts, Decimal("0")) != amount:
        raise RoundingInvariantViolation(
            f"Installments sum to {sum(parts)} instead of {amount}"
        )
    return parts


class InstallmentSplitter:
    """
    Builds installment records for one purchase.

    Every record shares a freshly generated installment_group_id.
    """

    def __init__(self, max_installments: Optional[int] = None):
        self._max_installments = (
            max_installments
            if max_installments is not None
            else get_settings().app.max_installments
        )

    def split(
        self,
        base: TransactionPayload,
        count: int,
        status: TransactionStatus = TransactionStatus.CONFIRMED,
    ) -> list[TransactionRecord]:
        """
        Split a purchase into `count` installments.

        Args:
            base: The purchase as the user entered it
            count: Number of installments, 2..max_installments
            status: Status for the records when the payload leaves it unset

        Returns:
            Records ordered by installment_index (1..count)

        Raises:
            InstallmentError: Count out of range, or an installment would be zero
            RoundingInvariantViolation: Installments do not sum to the amount
        """
        if not MIN_INSTALLMENTS <= count <= self._max_installments:
            raise InstallmentError(
                f"Number of installments must be between {MIN_INSTALLMENTS} "
                f"and {self._max_installments}, got {count}"
            )

        parts = split_amount(base.amount, count)
        if any(part <= 0 for part in parts):
            raise InstallmentError(
                f"Amount {base.amount} is too small to split into {count} installments"
            )

        group_id = new_id()
        records = []
        for k, part in enumerate(parts):
            suffix = f" ({k + 1}/{count})"
            records.append(TransactionRecord(
                description=base.description[:300 - len(suffix)] + suffix,
                amount=part,
                kind=base.kind,
                account_id=base.account_id,
                category_id=base.category_id,
                transaction_date=add_months(base.transaction_date, k),
                status=base.status or status,
                notes=base.notes,
                installment_group_id=group_id,
                installment_index=k + 1,
                installment_total=count,
            ))

        logger.info(
            "installments_split",
            group_id=group_id,
            count=count,
            amount=str(base.amount),
        )
        return records
