"""Installment lifecycle package."""

from finance_assistant.installments.grouper import (
    InstallmentGrouper,
    group_transactions,
    strip_installment_suffix,
)
from finance_assistant.installments.splitter import (
    InstallmentError,
    InstallmentSplitter,
    RoundingInvariantViolation,
    add_months,
    split_amount,
)

__all__ = [
    "InstallmentError",
    "InstallmentGrouper",
    "InstallmentSplitter",
    "RoundingInvariantViolation",
    "add_months",
    "group_transactions",
    "split_amount",
    "strip_installment_suffix",
]
