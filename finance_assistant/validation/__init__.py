"""Action validation package."""

from finance_assistant.validation.validator import (
    REJECTION_MESSAGES,
    ActionValidator,
    is_valid_amount,
)

__all__ = ["REJECTION_MESSAGES", "ActionValidator", "is_valid_amount"]
