"""
Entity Resolution

Maps free text from a command onto the user's own reference data.

DESIGN DECISION: Resolution is fuzzy but never empty-handed.
A vague fragment ("lanche") still lands on *some* category of the
preferred kind so the command can go through; the user edits it later.
Only an empty candidate set yields None, and the validator treats that
as a hard failure.
"""

from typing import Optional

from finance_assistant.models.finance import Account, Category, TransactionKind


def _matches(name: str, fragment: str) -> bool:
    """Bidirectional, case-insensitive substring match."""
    name = name.casefold()
    fragment = fragment.casefold()
    return fragment in name or name in fragment


def resolve_category(
    fragment: str,
    candidates: list[Category],
    preferred_kind: TransactionKind = TransactionKind.EXPENSE,
) -> Optional[Category]:
    """
    Find the category a description fragment refers to.

    Exactly one name match wins. Zero or several matches fall back to the
    first candidate of `preferred_kind`, then to the first candidate.

    Args:
        fragment: Free text taken from the utterance
        candidates: The user's categories, in storage order
        preferred_kind: Kind to fall back on when the match is ambiguous

    Returns:
        The resolved category, or None when there are no candidates
    """
    if not candidates:
        return None

    fragment = fragment.strip()
    if fragment:
        matches = [c for c in candidates if _matches(c.name, fragment)]
        if len(matches) == 1:
            return matches[0]

    for category in candidates:
        if category.kind == preferred_kind:
            return category

    return candidates[0]


def resolve_account(accounts: list[Account]) -> Optional[Account]:
    """First account not explicitly inactive, else the first account."""
    for account in accounts:
        if account.active is not False:
            return account
    return accounts[0] if accounts else None
