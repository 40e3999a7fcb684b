"""
Transaction Filter

Search, filter and sort over the grouped transaction view.

DESIGN DECISION: Filtering is a pipeline of independent steps applied in
a fixed order. Each step is skipped when its criterion is absent
("ALL" for kind/status, None for the rest), so an empty FilterCriteria
returns the whole view, newest first.

Groups are filtered as a unit: a purchase paid in installments shows up
or disappears as one row.
"""

from datetime import datetime, time, timezone
from typing import Optional

from finance_assistant.models.finance import (
    ALL,
    FilterCriteria,
    GroupedEntry,
)


def entry_sort_key(entry: GroupedEntry) -> datetime:
    """Calendar day when known, creation time otherwise, as naive UTC."""
    if entry.transaction_date is not None:
        return datetime.combine(entry.transaction_date, time.min)
    created_at = entry.created_at
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return created_at


class TransactionFilter:
    """
    Applies FilterCriteria and free-text search to a grouped view.

    Never mutates the input list.
    """

    def apply(
        self,
        view: list[GroupedEntry],
        search_text: Optional[str] = None,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[GroupedEntry]:
        """
        Filter and sort entries.

        Order of steps: search, kind, status, category, account,
        date_from, date_to, then a stable sort with the most recent first.
        """
        criteria = criteria or FilterCriteria()
        entries = list(view)

        needle = (search_text or "").strip().casefold()
        if needle:
            entries = [e for e in entries if needle in e.description.casefold()]

        if criteria.kind != ALL:
            entries = [e for e in entries if e.kind == criteria.kind]

        if criteria.status != ALL:
            entries = [e for e in entries if e.status == criteria.status]

        if criteria.category_id is not None:
            entries = [e for e in entries if e.category_id == criteria.category_id]

        if criteria.account_id is not None:
            entries = [e for e in entries if e.account_id == criteria.account_id]

        # Entries without a date fail any present bound
        if criteria.date_from is not None:
            entries = [
                e for e in entries
                if e.transaction_date is not None and e.transaction_date >= criteria.date_from
            ]

        if criteria.date_to is not None:
            entries = [
                e for e in entries
                if e.transaction_date is not None and e.transaction_date <= criteria.date_to
            ]

        return sorted(entries, key=entry_sort_key, reverse=True)


def filter_transactions(
    view: list[GroupedEntry],
    search_text: Optional[str] = None,
    criteria: Optional[FilterCriteria] = None,
) -> list[GroupedEntry]:
    return TransactionFilter().apply(view, search_text, criteria)
