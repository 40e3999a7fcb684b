"""
Installment Grouper

Rebuilds logical purchases from flat transaction records.

Storage only knows records. A purchase split into 10 installments is 10
rows sharing an installment_group_id. For display the user wants one row
per purchase, so on every read the records are folded into:

- StandaloneTransaction for a record without a group
- InstallmentGroup for all records sharing a group id

Output order follows the first occurrence of each record or group in the
input. Grouping is recomputed on every read and never persisted.
"""

import re
from decimal import Decimal

from finance_assistant.models.finance import (
    GroupedEntry,
    InstallmentGroup,
    StandaloneTransaction,
    TransactionRecord,
)


INSTALLMENT_SUFFIX = re.compile(r" \(\d+/\d+\)$")


def strip_installment_suffix(description: str) -> str:
    """'TV (3/10)' -> 'TV'."""
    return INSTALLMENT_SUFFIX.sub("", description)


class InstallmentGrouper:
    """Folds flat records into the grouped view."""

    def group(self, records: list[TransactionRecord]) -> list[GroupedEntry]:
        """
        Group installment records by purchase.

        A group with a single surviving member (others deleted) is still
        emitted as a group. Already-grouped entries pass through unchanged,
        so grouping a grouped view returns the same view.
        """
        members_by_group: dict[str, list[TransactionRecord]] = {}
        for record in records:
            if isinstance(record, (StandaloneTransaction, InstallmentGroup)):
                continue
            if record.installment_group_id is not None:
                members_by_group.setdefault(record.installment_group_id, []).append(record)

        entries: list[GroupedEntry] = []
        emitted_groups: set[str] = set()

        for record in records:
            if isinstance(record, (StandaloneTransaction, InstallmentGroup)):
                entries.append(record)
                continue

            group_id = record.installment_group_id
            if group_id is None:
                entries.append(StandaloneTransaction(**record.model_dump()))
                continue

            if group_id in emitted_groups:
                continue
            emitted_groups.add(group_id)
            entries.append(self._build_group(group_id, members_by_group[group_id]))

        return entries

    def _build_group(
        self,
        group_id: str,
        members: list[TransactionRecord],
    ) -> InstallmentGroup:
        ordered = sorted(members, key=lambda r: r.installment_index)
        first = ordered[0]
        dates = [r.transaction_date for r in ordered if r.transaction_date is not None]

        return InstallmentGroup(
            id=group_id,
            description=strip_installment_suffix(first.description),
            total_amount=sum((r.amount for r in ordered), Decimal("0")),
            kind=first.kind,
            account_id=first.account_id,
            category_id=first.category_id,
            transaction_date=min(dates) if dates else None,
            status=first.status,
            installment_total=first.installment_total,
            created_at=first.created_at,
            members=ordered,
        )


def group_transactions(records: list[TransactionRecord]) -> list[GroupedEntry]:
    return InstallmentGrouper().group(records)
