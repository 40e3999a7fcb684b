"""
Tests for the installment engine: splitting at creation time and
grouping at read time.
"""

import pytest
from datetime import date
from decimal import Decimal

from finance_assistant.installments import (
    InstallmentError,
    InstallmentGrouper,
    InstallmentSplitter,
    add_months,
    split_amount,
    strip_installment_suffix,
)
from finance_assistant.models.finance import (
    InstallmentGroup,
    StandaloneTransaction,
    TransactionKind,
    TransactionPayload,
    TransactionStatus,
)


def make_payload(amount="100.00", description="TV", on=date(2024, 1, 31), **overrides):
    fields = dict(
        description=description,
        amount=Decimal(amount),
        kind=TransactionKind.EXPENSE,
        account_id="acc-1",
        category_id="cat-1",
        transaction_date=on,
    )
    fields.update(overrides)
    return TransactionPayload(**fields)


@pytest.fixture
def splitter():
    return InstallmentSplitter(max_installments=24)


class TestSplitAmount:
    """Tests for cent-exact amount splitting."""

    def test_remainder_goes_to_last(self):
        """Test the classic 100 / 3 split."""
        assert split_amount(Decimal("100.00"), 3) == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]

    def test_round_half_up(self):
        """Test that half cents round up."""
        # 0.125 -> 0.13, last = 0.25 - 0.13 = 0.12
        assert split_amount(Decimal("0.25"), 2) == [Decimal("0.13"), Decimal("0.12")]

    @pytest.mark.parametrize(
        "amount, count",
        [
            ("100.00", 3),
            ("10.00", 7),
            ("999.99", 12),
            ("1234.57", 24),
            ("0.10", 10),
        ],
    )
    def test_sum_is_exact(self, amount, count):
        """Test that installments always add up to the amount."""
        parts = split_amount(Decimal(amount), count)
        assert len(parts) == count
        assert sum(parts) == Decimal(amount)


class TestAddMonths:
    """Tests for month arithmetic with day clipping."""

    def test_clips_to_end_of_short_month(self):
        """Test Jan 31 + 1 month in a leap year."""
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)

    def test_always_counted_from_base(self):
        """Test that a short month does not drag later months."""
        assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)

    def test_crosses_year(self):
        """Test year rollover."""
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


class TestInstallmentSplitter:
    """Tests for building installment records."""

    def test_split_records(self, splitter):
        """Test amounts, indexes, descriptions and shared group id."""
        records = splitter.split(make_payload(), 3)

        assert [r.amount for r in records] == [
            Decimal("33.33"),
            Decimal("33.33"),
            Decimal("33.34"),
        ]
        assert [r.installment_index for r in records] == [1, 2, 3]
        assert all(r.installment_total == 3 for r in records)
        assert [r.description for r in records] == ["TV (1/3)", "TV (2/3)", "TV (3/3)"]
        assert len({r.installment_group_id for r in records}) == 1
        assert len({r.id for r in records}) == 3

    def test_split_dates(self, splitter):
        """Test that installment k is dated k months after the purchase."""
        records = splitter.split(make_payload(on=date(2024, 1, 31)), 4)
        assert [r.transaction_date for r in records] == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_split_keeps_base_fields(self, splitter):
        """Test that kind, account and category carry over."""
        records = splitter.split(make_payload(kind=TransactionKind.INCOME), 2)
        assert all(r.kind == TransactionKind.INCOME for r in records)
        assert all(r.account_id == "acc-1" for r in records)
        assert all(r.category_id == "cat-1" for r in records)

    def test_status_default_and_override(self, splitter):
        """Test that payload status wins over the default."""
        records = splitter.split(make_payload(), 2)
        assert all(r.status == TransactionStatus.CONFIRMED for r in records)

        pending = splitter.split(make_payload(status=TransactionStatus.PENDING), 2)
        assert all(r.status == TransactionStatus.PENDING for r in pending)

    def test_new_group_per_split(self, splitter):
        """Test that each purchase gets its own group id."""
        first = splitter.split(make_payload(), 2)
        second = splitter.split(make_payload(), 2)
        assert first[0].installment_group_id != second[0].installment_group_id

    @pytest.mark.parametrize("count", [0, 1, 25, -3])
    def test_count_out_of_range(self, splitter, count):
        """Test the 2..max_installments bounds."""
        with pytest.raises(InstallmentError):
            splitter.split(make_payload(), count)

    def test_amount_too_small(self, splitter):
        """Test that zero-value installments are refused."""
        with pytest.raises(InstallmentError):
            splitter.split(make_payload(amount="0.01"), 3)

    def test_installment_error_is_value_error(self, splitter):
        """Test that callers can catch it as ValueError."""
        with pytest.raises(ValueError):
            splitter.split(make_payload(), 1)


class TestInstallmentGrouper:
    """Tests for folding records into the grouped view."""

    @pytest.fixture
    def grouper(self):
        return InstallmentGrouper()

    def test_strip_suffix(self):
        """Test removal of the (i/n) suffix."""
        assert strip_installment_suffix("TV (3/10)") == "TV"
        assert strip_installment_suffix("TV") == "TV"
        assert strip_installment_suffix("Plan (1/2) extra") == "Plan (1/2) extra"

    def test_round_trip(self, splitter, grouper):
        """Test that grouping a split restores the purchase."""
        payload = make_payload(amount="1000.00", description="Fridge")
        records = splitter.split(payload, 7)

        view = grouper.group(records)

        assert len(view) == 1
        group = view[0]
        assert isinstance(group, InstallmentGroup)
        assert group.description == "Fridge"
        assert group.total_amount == Decimal("1000.00")
        assert group.transaction_date == payload.transaction_date
        assert group.installment_total == 7
        assert [m.installment_index for m in group.members] == list(range(1, 8))

    def test_members_sorted_by_index(self, splitter, grouper):
        """Test that shuffled members come back in index order."""
        records = splitter.split(make_payload(), 3)
        view = grouper.group([records[2], records[0], records[1]])

        group = view[0]
        assert [m.installment_index for m in group.members] == [1, 2, 3]
        assert group.transaction_date == date(2024, 1, 31)

    def test_group_status_from_first_member(self, splitter, grouper):
        """Test that the group takes the status of installment 1."""
        records = splitter.split(make_payload(), 2)
        records[0] = records[0].model_copy(update={"status": TransactionStatus.PENDING})

        group = grouper.group(records)[0]
        assert group.status == TransactionStatus.PENDING

    def test_order_by_first_occurrence(self, splitter, grouper):
        """Test that standalone records and groups keep input order."""
        single_a = make_payload(description="Coffee").to_record()
        installments = splitter.split(make_payload(), 2)
        single_b = make_payload(description="Bread").to_record()

        view = grouper.group([single_a, installments[0], single_b, installments[1]])

        assert len(view) == 3
        assert isinstance(view[0], StandaloneTransaction)
        assert view[0].description == "Coffee"
        assert isinstance(view[1], InstallmentGroup)
        assert view[2].description == "Bread"

    def test_single_surviving_member_is_still_a_group(self, splitter, grouper):
        """Test a group whose other members were deleted."""
        records = splitter.split(make_payload(), 3)
        view = grouper.group([records[1]])

        assert isinstance(view[0], InstallmentGroup)
        assert view[0].member_count == 1
        assert view[0].total_amount == records[1].amount

    def test_grouping_is_idempotent(self, splitter, grouper):
        """Test that grouping a grouped view changes nothing."""
        single = make_payload(description="Coffee").to_record()
        records = [single] + splitter.split(make_payload(), 3)

        once = grouper.group(records)
        twice = grouper.group(once)

        assert twice == once

    def test_empty_input(self, grouper):
        """Test that no records give an empty view."""
        assert grouper.group([]) == []
