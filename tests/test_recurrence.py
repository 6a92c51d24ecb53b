from datetime import date
from typing import Optional

import pytest

from models import Category, Frequency, Transaction, TransactionType
from recurrence import add_months, contribution, occurs_in_month, shift_month


def _txn(
    frequency: Frequency,
    anchor: date,
    *,
    installment_count: Optional[int] = None,
    txn_type: TransactionType = TransactionType.expense,
    amount_cents: int = 10000,
) -> Transaction:
    return Transaction(
        id="t1",
        type=txn_type,
        description="Test",
        amount_cents=amount_cents,
        category=Category.other,
        date=anchor,
        frequency=frequency,
        installment_count=installment_count,
    )


def _months_hit(txn: Transaction, start: tuple[int, int], count: int) -> list[tuple[int, int]]:
    hits = []
    for offset in range(count):
        year, month = shift_month(start[0], start[1], offset)
        if occurs_in_month(txn, year, month):
            hits.append((year, month))
    return hits


def test_once_only_in_its_own_month():
    txn = _txn(Frequency.once, date(2024, 3, 15))
    assert _months_hit(txn, (2024, 1), 12) == [(2024, 3)]


def test_once_does_not_repeat_next_year():
    txn = _txn(Frequency.once, date(2024, 3, 15))
    assert not occurs_in_month(txn, 2025, 3)


def test_monthly_from_anchor_onwards():
    txn = _txn(Frequency.monthly, date(2024, 1, 10))
    hits = _months_hit(txn, (2023, 10), 18)
    assert hits[0] == (2024, 1)
    assert len(hits) == 15
    assert not occurs_in_month(txn, 2023, 12)


def test_yearly_anniversary_only():
    txn = _txn(Frequency.yearly, date(2023, 6, 1))
    assert occurs_in_month(txn, 2024, 6)
    assert occurs_in_month(txn, 2025, 6)
    assert not occurs_in_month(txn, 2024, 5)
    assert not occurs_in_month(txn, 2024, 7)


def test_yearly_never_before_anchor_year():
    txn = _txn(Frequency.yearly, date(2023, 6, 1))
    assert not occurs_in_month(txn, 2022, 6)


def test_installments_cover_exact_window():
    txn = _txn(Frequency.custom, date(2024, 1, 1), installment_count=3)
    assert _months_hit(txn, (2023, 11), 8) == [(2024, 1), (2024, 2), (2024, 3)]


# Quarterly and biannual fire every 3rd / 6th month counted from the anchor
# month, not every month after it.
def test_quarterly_every_third_month_from_anchor():
    txn = _txn(Frequency.quarterly, date(2024, 2, 20))
    assert _months_hit(txn, (2024, 1), 12) == [
        (2024, 2),
        (2024, 5),
        (2024, 8),
        (2024, 11),
    ]


def test_biannual_every_sixth_month_from_anchor():
    txn = _txn(Frequency.biannual, date(2024, 4, 1))
    assert _months_hit(txn, (2024, 1), 24) == [
        (2024, 4),
        (2024, 10),
        (2025, 4),
        (2025, 10),
    ]


def test_custom_without_count_never_contributes():
    txn = _txn(Frequency.custom, date(2024, 1, 1), installment_count=None)
    assert _months_hit(txn, (2024, 1), 12) == []


def test_unknown_frequency_is_ignored():
    txn = _txn(Frequency.monthly, date(2024, 1, 1))
    txn.frequency = "fortnightly"
    assert not occurs_in_month(txn, 2024, 1)
    assert contribution(txn, 2024, 1) is None


def test_contribution_sign_follows_type():
    income = _txn(
        Frequency.monthly,
        date(2024, 1, 1),
        txn_type=TransactionType.income,
        amount_cents=250000,
    )
    expense = _txn(Frequency.monthly, date(2024, 1, 1), amount_cents=4550)
    assert contribution(income, 2024, 2) == 250000
    assert contribution(expense, 2024, 2) == -4550
    assert contribution(expense, 2023, 12) is None


@pytest.mark.parametrize(
    "base, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 1, 31), 2, date(2024, 3, 31)),
        (date(2024, 11, 15), 3, date(2025, 2, 15)),
        (date(2024, 3, 10), -3, date(2023, 12, 10)),
    ],
)
def test_add_months_snaps_to_month_end(base, months, expected):
    assert add_months(base, months) == expected


def test_shift_month_rolls_over_year():
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2024, 11, 14) == (2026, 1)
    assert shift_month(2024, 1, -1) == (2023, 12)
