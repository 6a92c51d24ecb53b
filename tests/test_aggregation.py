from datetime import date, datetime

from aggregation import (
    category_breakdown,
    filter_by_range,
    get_balance,
    sum_expense,
    sum_income,
)
from models import Category, Frequency, Transaction, TransactionType


def _txn(txn_id, txn_type, amount_cents, day, category=Category.other):
    return Transaction(
        id=txn_id,
        type=txn_type,
        description=txn_id,
        amount_cents=amount_cents,
        category=category,
        date=day,
        frequency=Frequency.once,
    )


def _sample() -> list[Transaction]:
    return [
        _txn("a", TransactionType.income, 500000, date(2024, 3, 1), Category.salary),
        _txn("b", TransactionType.expense, 120000, date(2024, 3, 5), Category.rent),
        _txn("c", TransactionType.expense, 4599, date(2024, 3, 31), Category.groceries),
        _txn("d", TransactionType.income, 10001, date(2024, 4, 1), Category.other),
        _txn("e", TransactionType.expense, 2500, date(2024, 2, 29), Category.groceries),
    ]


def test_sums_and_balance_identity():
    txns = _sample()
    assert sum_income(txns) == 510001
    assert sum_expense(txns) == 127099
    assert get_balance(txns) == sum_income(txns) - sum_expense(txns)


def test_sums_are_additive_over_disjoint_lists():
    txns = _sample()
    left, right = txns[:2], txns[2:]
    assert sum_income(left) + sum_income(right) == sum_income(txns)
    assert sum_expense(left) + sum_expense(right) == sum_expense(txns)


def test_empty_list_sums_to_zero():
    assert sum_income([]) == 0
    assert sum_expense([]) == 0
    assert get_balance([]) == 0


def test_range_filter_includes_both_boundaries():
    txns = _sample()
    picked = filter_by_range(txns, date(2024, 3, 1), date(2024, 3, 31))
    assert [t.id for t in picked] == ["a", "b", "c"]


def test_range_filter_accepts_datetimes_with_time_of_day():
    txns = _sample()
    picked = filter_by_range(
        txns, datetime(2024, 3, 1, 18, 30), datetime(2024, 3, 31, 0, 0)
    )
    assert [t.id for t in picked] == ["a", "b", "c"]


def test_range_filter_missing_bound_passes_everything_through():
    txns = _sample()
    assert filter_by_range(txns, None, date(2024, 3, 31)) == txns
    assert filter_by_range(txns, date(2024, 3, 1), None) == txns


def test_category_breakdown_sorted_with_percentages():
    rows = category_breakdown(_sample(), TransactionType.expense)
    assert [r["category"] for r in rows] == ["rent", "groceries"]
    assert rows[1]["amount_cents"] == 7099
    assert round(sum(r["percent"] for r in rows), 6) == 100


def test_category_breakdown_empty_when_nothing_matches():
    assert category_breakdown([], TransactionType.income) == []
