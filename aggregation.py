from datetime import date, datetime
from typing import Iterable, Optional, Sequence, TypeVar, Union

from models import TransactionType

T = TypeVar("T")

DateBound = Union[date, datetime, None]


def sum_income(transactions: Iterable) -> int:
    return sum(
        txn.amount_cents for txn in transactions if txn.type == TransactionType.income
    )


def sum_expense(transactions: Iterable) -> int:
    return sum(
        txn.amount_cents for txn in transactions if txn.type == TransactionType.expense
    )


def get_balance(transactions: Sequence) -> int:
    return sum_income(transactions) - sum_expense(transactions)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def filter_by_range(transactions: Sequence[T], start: DateBound, end: DateBound) -> list[T]:
    """Keep transactions dated from the start of ``start``'s day through the
    end of ``end``'s day. A missing bound means no filtering at all."""
    if start is None or end is None:
        return list(transactions)
    first = _as_date(start)
    last = _as_date(end)
    return [txn for txn in transactions if first <= txn.date <= last]


def category_breakdown(
    transactions: Iterable, txn_type: Optional[TransactionType] = None
) -> list[dict[str, object]]:
    txn_type = txn_type or TransactionType.expense
    by_category: dict[str, int] = {}
    for txn in transactions:
        if txn.type != txn_type:
            continue
        key = getattr(txn.category, "value", txn.category)
        by_category[key] = by_category.get(key, 0) + txn.amount_cents

    total = sum(by_category.values())
    if total == 0:
        return []
    items = sorted(by_category.items(), key=lambda x: x[1], reverse=True)
    return [
        {
            "category": key,
            "amount_cents": amount,
            "percent": amount / total * 100,
        }
        for key, amount in items
    ]
