"""Decide in which calendar months a transaction takes effect.

Everything here is pure and works on anything shaped like a ``Transaction``
row (``type``, ``amount_cents``, ``date``, ``frequency`` and
``installment_count`` attributes), so the same rules apply to stored rows
and to unsaved drafts.
"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from models import Frequency, TransactionType

# Month step between occurrences for the fixed-interval frequencies.
_INTERVAL_MONTHS = {
    Frequency.monthly: 1,
    Frequency.quarterly: 3,
    Frequency.biannual: 6,
    Frequency.yearly: 12,
}


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    total_months = year * 12 + (month - 1) + months
    return total_months // 12, total_months % 12 + 1


def add_months(base: date, months: int) -> date:
    """Move ``base`` by whole months, snapping to the last day when the
    day-of-month does not exist in the target month (Jan 31 + 1 -> Feb 28/29).
    """
    year, month = shift_month(base.year, base.month, months)
    day = min(base.day, days_in_month(year, month))
    return date(year, month, day)


def month_offset(anchor: date, year: int, month: int) -> int:
    return (year - anchor.year) * 12 + (month - anchor.month)


def _coerce_frequency(value: object) -> Optional[Frequency]:
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(value)
    except ValueError:
        return None


def occurs_in_month(txn, year: int, month: int) -> bool:
    frequency = _coerce_frequency(txn.frequency)
    if frequency is None or txn.date is None:
        return False

    offset = month_offset(txn.date, year, month)
    if frequency == Frequency.once:
        return offset == 0
    if offset < 0:
        return False
    if frequency == Frequency.custom:
        count = txn.installment_count
        if not count or count < 1:
            return False
        return offset < count
    return offset % _INTERVAL_MONTHS[frequency] == 0


def contribution(txn, year: int, month: int) -> Optional[int]:
    """Signed amount (minor units) the transaction adds to the month, or
    ``None`` when it does not occur there."""
    if not occurs_in_month(txn, year, month):
        return None
    if txn.type == TransactionType.income:
        return txn.amount_cents
    return -txn.amount_cents
