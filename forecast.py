"""Month-by-month projection of recurring and one-off transactions."""

from dataclasses import dataclass, field
from typing import Optional, Sequence

from labels import month_label
from recurrence import contribution, shift_month

MIN_WINDOW_MONTHS = 1
MAX_WINDOW_MONTHS = 24


@dataclass(frozen=True)
class MonthlySummary:
    label: str
    year: int
    month: int
    income: int
    expense: int
    is_current_month: bool

    @property
    def balance(self) -> int:
        return self.income - self.expense


@dataclass
class Forecast:
    months: list[MonthlySummary] = field(default_factory=list)
    total_income: int = 0
    total_expense: int = 0

    @property
    def total_balance(self) -> int:
        return self.total_income - self.total_expense

    def as_dict(self) -> dict[str, object]:
        return {
            "months": [
                {
                    "month": summary.label,
                    "year": summary.year,
                    "month_number": summary.month,
                    "income": summary.income,
                    "expense": summary.expense,
                    "balance": summary.balance,
                    "is_current_month": summary.is_current_month,
                }
                for summary in self.months
            ],
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "total_balance": self.total_balance,
        }


def validate_window(window_months: int) -> int:
    if not MIN_WINDOW_MONTHS <= window_months <= MAX_WINDOW_MONTHS:
        raise ValueError(
            f"Forecast window must be between {MIN_WINDOW_MONTHS} and "
            f"{MAX_WINDOW_MONTHS} months"
        )
    return window_months


def summarize_month(
    transactions: Sequence,
    year: int,
    month: int,
    *,
    is_current_month: bool = False,
    locale: Optional[str] = None,
) -> MonthlySummary:
    income = 0
    expense = 0
    for txn in transactions:
        amount = contribution(txn, year, month)
        if amount is None:
            continue
        if amount >= 0:
            income += amount
        else:
            expense -= amount
    return MonthlySummary(
        label=month_label(year, month, locale),
        year=year,
        month=month,
        income=income,
        expense=expense,
        is_current_month=is_current_month,
    )


def project(
    transactions: Sequence,
    window_months: int,
    start_year: int,
    start_month: int,
    *,
    locale: Optional[str] = None,
) -> Forecast:
    """Project ``window_months`` consecutive months starting at
    (``start_year``, ``start_month``). Amounts are minor units; the first
    month is flagged as the current one."""
    validate_window(window_months)
    result = Forecast()
    for offset in range(window_months):
        year, month = shift_month(start_year, start_month, offset)
        summary = summarize_month(
            transactions,
            year,
            month,
            is_current_month=offset == 0,
            locale=locale,
        )
        result.months.append(summary)
        result.total_income += summary.income
        result.total_expense += summary.expense
    return result
