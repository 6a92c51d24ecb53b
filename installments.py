"""Installment plans: split a custom-frequency draft into one entry per month."""

from datetime import date
from typing import Optional

from models import Frequency
from recurrence import add_months, month_offset
from schemas import TransactionIn


def installment_note(existing: Optional[str], index: int, total: int) -> str:
    label = f"Installment {index}/{total}"
    if existing:
        return f"{existing} - {label}"
    return label


def is_installment_plan(txn) -> bool:
    return (
        txn.frequency == Frequency.custom
        and txn.installment_count is not None
        and txn.installment_count >= 2
    )


def expand_installments(draft: TransactionIn) -> list[TransactionIn]:
    """Return the drafts to create for ``draft``.

    A custom plan with N >= 2 installments becomes N one-time drafts, the k-th
    dated k-1 months after the anchor, numbered k of N and labelled
    ``Installment k/N`` in its notes. Anything else comes back as a
    single-item list, untouched.
    """
    if not is_installment_plan(draft):
        return [draft]

    total = draft.installment_count
    expanded: list[TransactionIn] = []
    for index in range(1, total + 1):
        expanded.append(
            draft.model_copy(
                update={
                    "date": add_months(draft.date, index - 1),
                    "frequency": Frequency.once,
                    "installment_number": index,
                    "notes": installment_note(draft.notes, index, total),
                }
            )
        )
    return expanded


def current_installment(txn, as_of: date) -> Optional[int]:
    if not txn.installment_count:
        return None
    if txn.installment_number:
        return txn.installment_number
    if txn.frequency != Frequency.custom:
        return None
    elapsed = month_offset(txn.date, as_of.year, as_of.month)
    return max(1, min(elapsed + 1, txn.installment_count))


def current_installment_label(txn, as_of: date) -> str:
    index = current_installment(txn, as_of)
    if index is None:
        return ""
    return f"{index}/{txn.installment_count}"
