from datetime import date
from typing import Optional

from installments import current_installment_label

DEFAULT_LOCALE = "en"

CATEGORY_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "salary": "Salary",
        "rent": "Rent",
        "groceries": "Groceries",
        "bills": "Bills",
        "transportation": "Transportation",
        "entertainment": "Entertainment",
        "health": "Health",
        "education": "Education",
        "loan": "Loan",
        "other": "Other",
    },
    "tr": {
        "salary": "Maaş",
        "rent": "Kira",
        "groceries": "Market",
        "bills": "Faturalar",
        "transportation": "Ulaşım",
        "entertainment": "Eğlence",
        "health": "Sağlık",
        "education": "Eğitim",
        "loan": "Kredi",
        "other": "Diğer",
    },
}

FREQUENCY_LABELS: dict[str, dict[str, str]] = {
    "en": {
        "once": "One-time",
        "monthly": "Monthly",
        "quarterly": "Every 3 months",
        "biannual": "Every 6 months",
        "yearly": "Yearly",
        "custom": "Installments",
    },
    "tr": {
        "once": "Tek Seferlik",
        "monthly": "Her Ay",
        "quarterly": "3 Ayda Bir",
        "biannual": "6 Ayda Bir",
        "yearly": "Yıllık",
        "custom": "Taksit",
    },
}

MONTH_ABBREVIATIONS: dict[str, list[str]] = {
    "en": [
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ],
    "tr": [
        "Oca", "Şub", "Mar", "Nis", "May", "Haz",
        "Tem", "Ağu", "Eyl", "Eki", "Kas", "Ara",
    ],
}


def _table(tables: dict[str, dict], locale: Optional[str]) -> dict:
    return tables.get((locale or DEFAULT_LOCALE).lower(), tables[DEFAULT_LOCALE])


def _key(value: object) -> str:
    return str(getattr(value, "value", value))


def category_name(category: object, locale: Optional[str] = None) -> str:
    key = _key(category)
    return _table(CATEGORY_LABELS, locale).get(key, key)


def frequency_name(txn, as_of: date, locale: Optional[str] = None) -> str:
    key = _key(txn.frequency)
    labels = _table(FREQUENCY_LABELS, locale)
    installment = current_installment_label(txn, as_of)
    if installment:
        return f"{installment} {labels['custom']}"
    return labels.get(key, key)


def month_label(year: int, month: int, locale: Optional[str] = None) -> str:
    names = _table(MONTH_ABBREVIATIONS, locale)
    return f"{names[month - 1]} {year % 100:02d}"
