import uuid
from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class Category(str, Enum):
    salary = "salary"
    rent = "rent"
    groceries = "groceries"
    bills = "bills"
    transportation = "transportation"
    entertainment = "entertainment"
    health = "health"
    education = "education"
    loan = "loan"
    other = "other"


class Frequency(str, Enum):
    once = "once"
    monthly = "monthly"
    quarterly = "quarterly"
    biannual = "biannual"
    yearly = "yearly"
    custom = "custom"


def new_transaction_id() -> str:
    return uuid.uuid4().hex


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_transaction_id
    )
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[Category] = mapped_column(
        SAEnum(Category), nullable=False, default=Category.other
    )
    date: Mapped[date] = mapped_column(Date, nullable=False)
    frequency: Mapped[Frequency] = mapped_column(
        SAEnum(Frequency), nullable=False, default=Frequency.once
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)
    installment_count: Mapped[Optional[int]] = mapped_column(Integer)
    installment_number: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_transactions_date", "date"),
        Index("ix_transactions_type_date", "type", "date"),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"Transaction(id={self.id!r}, type={self.type.value}, "
            f"date={self.date}, frequency={self.frequency.value})"
        )
