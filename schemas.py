import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from amounts import from_cents, to_cents
from models import Category, Frequency, TransactionType


class TransactionIn(BaseModel):
    """A transaction as entered by the user, before the store assigns an id."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    type: TransactionType
    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    category: Category = Category.other
    date: dt.date
    frequency: Frequency = Frequency.once
    notes: Optional[str] = Field(default=None, max_length=1000)
    installment_count: Optional[int] = Field(
        default=None, alias="installmentCount", ge=1
    )
    installment_number: Optional[int] = Field(
        default=None, alias="installmentNumber", ge=1
    )

    @model_validator(mode="after")
    def _normalize_installments(self) -> "TransactionIn":
        # A plan (custom) carries only its count; a single installment of an
        # expanded plan is a one-time entry carrying its position and count.
        if self.frequency == Frequency.custom:
            self.installment_number = None
        elif self.frequency == Frequency.once and self.installment_number is not None:
            if (
                self.installment_count is None
                or self.installment_number > self.installment_count
            ):
                raise ValueError(
                    "installmentNumber must be between 1 and installmentCount"
                )
        else:
            self.installment_count = None
            self.installment_number = None
        if self.notes == "":
            self.notes = None
        return self

    @property
    def amount_cents(self) -> int:
        return to_cents(self.amount)

    @field_serializer("amount", when_used="json")
    def _amount_as_number(self, amount: Decimal) -> float:
        return float(amount.quantize(Decimal("0.01")))


class TransactionRecord(TransactionIn):
    """Wire shape of a stored transaction, used by export, import and the API."""

    id: str = Field(..., min_length=1)

    @classmethod
    def from_row(cls, txn) -> "TransactionRecord":
        return cls(
            id=txn.id,
            type=txn.type,
            description=txn.description,
            amount=from_cents(txn.amount_cents),
            category=txn.category,
            date=txn.date,
            frequency=txn.frequency,
            notes=txn.notes,
            installment_count=txn.installment_count,
            installment_number=txn.installment_number,
        )

    def draft(self) -> TransactionIn:
        return TransactionIn.model_validate(self.model_dump(exclude={"id"}))
