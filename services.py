from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aggregation import (
    category_breakdown,
    filter_by_range,
    get_balance,
    sum_expense,
    sum_income,
)
from backup import export_filename, export_json, parse_import, sharing_link, to_records
from config import get_settings
from forecast import Forecast, project
from installments import expand_installments
from models import Category, Transaction, TransactionType, new_transaction_id
from periods import Period
from recurrence import local_today
from schemas import TransactionIn, TransactionRecord

logger = logging.getLogger(__name__)

Subscriber = Callable[[list[Transaction]], None]


class StoreError(RuntimeError):
    pass


class PartialWriteError(StoreError):
    def __init__(self, message: str, completed: int, total: int) -> None:
        super().__init__(message)
        self.completed = completed
        self.total = total


class TransactionNotFound(ValueError):
    pass


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category: Optional[Category] = None
    query: Optional[str] = None


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated


class ChangeFeed:
    """Push fresh snapshots to subscribers after each successful write."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, snapshot: list[Transaction]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("change_feed: subscriber failed")

    def __bool__(self) -> bool:
        return bool(self._subscribers)


class TransactionService:
    def __init__(self, session: Session, feed: Optional[ChangeFeed] = None) -> None:
        self.session = session
        self.feed = feed or ChangeFeed()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.feed.subscribe(callback)

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        logger.exception(f"store_error: action={action}")
        return StoreError(f"Could not {action} transaction: storage is unavailable")

    def publish_snapshot(self) -> None:
        if not self.feed:
            return
        try:
            snapshot = self.list()
        except StoreError:
            logger.warning("change_feed: snapshot unavailable, subscribers skipped")
            return
        self.feed.publish(snapshot)

    def list(self) -> list[Transaction]:
        stmt = select(Transaction).order_by(Transaction.date, Transaction.created_at)
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise self._fail("list", exc) from exc

    def filtered(self, period: Period, filters: TransactionFilters) -> list[Transaction]:
        txns = filter_by_range(self.list(), period.start, period.end)
        if filters.type:
            txns = [t for t in txns if t.type == filters.type]
        if filters.category:
            txns = [t for t in txns if t.category == filters.category]
        if filters.query:
            needle = filters.query.lower()
            txns = [
                t
                for t in txns
                if needle in t.description.lower() or needle in (t.notes or "").lower()
            ]
        return sorted(txns, key=lambda t: t.date, reverse=True)

    def get(self, transaction_id: str) -> Transaction:
        try:
            txn = self.session.get(Transaction, transaction_id)
        except SQLAlchemyError as exc:
            raise self._fail("load", exc) from exc
        if not txn:
            raise TransactionNotFound("Transaction not found")
        return txn

    def _add(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            id=new_transaction_id(),
            type=data.type,
            description=data.description,
            amount_cents=data.amount_cents,
            category=data.category,
            date=data.date,
            frequency=data.frequency,
            notes=data.notes,
            installment_count=data.installment_count,
            installment_number=data.installment_number,
        )
        try:
            self.session.add(txn)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("create", exc) from exc
        self.session.refresh(txn)
        return txn

    def create(self, data: TransactionIn, *, publish: bool = True) -> Transaction:
        txn = self._add(data)
        logger.info(f"transaction_created: id={txn.id} frequency={txn.frequency.value}")
        if publish:
            self.publish_snapshot()
        return txn

    def create_many(self, data: TransactionIn) -> list[Transaction]:
        """Create ``data``, expanding installment plans into one row per month.

        Each row is committed on its own; rows written before a failure stay.
        """
        drafts = expand_installments(data)
        created: list[Transaction] = []
        for draft in drafts:
            try:
                created.append(self._add(draft))
            except StoreError as exc:
                if not created:
                    raise
                raise PartialWriteError(
                    f"Saved {len(created)} of {len(drafts)} installments before "
                    f"storage failed",
                    completed=len(created),
                    total=len(drafts),
                ) from exc
        logger.info(
            f"transactions_created: count={len(created)} "
            f"frequency={data.frequency.value}"
        )
        self.publish_snapshot()
        return created

    def update(
        self, transaction_id: str, data: TransactionIn, *, publish: bool = True
    ) -> Transaction:
        txn = self.get(transaction_id)
        txn.type = data.type
        txn.description = data.description
        txn.amount_cents = data.amount_cents
        txn.category = data.category
        txn.date = data.date
        txn.frequency = data.frequency
        txn.notes = data.notes
        txn.installment_count = data.installment_count
        txn.installment_number = data.installment_number
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc
        self.session.refresh(txn)
        logger.info(f"transaction_updated: id={txn.id}")
        if publish:
            self.publish_snapshot()
        return txn

    def delete(self, transaction_id: str) -> None:
        txn = self.get(transaction_id)
        try:
            self.session.delete(txn)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc
        logger.info(f"transaction_deleted: id={transaction_id}")
        self.publish_snapshot()


class ImportService:
    def __init__(self, session: Session, feed: Optional[ChangeFeed] = None) -> None:
        self.session = session
        self.transactions = TransactionService(session, feed)

    def preview(self, content: str) -> list[TransactionRecord]:
        return parse_import(content)

    def commit(self, content: str) -> ImportResult:
        """Overwrite records whose id already exists, create the rest with new
        ids. Validation happens before any write; writes are not atomic."""
        records = parse_import(content)
        try:
            existing_ids = set(self.session.scalars(select(Transaction.id)).all())
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError("Could not read existing transactions") from exc

        result = ImportResult()
        for record in records:
            try:
                if record.id in existing_ids:
                    try:
                        self.transactions.update(
                            record.id, record.draft(), publish=False
                        )
                        result.updated += 1
                        continue
                    except TransactionNotFound:
                        logger.warning(f"import_target_missing: id={record.id}")
                self.transactions.create(record.draft(), publish=False)
                result.created += 1
            except StoreError as exc:
                if result.total:
                    self.transactions.publish_snapshot()
                raise PartialWriteError(
                    f"Imported {result.total} of {len(records)} transactions before "
                    f"storage failed",
                    completed=result.total,
                    total=len(records),
                ) from exc
        logger.info(
            f"import_committed: created={result.created} updated={result.updated}"
        )
        self.transactions.publish_snapshot()
        return result


class BackupService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.settings = get_settings()

    def records(self) -> list[TransactionRecord]:
        return to_records(TransactionService(self.session).list())

    def export(self, today: Optional[date] = None) -> tuple[str, str]:
        today = today or local_today()
        filename = export_filename(self.settings.export_prefix, today)
        return filename, export_json(self.records())

    def sharing_link(self) -> str:
        return sharing_link(self.records())


class MetricsService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _snapshot(self, period: Period) -> list[Transaction]:
        txns = TransactionService(self.session).list()
        return filter_by_range(txns, period.start, period.end)

    def kpis(self, period: Period) -> dict[str, object]:
        txns = self._snapshot(period)
        return {
            "period": period.slug,
            "start": period.start.isoformat() if period.start else None,
            "end": period.end.isoformat() if period.end else None,
            "income": sum_income(txns),
            "expenses": sum_expense(txns),
            "balance": get_balance(txns),
            "count": len(txns),
        }

    def category_breakdown(
        self, period: Period, txn_type: Optional[TransactionType] = None
    ) -> list[dict[str, object]]:
        return category_breakdown(self._snapshot(period), txn_type)


class ForecastService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.settings = get_settings()

    def forecast(
        self, months: Optional[int] = None, today: Optional[date] = None
    ) -> Forecast:
        today = today or local_today()
        window = self.settings.forecast_months if months is None else months
        txns = TransactionService(self.session).list()
        return project(
            txns, window, today.year, today.month, locale=self.settings.locale
        )
