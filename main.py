import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from amounts import format_currency, from_cents
from backup import ImportValidationError
from config import get_settings
from database import get_db, init_db
from labels import category_name, frequency_name
from models import Category, Transaction, TransactionType
from notifier import Notifier
from periods import Period, resolve_period
from recurrence import local_today
from scheduler import SchedulerManager
from schemas import TransactionIn
from services import (
    BackupService,
    ChangeFeed,
    ForecastService,
    ImportService,
    MetricsService,
    PartialWriteError,
    StoreError,
    TransactionFilters,
    TransactionNotFound,
    TransactionService,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Forecast")
notifier = Notifier()
feed = ChangeFeed()
scheduler_manager = SchedulerManager()

CHANGED_HEADERS = {"HX-Trigger": "transactions-changed"}


def _log_snapshot(snapshot: list[Transaction]) -> None:
    logger.info(f"snapshot_published: count={len(snapshot)}")


feed.subscribe(_log_snapshot)


@app.on_event("startup")
def startup_event():
    init_db()
    scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    try:
        return resolve_period(period_slug, start, end, today=local_today())
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail=notifier.failure(str(exc)).as_dict()
        ) from exc


def filters_from_request(request: Request) -> TransactionFilters:
    type_param = request.query_params.get("type")
    category_param = request.query_params.get("category")
    txn_type = None
    if type_param:
        try:
            txn_type = TransactionType(type_param)
        except ValueError:
            txn_type = None
    category = None
    if category_param:
        try:
            category = Category(category_param)
        except ValueError:
            category = None
    return TransactionFilters(
        type=txn_type, category=category, query=request.query_params.get("q")
    )


def serialize_transaction(txn: Transaction) -> dict[str, object]:
    settings = get_settings()
    return {
        "id": txn.id,
        "type": txn.type.value,
        "description": txn.description,
        "amount": float(from_cents(txn.amount_cents)),
        "amount_cents": txn.amount_cents,
        "amount_display": format_currency(txn.amount_cents),
        "category": txn.category.value,
        "category_name": category_name(txn.category, settings.locale),
        "date": txn.date.isoformat(),
        "frequency": txn.frequency.value,
        "frequency_name": frequency_name(txn, local_today(), settings.locale),
        "notes": txn.notes,
        "installmentCount": txn.installment_count,
        "installmentNumber": txn.installment_number,
    }


def store_failure(exc: StoreError) -> HTTPException:
    detail = notifier.failure(str(exc)).as_dict()
    if isinstance(exc, PartialWriteError):
        detail["completed"] = exc.completed
        detail["total"] = exc.total
    return HTTPException(status_code=503, detail=detail)


def not_found(exc: TransactionNotFound) -> HTTPException:
    return HTTPException(status_code=404, detail=notifier.failure(str(exc)).as_dict())


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/transactions")
def api_transactions(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    filters = filters_from_request(request)
    try:
        items = TransactionService(db).filtered(period, filters)
    except StoreError as exc:
        raise store_failure(exc) from exc
    return {
        "period": period.slug,
        "items": [serialize_transaction(txn) for txn in items],
    }


@app.post("/api/transactions", status_code=201)
def create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        created = TransactionService(db, feed).create_many(data)
    except StoreError as exc:
        raise store_failure(exc) from exc
    if len(created) > 1:
        notice = notifier.success(
            "Transactions added", f"{len(created)} installments were added."
        )
    else:
        notice = notifier.success("Transaction added", "New transaction was added.")
    return JSONResponse(
        status_code=201,
        content={
            "items": [serialize_transaction(txn) for txn in created],
            "notice": notice.as_dict(),
        },
        headers=CHANGED_HEADERS,
    )


@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str, data: TransactionIn, db: Session = Depends(get_db)
):
    try:
        txn = TransactionService(db, feed).update(transaction_id, data)
    except TransactionNotFound as exc:
        raise not_found(exc) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    notice = notifier.success("Transaction updated", "Transaction was updated.")
    return JSONResponse(
        content={"item": serialize_transaction(txn), "notice": notice.as_dict()},
        headers=CHANGED_HEADERS,
    )


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    try:
        TransactionService(db, feed).delete(transaction_id)
    except TransactionNotFound as exc:
        raise not_found(exc) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    notice = notifier.success("Transaction deleted", "Transaction was deleted.")
    return JSONResponse(content={"notice": notice.as_dict()}, headers=CHANGED_HEADERS)


@app.get("/api/kpis")
def api_kpis(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    try:
        return MetricsService(db).kpis(period)
    except StoreError as exc:
        raise store_failure(exc) from exc


@app.get("/api/category-breakdown")
def api_category_breakdown(request: Request, db: Session = Depends(get_db)):
    period = period_from_request(request)
    filters = filters_from_request(request)
    try:
        return MetricsService(db).category_breakdown(period, filters.type)
    except StoreError as exc:
        raise store_failure(exc) from exc


@app.get("/api/forecast")
def api_forecast(months: Optional[int] = None, db: Session = Depends(get_db)):
    try:
        forecast = ForecastService(db).forecast(months)
    except ValueError as exc:
        raise HTTPException(
            status_code=400, detail=notifier.failure(str(exc)).as_dict()
        ) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    return forecast.as_dict()


@app.get("/api/export")
def export_transactions(db: Session = Depends(get_db)):
    try:
        filename, content = BackupService(db).export()
    except StoreError as exc:
        raise store_failure(exc) from exc
    notifier.success("Data exported", f"Saved as {filename}.")
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/share-link")
def share_link(db: Session = Depends(get_db)):
    try:
        return {"url": BackupService(db).sharing_link()}
    except StoreError as exc:
        raise store_failure(exc) from exc


@app.post("/api/import")
async def import_transactions(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    try:
        content = (await file.read()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise HTTPException(
            status_code=400,
            detail=notifier.failure("File is not UTF-8 encoded text").as_dict(),
        ) from exc
    try:
        result = ImportService(db, feed).commit(content)
    except ImportValidationError as exc:
        raise HTTPException(
            status_code=400, detail=notifier.failure(str(exc)).as_dict()
        ) from exc
    except StoreError as exc:
        raise store_failure(exc) from exc
    notice = notifier.success(
        "Data imported",
        f"{result.created} created, {result.updated} updated.",
    )
    return JSONResponse(
        content={
            "created": result.created,
            "updated": result.updated,
            "notice": notice.as_dict(),
        },
        headers=CHANGED_HEADERS,
    )


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
