import json
from datetime import date
from typing import Iterable, Optional
from urllib.parse import quote

from pydantic import ValidationError
from rapidfuzz.distance import Levenshtein

from models import Category
from schemas import TransactionRecord

REQUIRED_FIELDS = ("id", "description", "amount", "date")


class ImportValidationError(ValueError):
    pass


def normalize_category(raw: object) -> str:
    """Map a category key onto the closed set: exact match, then the single
    nearest key within one edit, otherwise ``other``."""
    text = str(raw or "").strip().lower()
    if not text:
        return Category.other.value
    keys = [member.value for member in Category]
    if text in keys:
        return text

    best_distance: Optional[int] = None
    best: list[str] = []
    for key in keys:
        dist = int(Levenshtein.distance(text, key))
        if best_distance is None or dist < best_distance:
            best_distance = dist
            best = [key]
        elif dist == best_distance:
            best.append(key)
    if best_distance is not None and best_distance <= 1 and len(best) == 1:
        return best[0]
    return Category.other.value


def to_records(transactions: Iterable) -> list[TransactionRecord]:
    return [TransactionRecord.from_row(txn) for txn in transactions]


def _dump(records: Iterable[TransactionRecord]) -> list[dict[str, object]]:
    return [record.model_dump(mode="json", by_alias=True) for record in records]


def export_json(records: Iterable[TransactionRecord]) -> str:
    return json.dumps(_dump(records), indent=2, ensure_ascii=False)


def export_filename(prefix: str, today: date) -> str:
    return f"{prefix}-{today.isoformat()}.json"


def sharing_link(records: Iterable[TransactionRecord]) -> str:
    payload = json.dumps(_dump(records), ensure_ascii=False, separators=(",", ":"))
    return f"data:text/json;charset=utf-8,{quote(payload, safe='')}"


def _missing_fields(item: dict) -> list[str]:
    missing = []
    for name in REQUIRED_FIELDS:
        value = item.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    return missing


def parse_import(content: str) -> list[TransactionRecord]:
    """Validate an exported JSON array. Any problem rejects the whole payload."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ImportValidationError(f"File is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, list):
        raise ImportValidationError("Invalid data format, expected a JSON array")

    records: list[TransactionRecord] = []
    errors: list[str] = []
    for idx, item in enumerate(payload, start=1):
        if not isinstance(item, dict):
            errors.append(f"Item {idx}: expected an object")
            continue
        missing = _missing_fields(item)
        if missing:
            errors.append(f"Item {idx}: missing {', '.join(missing)}")
            continue
        data = dict(item)
        data["id"] = str(data["id"])
        data["category"] = normalize_category(data.get("category"))
        try:
            records.append(TransactionRecord.model_validate(data))
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in exc.errors()
            )
            errors.append(f"Item {idx}: {details}")
    if errors:
        raise ImportValidationError("; ".join(errors))
    return records
