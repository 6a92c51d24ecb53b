import json
from datetime import date
from decimal import Decimal
from urllib.parse import unquote

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from backup import (
    ImportValidationError,
    export_filename,
    export_json,
    normalize_category,
    parse_import,
    sharing_link,
    to_records,
)
from database import Base
from models import Category, Frequency, TransactionType
from schemas import TransactionIn
from services import BackupService, ImportService, TransactionService


def _session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine, expire_on_commit=False)


def _seed(service: TransactionService) -> None:
    service.create(
        TransactionIn(
            type=TransactionType.income,
            description="Salary",
            amount=Decimal("4500.00"),
            category=Category.salary,
            date=date(2024, 1, 1),
            frequency=Frequency.monthly,
        )
    )
    service.create(
        TransactionIn(
            type=TransactionType.expense,
            description="Dentist",
            amount=Decimal("0.10"),
            category=Category.health,
            date=date(2024, 2, 29),
            frequency=Frequency.once,
            notes="check-up",
        )
    )
    service.create(
        TransactionIn(
            type=TransactionType.expense,
            description="TV",
            amount=Decimal("199.99"),
            category=Category.entertainment,
            date=date(2024, 3, 10),
            frequency=Frequency.custom,
            installment_count=6,
        )
    )


def _fields(txn) -> tuple:
    return (
        txn.type,
        txn.description,
        txn.amount_cents,
        txn.category,
        txn.date,
        txn.frequency,
        txn.notes,
        txn.installment_count,
        txn.installment_number,
    )


def test_export_is_pretty_printed_array_with_wire_keys():
    with _session() as session:
        _seed(TransactionService(session))
        content = export_json(to_records(TransactionService(session).list()))

    assert content.startswith("[\n  {")
    data = json.loads(content)
    assert len(data) == 3
    tv = next(item for item in data if item["description"] == "TV")
    assert tv["installmentCount"] == 6
    assert tv["amount"] == 199.99
    assert tv["date"] == "2024-03-10"
    salary = next(item for item in data if item["description"] == "Salary")
    assert salary["installmentCount"] is None


def test_round_trip_into_empty_store_reproduces_fields():
    with _session() as source:
        _seed(TransactionService(source))
        originals = TransactionService(source).list()
        content = export_json(to_records(originals))

    with _session() as target:
        result = ImportService(target).commit(content)
        imported = TransactionService(target).list()

    assert (result.created, result.updated) == (3, 0)
    assert sorted(map(_fields, imported), key=str) == sorted(
        map(_fields, originals), key=str
    )
    assert {t.id for t in imported}.isdisjoint({t.id for t in originals})


def test_import_overwrites_matching_ids():
    with _session() as session:
        service = TransactionService(session)
        _seed(service)
        salary = next(t for t in service.list() if t.description == "Salary")
        payload = json.dumps(
            [
                {
                    "id": salary.id,
                    "type": "income",
                    "description": "Salary (raise)",
                    "amount": 5000,
                    "category": "salary",
                    "date": "2024-01-01",
                    "frequency": "monthly",
                },
                {
                    "id": "from-another-device",
                    "type": "expense",
                    "description": "Bus pass",
                    "amount": 35.5,
                    "category": "transportation",
                    "date": "2024-01-03",
                    "frequency": "monthly",
                },
            ]
        )
        result = ImportService(session).commit(payload)
        stored = service.list()

        assert (result.created, result.updated) == (1, 1)
        assert len(stored) == 4
        assert service.get(salary.id).amount_cents == 500000
        bus = next(t for t in stored if t.description == "Bus pass")
        assert bus.id != "from-another-device"
        assert bus.amount_cents == 3550


def test_import_recreates_record_deleted_during_import(monkeypatch):
    with _session() as session:
        service = TransactionService(session)
        _seed(service)
        salary = next(t for t in service.list() if t.description == "Salary")
        payload = export_json(to_records([salary]))

        original_update = TransactionService.update

        def update_after_delete(self, transaction_id, data, **kwargs):
            self.delete(transaction_id)
            return original_update(self, transaction_id, data, **kwargs)

        monkeypatch.setattr(TransactionService, "update", update_after_delete)
        result = ImportService(session).commit(payload)
        stored = service.list()

        assert (result.created, result.updated) == (1, 0)
        assert len(stored) == 3
        restored = next(t for t in stored if t.description == "Salary")
        assert restored.id != salary.id


@pytest.mark.parametrize(
    "content, message",
    [
        ("{not json", "not valid JSON"),
        ('{"id": "1"}', "expected a JSON array"),
        (
            '[{"id": "1", "description": "", "amount": 1, "date": "2024-01-01"}]',
            "missing description",
        ),
        ('[{"id": "1", "description": "x", "amount": 1}]', "missing date"),
        (
            '[{"id": "1", "description": "x", "amount": -5, "date": "2024-01-01",'
            ' "type": "expense"}]',
            "Item 1",
        ),
        ('["just a string"]', "expected an object"),
        (
            '[{"id": "1", "description": "x", "amount": 1, "date": "2024-01-01",'
            ' "type": "expense", "installmentNumber": 4, "installmentCount": 3}]',
            "installmentNumber must be between 1 and installmentCount",
        ),
    ],
)
def test_invalid_payloads_are_rejected(content, message):
    with pytest.raises(ImportValidationError) as excinfo:
        parse_import(content)
    assert message in str(excinfo.value)


def test_invalid_item_rejects_whole_import_before_writes():
    payload = json.dumps(
        [
            {
                "id": "a",
                "type": "income",
                "description": "Valid",
                "amount": 10,
                "date": "2024-01-01",
            },
            {"id": "b", "type": "income", "description": "No amount", "date": "2024-01-01"},
        ]
    )
    with _session() as session:
        with pytest.raises(ImportValidationError):
            ImportService(session).commit(payload)
        assert TransactionService(session).list() == []


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Rent", "rent"),
        ("grocerie", "groceries"),
        ("bils", "bills"),
        ("crypto", "other"),
        (None, "other"),
    ],
)
def test_normalize_category(raw, expected):
    assert normalize_category(raw) == expected


def test_export_filename_uses_iso_date():
    assert export_filename("budget-data", date(2024, 7, 4)) == "budget-data-2024-07-04.json"


def test_sharing_link_is_data_uri_of_export():
    with _session() as session:
        _seed(TransactionService(session))
        link = BackupService(session).sharing_link()

    prefix = "data:text/json;charset=utf-8,"
    assert link.startswith(prefix)
    data = json.loads(unquote(link[len(prefix):]))
    assert sorted(item["description"] for item in data) == ["Dentist", "Salary", "TV"]


def test_backup_service_export_names_file_by_date():
    with _session() as session:
        filename, content = BackupService(session).export(today=date(2024, 5, 1))
    assert filename == "budget-data-2024-05-01.json"
    assert json.loads(content) == []


def test_sharing_link_of_empty_store():
    assert sharing_link([]) == "data:text/json;charset=utf-8,%5B%5D"
