import csv
import json
from datetime import date

import pytest

from catalog import transfer
from catalog.database import MemoryStorage
from catalog.errors import ImportValidationError
from catalog.library import Library
from conftest import TODAY


def test_import_rejects_non_array(lib, storage):
    before = storage.get("library-books")
    with pytest.raises(ImportValidationError, match="must contain an array of books"):
        transfer.import_payload(storage, '{"a": 1}', key="library-books")
    assert storage.get("library-books") == before
    lib.reload()
    assert len(lib.list_books()) == 3


def test_import_rejects_bad_json(storage):
    with pytest.raises(ImportValidationError, match="valid JSON file"):
        transfer.import_payload(storage, "[{", key="library-books")
    assert storage.get("library-books") is None


@pytest.mark.parametrize("record", [
    {"title": "T", "author": "A", "isCheckedOut": False},
    {"id": 1, "title": "T", "author": "A", "isCheckedOut": False},
    {"id": "1", "title": "T", "author": "A", "isCheckedOut": "false"},
    {"id": "1", "title": "T", "isCheckedOut": False},
    "just a string",
    None,
])
def test_import_rejects_records_missing_required_fields(storage, record):
    with pytest.raises(ImportValidationError, match="missing required fields"):
        transfer.import_payload(storage, json.dumps([record]), key="library-books")
    assert storage.get("library-books") is None


def test_import_accepts_extra_fields_and_stores_verbatim(storage):
    text = json.dumps([{"id": "9", "title": "T", "author": "A", "isCheckedOut": False, "shelf": "B2"}], indent=2)
    assert transfer.import_payload(storage, text, key="library-books") == 1
    assert storage.get("library-books") == text


def test_export_then_import_round_trip(lib, storage, tmp_path):
    lib.add_book("Dune", "Frank Herbert", publish_year=1965)
    lib.check_out_book("1", "Alice", date(2024, 3, 20))
    original = lib.list_books()

    path = transfer.export_payload(storage, tmp_path, TODAY, key="library-books")
    assert path.name == "library-export-2024-03-01.json"

    other = MemoryStorage()
    transfer.import_file(other, path, key="library-books")
    restored = Library(other, key="library-books", today=lambda: TODAY)
    assert [b.to_dict() for b in restored.list_books()] == [b.to_dict() for b in original]
    assert other.get("library-books") == storage.get("library-books")


def test_export_with_nothing_stored(storage, tmp_path):
    assert transfer.export_payload(storage, tmp_path, TODAY, key="library-books") is None
    assert list(tmp_path.iterdir()) == []


def test_export_filename():
    assert transfer.export_filename(date(2025, 1, 9)) == "library-export-2025-01-09.json"
    assert transfer.export_filename(date(2025, 1, 9), "csv") == "library-export-2025-01-09.csv"


def test_export_csv(lib, tmp_path):
    target = tmp_path / "books.csv"
    assert transfer.export_csv(lib.list_books(), target) == 3

    with open(target, newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == transfer.CSV_HEADER
    assert rows[2][:3] == ["2", "1984", "George Orwell"]
    assert rows[2][6:] == ["yes", "Jane Smith", "2023-12-15"]
    assert rows[1][6:] == ["no", "", ""]
