"""Import and export of the stored catalog payload.

An export is the stored JSON document written verbatim to a dated file. An
import validates a document with the same shape and, if it passes, stores it
verbatim under the catalog key; the caller then reloads its ``Library``.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, StrictStr, ValidationError

from catalog.book import Book
from catalog.config import settings
from catalog.database import Storage
from catalog.errors import ImportValidationError

logger = logging.getLogger(__name__)

NOT_AN_ARRAY = "Invalid data format: The imported file must contain an array of books"
MISSING_FIELDS = "Invalid data format: The book data is missing required fields"
PARSE_FAILED = "Failed to parse the imported file. Please make sure it's a valid JSON file."


class ImportedBookModel(BaseModel):
    """Minimum shape of a record in an import file. Other keys pass unchecked."""
    model_config = ConfigDict(extra="allow")

    id: StrictStr
    title: StrictStr
    author: StrictStr
    isCheckedOut: StrictBool


def validate_payload(text: str) -> List[Dict[str, Any]]:
    """Parse ``text`` and check it is an array of book records."""
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ImportValidationError(PARSE_FAILED) from e

    if not isinstance(parsed, list):
        raise ImportValidationError(NOT_AN_ARRAY)

    for item in parsed:
        if not isinstance(item, dict):
            raise ImportValidationError(MISSING_FIELDS)
        try:
            ImportedBookModel.model_validate(item)
        except ValidationError as e:
            raise ImportValidationError(MISSING_FIELDS) from e
    return parsed


def import_payload(storage: Storage, text: str, key: Optional[str] = None) -> int:
    """Replace the stored collection with ``text``. Returns the number of records."""
    records = validate_payload(text)
    storage.set(key or settings.storage_key, text)
    logger.info(f"Imported {len(records)} books")
    return len(records)


def import_file(storage: Storage, path: Path, key: Optional[str] = None) -> int:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ImportValidationError(PARSE_FAILED) from e
    return import_payload(storage, text, key)


def export_filename(today: date, extension: str = "json") -> str:
    return f"library-export-{today.isoformat()}.{extension}"


def export_payload(storage: Storage, directory: Path, today: Optional[date] = None,
                   key: Optional[str] = None) -> Optional[Path]:
    """Write the stored payload to ``directory``. Returns None if nothing is stored."""
    payload = storage.get(key or settings.storage_key)
    if payload is None:
        logger.info("Nothing stored yet; skipping export")
        return None
    target = Path(directory) / export_filename(today or date.today())
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(payload, encoding="utf-8")
    logger.info(f"Exported library to {target}")
    return target


CSV_HEADER = ["ID", "Title", "Author", "ISBN", "Publish Year", "Genre",
              "Checked Out", "Borrower", "Return Date"]


def export_csv(books: Iterable[Book], path: Path) -> int:
    """Flat spreadsheet export. Returns the number of rows written."""
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(CSV_HEADER)
        for book in books:
            writer.writerow([
                book.id,
                book.title,
                book.author,
                book.isbn or "",
                book.publish_year if book.publish_year is not None else "",
                book.genre or "",
                "yes" if book.is_checked_out else "no",
                book.loan.borrower if book.loan else "",
                book.loan.return_date.isoformat() if book.loan else "",
            ])
            count += 1
    return count
