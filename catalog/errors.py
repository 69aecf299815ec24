from __future__ import annotations

from typing import Dict, Optional


class CatalogError(Exception):
    """Base class for every error raised by the catalog package."""


class BookValidationError(CatalogError, ValueError):
    """Raised when form input for a book or a checkout is rejected.

    ``errors`` maps the offending field name to a human readable message.
    """

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {text}" for field, text in self.errors.items())
        super().__init__(message)


class ImportValidationError(CatalogError, ValueError):
    """Raised when an import payload is not a valid library export."""


class BookAlreadyCheckedOutError(CatalogError):
    """Raised by strict checkout when the book already has an active loan."""

    def __init__(self, book_id: str, borrower: str) -> None:
        self.book_id = book_id
        self.borrower = borrower
        super().__init__(f"Book {book_id} is already checked out by {borrower}.")


class StorageError(CatalogError):
    """Raised when the key-value store cannot be read or written."""
