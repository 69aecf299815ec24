from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_MODELED_KEYS = frozenset({
    "id", "title", "author", "isbn", "publishYear", "genre", "coverUrl",
    "isCheckedOut", "checkedOutBy", "checkedOutDate", "returnDate",
})


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string (or pass a date through). Returns None when unusable."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class Loan:
    """An active loan. A book carries one only while it is checked out."""

    borrower: str
    return_date: date
    checked_out_date: Optional[date] = None

    def days_until_return(self, today: date) -> int:
        """Whole days left until the return date; negative once overdue."""
        return (self.return_date - today).days

    def is_overdue(self, today: date) -> bool:
        return self.return_date < today


class Book:
    """A single catalog entry."""

    def __init__(self, id: str, title: str, author: str, isbn: str | None = None,
                 publish_year: int | None = None, genre: str | None = None,
                 cover_url: str | None = None, loan: Loan | None = None,
                 extra: Dict[str, Any] | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.publish_year = publish_year
        self.genre = genre
        self.cover_url = cover_url
        self.loan = loan
        # Keys this class does not model, written back out unchanged.
        self.extra = dict(extra) if extra else {}

    @property
    def is_checked_out(self) -> bool:
        return self.loan is not None

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ID: {self.id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"Book(id={self.id!r}, title={self.title!r}, checked_out={self.is_checked_out})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Book):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def copy(self) -> "Book":
        # Loan is frozen; only the extra mapping needs its own copy.
        clone = copy.copy(self)
        clone.extra = dict(self.extra)
        return clone

    def to_dict(self) -> dict:
        """Serialize using the camelCase keys of the stored payload. Absent fields are omitted."""
        data: Dict[str, Any] = {"id": self.id, "title": self.title, "author": self.author}
        if self.isbn is not None:
            data["isbn"] = self.isbn
        if self.publish_year is not None:
            data["publishYear"] = self.publish_year
        if self.genre is not None:
            data["genre"] = self.genre
        if self.cover_url is not None:
            data["coverUrl"] = self.cover_url
        data["isCheckedOut"] = self.is_checked_out
        if self.loan is not None:
            data["checkedOutBy"] = self.loan.borrower
            if self.loan.checked_out_date is not None:
                data["checkedOutDate"] = self.loan.checked_out_date.isoformat()
            data["returnDate"] = self.loan.return_date.isoformat()
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    @staticmethod
    def from_dict(data: dict) -> "Book":
        loan = None
        if data.get("isCheckedOut") is True:
            borrower = data.get("checkedOutBy")
            return_date = parse_date(data.get("returnDate"))
            if isinstance(borrower, str) and borrower and return_date is not None:
                loan = Loan(
                    borrower=borrower,
                    return_date=return_date,
                    checked_out_date=parse_date(data.get("checkedOutDate")),
                )
            else:
                logger.warning(f"Book {data.get('id')!r} is marked checked out without a complete loan; loading it as available")

        extra = {k: v for k, v in data.items() if k not in _MODELED_KEYS}
        year = data.get("publishYear")
        if isinstance(year, bool) or not isinstance(year, (int, float)):
            if year is not None:
                extra["publishYear"] = year
            year = None

        return Book(
            id=str(data["id"]),
            title=str(data["title"]),
            author=str(data["author"]),
            isbn=_optional_str(data.get("isbn")),
            publish_year=int(year) if year is not None else None,
            genre=_optional_str(data.get("genre")),
            cover_url=_optional_str(data.get("coverUrl")),
            loan=loan,
            extra=extra,
        )


def sample_books() -> List[Book]:
    """The records a brand new (or unreadable) catalog starts with."""
    return [
        Book(
            id="1",
            title="To Kill a Mockingbird",
            author="Harper Lee",
            isbn="9780061120084",
            publish_year=1960,
            genre="Classic",
            cover_url="https://images.pexels.com/photos/46274/pexels-photo-46274.jpeg",
        ),
        Book(
            id="2",
            title="1984",
            author="George Orwell",
            isbn="9780451524935",
            publish_year=1949,
            genre="Dystopian",
            cover_url="https://images.pexels.com/photos/1765033/pexels-photo-1765033.jpeg",
            loan=Loan(
                borrower="Jane Smith",
                checked_out_date=date(2023, 11, 15),
                return_date=date(2023, 12, 15),
            ),
        ),
        Book(
            id="3",
            title="The Great Gatsby",
            author="F. Scott Fitzgerald",
            isbn="9780743273565",
            publish_year=1925,
            genre="Classic",
            cover_url="https://images.pexels.com/photos/3747139/pexels-photo-3747139.jpeg",
        ),
    ]
