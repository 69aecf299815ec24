import json
import logging
import secrets
from collections import Counter
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from catalog.book import Book, Loan, sample_books
from catalog.config import settings
from catalog.database import Storage
from catalog.errors import BookAlreadyCheckedOutError
from catalog.sorting import SortOptions, sort_books

logger = logging.getLogger(__name__)


class Library:
    """Owns the book collection and keeps the storage copy in sync with it.

    Every method hands out copies, never the stored ``Book`` objects. Operations
    on an unknown id are silent no-ops.
    """

    def __init__(self, storage: Storage, key: Optional[str] = None,
                 today: Callable[[], date] = date.today,
                 strict_checkout: Optional[bool] = None) -> None:
        self.storage = storage
        self.key = key or settings.storage_key
        self.today = today
        self.strict_checkout = settings.strict_checkout if strict_checkout is None else strict_checkout
        self._books: List[Book] = self._load()

    # ------------------------- Core operations ------------------------- #
    def add_book(self, title: str, author: str, isbn: Optional[str] = None,
                 publish_year: Optional[int] = None, genre: Optional[str] = None,
                 cover_url: Optional[str] = None) -> Book:
        """Append a new, available book and return it. Duplicates are allowed."""
        book = Book(
            id=self._new_id(),
            title=title,
            author=author,
            isbn=isbn,
            publish_year=publish_year,
            genre=genre,
            cover_url=cover_url,
        )
        self._commit(self._books + [book])
        logger.info(f"Added book {book.id}: {book.title}")
        return book.copy()

    def update_book(self, book: Book) -> Optional[Book]:
        """Replace the entry with the same id. Returns None if there is none."""
        index = self._index_of(book.id)
        if index is None:
            return None
        self._replace(index, book.copy())
        logger.info(f"Updated book {book.id}")
        return book.copy()

    def delete_book(self, book_id: str) -> bool:
        index = self._index_of(book_id)
        if index is None:
            return False
        books = list(self._books)
        removed = books.pop(index)
        self._commit(books)
        logger.info(f"Deleted book {book_id}: {removed.title}")
        return True

    def check_out_book(self, book_id: str, borrower: str, return_date: date) -> Optional[Book]:
        """Lend a book until ``return_date``.

        The caller validates the borrower and date. Checking out a book that is
        already on loan replaces the loan, unless ``strict_checkout`` is set.
        """
        index = self._index_of(book_id)
        if index is None:
            return None
        book = self._books[index]
        if book.loan is not None:
            if self.strict_checkout:
                raise BookAlreadyCheckedOutError(book_id, book.loan.borrower)
            logger.warning(f"Book {book_id} was still checked out by {book.loan.borrower}; replacing the loan")
        updated = book.copy()
        updated.loan = Loan(borrower=borrower, return_date=return_date, checked_out_date=self.today())
        self._replace(index, updated)
        logger.info(f"Checked out book {book_id} to {borrower} until {return_date.isoformat()}")
        return updated.copy()

    def check_in_book(self, book_id: str) -> Optional[Book]:
        index = self._index_of(book_id)
        if index is None:
            return None
        book = self._books[index]
        if book.loan is None:
            return book.copy()
        updated = book.copy()
        updated.loan = None
        self._replace(index, updated)
        logger.info(f"Checked in book {book_id}")
        return updated.copy()

    # ------------------------- Queries ------------------------- #
    def get_book(self, book_id: str) -> Optional[Book]:
        index = self._index_of(book_id)
        return self._books[index].copy() if index is not None else None

    def list_books(self) -> List[Book]:
        return [b.copy() for b in self._books]

    def filter_and_sort(self, query: str = "", sort_options: Optional[SortOptions] = None,
                        checked_out: Optional[bool] = None) -> List[Book]:
        """Books matching ``query`` and the checkout filter, ordered by ``sort_options``.

        ``query`` is a case-insensitive substring of the title, author, genre
        or ISBN; an empty query matches everything. ``checked_out`` of None
        keeps both available and lent books.
        """
        term = (query or "").lower()
        matches = [
            b for b in self._books
            if (not term or _matches(b, term))
            and (checked_out is None or b.is_checked_out == checked_out)
        ]
        ordered = sort_books(matches, sort_options or SortOptions())
        return [b.copy() for b in ordered]

    def get_stats(self) -> Dict[str, Any]:
        total = len(self._books)
        checked_out = sum(1 for b in self._books if b.is_checked_out)
        genre_counts = Counter(b.genre for b in self._books if b.genre)
        return {
            "total": total,
            "checked_out": checked_out,
            "available": total - checked_out,
            "genre_counts": dict(genre_counts),
        }

    # ------------------------- Persistence ------------------------- #
    def reload(self) -> None:
        """Re-read the collection from storage, e.g. after an import."""
        self._books = self._load()

    def reset(self) -> None:
        """Drop the stored collection and start over from the sample books."""
        self.storage.remove(self.key)
        self._commit(sample_books())
        logger.warning("Library reset to the sample collection")

    def _load(self) -> List[Book]:
        raw = self.storage.get(self.key)
        if raw is None:
            logger.info(f"No stored collection under {self.key!r}; starting with the sample books")
            return sample_books()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored collection under {self.key!r} is not valid JSON ({e}); using the sample books")
            return sample_books()
        if not isinstance(data, list):
            logger.warning(f"Stored collection under {self.key!r} is not a list; using the sample books")
            return sample_books()

        books: List[Book] = []
        for item in data:
            if not isinstance(item, dict) or not all(isinstance(item.get(k), str) for k in ("id", "title", "author")):
                logger.warning(f"Skipping malformed stored record: {item!r}")
                continue
            books.append(Book.from_dict(item))
        return books

    def _commit(self, books: List[Book]) -> None:
        """Write ``books`` to storage, then make them the collection.

        If the write fails the in-memory collection is left as it was.
        """
        payload = json.dumps([b.to_dict() for b in books], ensure_ascii=False)
        self.storage.set(self.key, payload)
        self._books = books

    def _replace(self, index: int, book: Book) -> None:
        books = list(self._books)
        books[index] = book
        self._commit(books)

    # ------------------------- Utilities ------------------------- #
    def _index_of(self, book_id: str) -> Optional[int]:
        for i, book in enumerate(self._books):
            if book.id == book_id:
                return i
        return None

    def _new_id(self) -> str:
        existing = {b.id for b in self._books}
        while True:
            candidate = secrets.token_hex(8)
            if candidate not in existing:
                return candidate


def _matches(book: Book, term: str) -> bool:
    fields = (book.title, book.author, book.genre, book.isbn)
    return any(value and term in value.lower() for value in fields)
