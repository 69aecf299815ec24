import re
from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from catalog.errors import BookValidationError

GENRES = [
    "Fiction",
    "Non-Fiction",
    "Science Fiction",
    "Fantasy",
    "Mystery",
    "Thriller",
    "Romance",
    "Historical",
    "Biography",
    "Self-Help",
    "Children",
    "Science",
    "Technology",
    "Classic",
    "Other",
]

# 10 digits (last may be X) or 13 digits, optionally separated by single hyphens or spaces.
_ISBN_RE = re.compile(r"^(?:\d[- ]?){9}[\dXx]$|^(?:\d[- ]?){13}$")


class ISBNValidator:
    """Format check for the ISBN field of the book form. No checksum."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        return raw.strip()

    @staticmethod
    def is_valid_isbn(isbn: str) -> bool:
        if not isbn:
            return False
        return bool(_ISBN_RE.match(ISBNValidator.normalize_isbn(isbn)))


class TextValidator:

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def clean(text: Optional[str]) -> Optional[str]:
        """Strip surrounding whitespace; blank becomes None."""
        if text is None:
            return None
        t = text.strip()
        return t or None

    @staticmethod
    def is_http_url(url: str) -> bool:
        return bool(re.match(r"^https?://", url))


def normalize_genre(genre: Optional[str]) -> Optional[str]:
    """Return the canonical spelling of ``genre`` or None if it is not a known genre."""
    if genre is None:
        return None
    wanted = genre.strip().lower()
    for known in GENRES:
        if known.lower() == wanted:
            return known
    return None


def validate_book_fields(title: Optional[str], author: Optional[str], isbn: Optional[str] = None,
                         publish_year: Optional[int] = None, genre: Optional[str] = None,
                         cover_url: Optional[str] = None, today: Optional[date] = None) -> Dict[str, object]:
    """Check book form input and return the cleaned fields.

    Raises BookValidationError listing every rejected field.
    """
    today = today or date.today()
    errors: Dict[str, str] = {}

    if TextValidator.is_blank(title):
        errors["title"] = "Title is required"
    if TextValidator.is_blank(author):
        errors["author"] = "Author is required"

    isbn = TextValidator.clean(isbn)
    if isbn is not None and not ISBNValidator.is_valid_isbn(isbn):
        errors["isbn"] = "ISBN must be 10 or 13 digits"

    if publish_year is not None and (publish_year < 0 or publish_year > today.year):
        errors["publish_year"] = f"Year must be between 0 and {today.year}"

    cover_url = TextValidator.clean(cover_url)
    if cover_url is not None and not TextValidator.is_http_url(cover_url):
        errors["cover_url"] = "Cover URL must start with http:// or https://"

    canonical_genre = None
    genre = TextValidator.clean(genre)
    if genre is not None:
        canonical_genre = normalize_genre(genre)
        if canonical_genre is None:
            errors["genre"] = f"Genre must be one of: {', '.join(GENRES)}"

    if errors:
        raise BookValidationError(errors)

    return {
        "title": title.strip(),
        "author": author.strip(),
        "isbn": isbn,
        "publish_year": publish_year,
        "genre": canonical_genre,
        "cover_url": cover_url,
    }


def default_return_date(today: date, loan_days: int = 14) -> date:
    return today + timedelta(days=loan_days)


def validate_checkout(borrower: Optional[str], return_date: Optional[date], today: date) -> Tuple[str, date]:
    """Check checkout input; returns the stripped borrower name and the return date."""
    errors: Dict[str, str] = {}
    if TextValidator.is_blank(borrower):
        errors["borrower"] = "Borrower name is required"
    if return_date is None:
        errors["return_date"] = "Return date is required"
    elif return_date < today:
        errors["return_date"] = "Return date cannot be in the past"
    if errors:
        raise BookValidationError(errors)
    return borrower.strip(), return_date
