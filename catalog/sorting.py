from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List

from catalog.book import Book


class SortField(Enum):
    """Fields a book list can be ordered by."""
    TITLE = "title"
    AUTHOR = "author"
    PUBLISH_YEAR = "publishYear"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortOptions:
    field: SortField = SortField.TITLE
    direction: SortDirection = SortDirection.ASC


SortKey = Callable[[Book], Any]

# A field can only be sorted on once it has a key function registered here.
SORT_KEYS: Dict[SortField, SortKey] = {
    SortField.TITLE: lambda b: (b.title or "").lower(),
    SortField.AUTHOR: lambda b: (b.author or "").lower(),
    SortField.PUBLISH_YEAR: lambda b: b.publish_year or 0,
}


def sort_books(books: Iterable[Book], options: SortOptions) -> List[Book]:
    """Return a new list ordered by ``options``.

    ``sorted`` is stable, including with ``reverse=True``, so books with equal
    keys keep their collection order in both directions.
    """
    try:
        key = SORT_KEYS[options.field]
    except KeyError:
        raise ValueError(f"No sort key registered for {options.field.value!r}") from None
    return sorted(books, key=key, reverse=options.direction is SortDirection.DESC)
