import logging
from datetime import datetime, date
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Confirm

from catalog.book import Book
from catalog.config import settings
from catalog.database import get_storage
from catalog.errors import BookAlreadyCheckedOutError, BookValidationError, ImportValidationError, StorageError
from catalog.library import Library
from catalog.sorting import SortDirection, SortField, SortOptions
from catalog import transfer
from catalog.ui_helpers import set_output_mode, print_list_result, print_book_detail, print_stats_result
from catalog.validators import GENRES, default_return_date, validate_book_fields, validate_checkout

console = Console()


class LibraryManager:
    """Holds the single Library instance the commands work on."""
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        if cls._instance is None:
            cls._instance = Library(get_storage(settings))
        return cls._instance

    @classmethod
    def set_instance(cls, library: Optional[Library]) -> None:
        cls._instance = library


class SortChoice(str, Enum):
    title = "title"
    author = "author"
    year = "year"


_SORT_FIELDS = {
    SortChoice.title: SortField.TITLE,
    SortChoice.author: SortField.AUTHOR,
    SortChoice.year: SortField.PUBLISH_YEAR,
}


class ExportFormat(str, Enum):
    json = "json"
    csv = "csv"


def _fail(message: str) -> None:
    print(message)
    raise typer.Exit(code=1)


def _report_validation(error: BookValidationError) -> None:
    print("Error:")
    for field, message in error.errors.items():
        print(f"  {field}: {message}")
    raise typer.Exit(code=1)


# --- Typer CLI Application ---
app = typer.Typer(help=f"{settings.app_name} CLI (v{settings.app_version})")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    logging.basicConfig(level=settings.log_level.upper())
    if output:
        set_output_mode(output)


@app.command("list")
def cli_list(
    query: str = typer.Argument("", help="Search title, author, genre or ISBN"),
    sort: SortChoice = typer.Option(SortChoice.title, "--sort", "-s", help="Sort field"),
    desc: bool = typer.Option(False, "--desc", help="Sort descending"),
    checked_out: Optional[bool] = typer.Option(None, "--checked-out/--available", help="Only lent or only available books"),
):
    """List books, optionally filtered and sorted."""
    lib = LibraryManager.get_instance()
    options = SortOptions(
        field=_SORT_FIELDS[sort],
        direction=SortDirection.DESC if desc else SortDirection.ASC,
    )
    books = lib.filter_and_sort(query, options, checked_out)
    print_list_result(books, lib.today())


@app.command("show")
def cli_show(book_id: str):
    """Show all details of one book."""
    lib = LibraryManager.get_instance()
    book = lib.get_book(book_id)
    if not book:
        _fail(f"Book with ID {book_id} not found.")
    print_book_detail(book, lib.today())


@app.command("add")
def cli_add(
    title: str = typer.Option(..., "--title", "-t"),
    author: str = typer.Option(..., "--author", "-a"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    year: Optional[int] = typer.Option(None, "--year", "-y"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help=f"One of: {', '.join(GENRES)}"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url"),
):
    """Add a book to the catalog."""
    lib = LibraryManager.get_instance()
    try:
        fields = validate_book_fields(title, author, isbn, year, genre, cover_url, today=lib.today())
    except BookValidationError as e:
        _report_validation(e)
    book = lib.add_book(**fields)
    print(f"Successfully added: {book.title} by {book.author} (ID: {book.id})")


@app.command("edit")
def cli_edit(
    book_id: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    isbn: Optional[str] = typer.Option(None, "--isbn", help="Empty string clears it"),
    year: Optional[int] = typer.Option(None, "--year", "-y"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g", help="Empty string clears it"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url", help="Empty string clears it"),
):
    """Edit the details of a book. Loan status is kept."""
    lib = LibraryManager.get_instance()
    book = lib.get_book(book_id)
    if not book:
        _fail(f"Book with ID {book_id} not found.")
    try:
        fields = validate_book_fields(
            title if title is not None else book.title,
            author if author is not None else book.author,
            isbn,
            year,
            genre,
            cover_url,
            today=lib.today(),
        )
    except BookValidationError as e:
        _report_validation(e)
    # Stored values may predate the form rules; only the options given are checked.
    if isbn is None:
        fields["isbn"] = book.isbn
    if year is None:
        fields["publish_year"] = book.publish_year
    if genre is None:
        fields["genre"] = book.genre
    if cover_url is None:
        fields["cover_url"] = book.cover_url
    updated = lib.update_book(Book(id=book.id, loan=book.loan, extra=book.extra, **fields))
    if updated is None:
        _fail(f"Book with ID {book_id} not found.")
    print(f"Updated: {updated.title} by {updated.author}")


@app.command("remove")
def cli_remove(book_id: str):
    """Remove a book by ID."""
    lib = LibraryManager.get_instance()
    if lib.delete_book(book_id):
        print(f"Book with ID {book_id} has been removed.")
    else:
        print(f"Book with ID {book_id} not found.")


@app.command("checkout")
def cli_checkout(
    book_id: str,
    borrower: str = typer.Option(..., "--borrower", "-b", help="Who is borrowing the book"),
    return_date: Optional[datetime] = typer.Option(
        None, "--return-date", "-r", formats=["%Y-%m-%d"],
        help=f"Defaults to {settings.loan_days} days from today",
    ),
):
    """Check a book out to a borrower."""
    lib = LibraryManager.get_instance()
    today = lib.today()
    due: date = return_date.date() if return_date else default_return_date(today, settings.loan_days)
    try:
        borrower, due = validate_checkout(borrower, due, today)
    except BookValidationError as e:
        _report_validation(e)
    try:
        book = lib.check_out_book(book_id, borrower, due)
    except BookAlreadyCheckedOutError as e:
        _fail(f"Error: {e}")
    if book is None:
        _fail(f"Book with ID {book_id} not found.")
    print(f"Checked out: {book.title} to {borrower}, return by {due.isoformat()}")


@app.command("checkin")
def cli_checkin(book_id: str):
    """Return a checked out book."""
    lib = LibraryManager.get_instance()
    before = lib.get_book(book_id)
    if before is None:
        _fail(f"Book with ID {book_id} not found.")
    if not before.is_checked_out:
        print(f"{before.title} is not checked out.")
        return
    lib.check_in_book(book_id)
    print(f"Checked in: {before.title}")


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(LibraryManager.get_instance().get_stats())


@app.command("export")
def cli_export(
    format: ExportFormat = typer.Option(ExportFormat.json, "--format", "-f"),
    directory: Path = typer.Option(Path(settings.export_dir), "--dir", "-d", help="Target directory"),
):
    """Export the library (json backup or csv spreadsheet)."""
    lib = LibraryManager.get_instance()
    if format is ExportFormat.csv:
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / transfer.export_filename(lib.today(), "csv")
        count = transfer.export_csv(lib.list_books(), target)
        print(f"Exported {count} books to {target}")
        return
    target = transfer.export_payload(lib.storage, directory, lib.today(), key=lib.key)
    if target is None:
        print("Nothing to export.")
        return
    print(f"Exported library to {target}")


@app.command("import")
def cli_import(file_path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True)):
    """Replace the library with the contents of a JSON export."""
    lib = LibraryManager.get_instance()
    try:
        count = transfer.import_file(lib.storage, file_path, key=lib.key)
    except ImportValidationError as e:
        _fail(f"Error: {e}")
    lib.reload()
    print(f"Imported {count} books from {file_path}")


@app.command("reset")
def cli_reset(yes: bool = typer.Option(False, "--yes", help="Do not ask for confirmation")):
    """Delete all library data and start over with the sample books."""
    if not yes and not Confirm.ask("This will permanently delete all your library data. Continue?", default=False):
        print("Reset cancelled.")
        return
    LibraryManager.get_instance().reset()
    print("Library reset.")


def run() -> None:
    try:
        app()
    except StorageError as e:
        console.print(f"[bold red]Storage error:[/] {e}")
        raise SystemExit(2)


if __name__ == "__main__":
    run()
