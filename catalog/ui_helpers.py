import os
import json
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from catalog.book import Book

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

TOP_GENRES = 5

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def loan_status(book: Book, today: date) -> str:
    """'Available', or who has the book and when it is due back."""
    if book.loan is None:
        return "Available"
    days = book.loan.days_until_return(today)
    if days < 0:
        due = f"{abs(days)} days overdue"
    elif days == 0:
        due = "due today"
    else:
        due = f"{days} days left"
    return f"Checked out by {book.loan.borrower}, return {book.loan.return_date.isoformat()} ({due})"


def percent(part: int, total: int) -> int:
    """Rounded percentage, 0 for an empty library."""
    if total <= 0:
        return 0
    return int(part * 100 / total + 0.5)


def top_genres(genre_counts: Dict[str, int], limit: int = TOP_GENRES) -> List[Tuple[str, int]]:
    return sorted(genre_counts.items(), key=lambda item: item[1], reverse=True)[:limit]


def print_list_result(books: List[Book], today: date) -> None:
    """Print the book list in the current output mode.
    - plain: 'ID - Title by Author [status]' lines, or 'No books found.'
    - json: JSON array of the stored records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books found.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Year", justify="right")
        table.add_column("Genre")
        table.add_column("Status")
        for b in books:
            overdue = b.loan is not None and b.loan.is_overdue(today)
            style = "red" if overdue else ("yellow" if b.is_checked_out else "green")
            table.add_row(
                b.id,
                escape(b.title),
                escape(b.author),
                str(b.publish_year) if b.publish_year is not None else "",
                escape(b.genre or ""),
                f"[{style}]{escape(loan_status(b, today))}[/]",
            )
        _console.print(table)
        _console.print(f"[dim]📊 {len(books)} books[/]")
    else:
        for b in books:
            print(f"{b.id} - {b.title} by {b.author} [{loan_status(b, today)}]")


def print_book_detail(book: Book, today: date) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
        return

    lines = [
        ("ID", book.id),
        ("Title", book.title),
        ("Author", book.author),
        ("ISBN", book.isbn),
        ("Year", str(book.publish_year) if book.publish_year is not None else None),
        ("Genre", book.genre),
        ("Cover", book.cover_url),
        ("Status", loan_status(book, today)),
    ]
    if book.loan is not None and book.loan.checked_out_date is not None:
        lines.append(("Checked out on", book.loan.checked_out_date.isoformat()))

    if mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {escape(value)}" for label, value in lines if value)
        _console.print(Panel.fit(content, title="📖 Book", border_style="green"))
    else:
        for label, value in lines:
            if value:
                print(f"{label}: {value}")


def print_stats_result(stats: Optional[Dict[str, Any]]) -> None:
    """Print statistics in the current output mode.
    - plain: one metric per line followed by the top genres
    - json: the stats dictionary
    - rich: Panel with the key metrics and genre bars
    """
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    total = stats.get("total", 0)
    checked_out = stats.get("checked_out", 0)
    available = stats.get("available", 0)
    genres = top_genres(stats.get("genre_counts", {}))

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {total}\n"
            f"[bold green]Available:[/] {available} ({percent(available, total)}%)\n"
            f"[bold yellow]Checked Out:[/] {checked_out} ({percent(checked_out, total)}%)"
        )
        if genres:
            max_count = genres[0][1]
            bars = []
            for genre, count in genres:
                width = max(1, round(count / max_count * 20))
                bars.append(f"{escape(genre):<16} [cyan]{'█' * width}[/] {count}")
            content += "\n\n[bold]Top Genres[/]\n" + "\n".join(bars)
        else:
            content += "\n\n[dim]No genre data available[/]"
        _console.print(Panel.fit(content, title="📊 Library Statistics", border_style="blue"))
    else:
        print(f"Total Books: {total}")
        print(f"Available: {available} ({percent(available, total)}%)")
        print(f"Checked Out: {checked_out} ({percent(checked_out, total)}%)")
        if genres:
            print("Top Genres:")
            for genre, count in genres:
                print(f"  {genre}: {count}")
