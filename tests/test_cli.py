import json

from typer.testing import CliRunner

from main import app, LibraryManager

runner = CliRunner()


def test_list_books(cli_lib):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    lines = result.stdout.strip().splitlines()
    assert lines[0] == "2 - 1984 by George Orwell [Checked out by Jane Smith, return 2023-12-15 (77 days overdue)]"
    assert lines[1] == "3 - The Great Gatsby by F. Scott Fitzgerald [Available]"
    assert lines[2] == "1 - To Kill a Mockingbird by Harper Lee [Available]"


def test_list_filters_and_sorts(cli_lib):
    result = runner.invoke(app, ["list", "classic", "--sort", "year", "--desc"])
    assert result.exit_code == 0
    assert [line.split(" - ")[0] for line in result.stdout.strip().splitlines()] == ["1", "3"]

    result = runner.invoke(app, ["list", "--checked-out"])
    assert result.stdout.strip().startswith("2 - 1984")
    assert len(result.stdout.strip().splitlines()) == 1


def test_list_no_matches(cli_lib):
    result = runner.invoke(app, ["list", "nothing matches this"])
    assert result.exit_code == 0
    assert "No books found." in result.stdout


def test_list_json_output(cli_lib):
    result = runner.invoke(app, ["-o", "json", "list", "--available"])
    assert result.exit_code == 0
    assert [b["id"] for b in json.loads(result.stdout)] == ["3", "1"]


def test_add_book(cli_lib):
    result = runner.invoke(app, ["add", "--title", "Dune", "--author", "Frank Herbert",
                                 "--year", "1965", "--genre", "science fiction"])
    assert result.exit_code == 0
    assert "Successfully added: Dune by Frank Herbert" in result.stdout
    book = cli_lib.list_books()[-1]
    assert book.genre == "Science Fiction"
    assert book.publish_year == 1965


def test_add_book_validation_error(cli_lib):
    result = runner.invoke(app, ["add", "--title", " ", "--author", "X", "--isbn", "12"])
    assert result.exit_code == 1
    assert "title: Title is required" in result.stdout
    assert "isbn: ISBN must be 10 or 13 digits" in result.stdout
    assert len(cli_lib.list_books()) == 3


def test_edit_book_keeps_loan_and_unknown_genre(cli_lib):
    result = runner.invoke(app, ["edit", "2", "--title", "Nineteen Eighty-Four"])
    assert result.exit_code == 0
    book = cli_lib.get_book("2")
    assert book.title == "Nineteen Eighty-Four"
    assert book.genre == "Dystopian"
    assert book.loan.borrower == "Jane Smith"


def test_edit_unknown_book(cli_lib):
    result = runner.invoke(app, ["edit", "missing", "--title", "X"])
    assert result.exit_code == 1
    assert "Book with ID missing not found." in result.stdout


def test_show_book(cli_lib):
    result = runner.invoke(app, ["show", "1"])
    assert result.exit_code == 0
    assert "Title: To Kill a Mockingbird" in result.stdout
    assert "ISBN: 9780061120084" in result.stdout
    assert "Status: Available" in result.stdout


def test_remove_book(cli_lib, storage):
    result = runner.invoke(app, ["remove", "3"])
    assert result.exit_code == 0
    assert "Book with ID 3 has been removed." in result.stdout
    assert [r["id"] for r in json.loads(storage.get("library-books"))] == ["1", "2"]

    result = runner.invoke(app, ["remove", "3"])
    assert result.exit_code == 0
    assert "Book with ID 3 not found." in result.stdout


def test_checkout_with_default_return_date(cli_lib):
    result = runner.invoke(app, ["checkout", "1", "--borrower", "Alice"])
    assert result.exit_code == 0
    assert "return by 2024-03-15" in result.stdout
    assert cli_lib.get_book("1").loan.borrower == "Alice"


def test_checkout_rejects_past_return_date(cli_lib):
    result = runner.invoke(app, ["checkout", "1", "--borrower", "Alice", "--return-date", "2024-02-01"])
    assert result.exit_code == 1
    assert "Return date cannot be in the past" in result.stdout
    assert cli_lib.get_book("1").is_checked_out is False


def test_checkout_strict_mode(cli_lib):
    cli_lib.strict_checkout = True
    result = runner.invoke(app, ["checkout", "2", "--borrower", "Bob", "--return-date", "2024-03-20"])
    assert result.exit_code == 1
    assert "already checked out by Jane Smith" in result.stdout


def test_checkin(cli_lib):
    result = runner.invoke(app, ["checkin", "2"])
    assert result.exit_code == 0
    assert "Checked in: 1984" in result.stdout
    assert cli_lib.get_book("2").is_checked_out is False

    result = runner.invoke(app, ["checkin", "2"])
    assert "1984 is not checked out." in result.stdout


def test_stats(cli_lib):
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 3" in result.stdout
    assert "Available: 2 (67%)" in result.stdout
    assert "Checked Out: 1 (33%)" in result.stdout
    assert "  Classic: 2" in result.stdout


def test_export_and_import(cli_lib, storage, tmp_path):
    cli_lib.add_book("Dune", "Frank Herbert")
    result = runner.invoke(app, ["export", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    exported = tmp_path / "library-export-2024-03-01.json"
    assert exported.read_text(encoding="utf-8") == storage.get("library-books")

    cli_lib.delete_book("1")
    result = runner.invoke(app, ["import", str(exported)])
    assert result.exit_code == 0
    assert "Imported 4 books" in result.stdout
    assert [b.id for b in cli_lib.list_books()][:3] == ["1", "2", "3"]


def test_export_csv(cli_lib, tmp_path):
    result = runner.invoke(app, ["export", "--format", "csv", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    assert (tmp_path / "library-export-2024-03-01.csv").exists()


def test_import_invalid_file(cli_lib, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"a": 1}', encoding="utf-8")
    result = runner.invoke(app, ["import", str(bad)])
    assert result.exit_code == 1
    assert "must contain an array of books" in result.stdout
    assert len(cli_lib.list_books()) == 3


def test_reset(cli_lib):
    cli_lib.delete_book("1")
    result = runner.invoke(app, ["reset"], input="n\n")
    assert "Reset cancelled." in result.stdout
    assert len(cli_lib.list_books()) == 2

    result = runner.invoke(app, ["reset", "--yes"])
    assert result.exit_code == 0
    assert [b.id for b in cli_lib.list_books()] == ["1", "2", "3"]
    assert LibraryManager.get_instance() is cli_lib


def test_edit_keeps_nonconforming_stored_fields(cli_lib, storage):
    storage.set("library-books", json.dumps([
        {"id": "x", "title": "Old", "author": "A", "isbn": "N/A", "coverUrl": "covers/old.png",
         "isCheckedOut": False},
    ]))
    cli_lib.reload()

    result = runner.invoke(app, ["edit", "x", "--title", "New"])
    assert result.exit_code == 0
    book = cli_lib.get_book("x")
    assert book.title == "New"
    assert book.isbn == "N/A"
    assert book.cover_url == "covers/old.png"

    result = runner.invoke(app, ["edit", "x", "--isbn", "N/A"])
    assert result.exit_code == 1
    assert "isbn: ISBN must be 10 or 13 digits" in result.stdout
