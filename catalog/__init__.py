"""Library Catalog - Core Package

This package contains the catalog modules:
- Book records and loans (book.py)
- Catalog state manager (library.py)
- Sort options and sort keys (sorting.py)
- Key-value storage backends (database.py)
- Import/export of the stored payload (transfer.py)
- Input validation (validators.py)
- CLI output helpers (ui_helpers.py)
"""
