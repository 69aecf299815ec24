from datetime import date

import pytest

from catalog.database import MemoryStorage
from catalog.library import Library
from catalog.ui_helpers import OUTPUT_MODE_ENV

TODAY = date(2024, 3, 1)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def lib(storage):
    # Fixed clock so loan dates are predictable
    return Library(storage, key="library-books", today=lambda: TODAY, strict_checkout=False)


@pytest.fixture
def empty_lib(storage):
    storage.set("library-books", "[]")
    return Library(storage, key="library-books", today=lambda: TODAY, strict_checkout=False)


@pytest.fixture
def cli_lib(lib, monkeypatch):
    """Point the CLI at the test library and force plain output."""
    import main

    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    main.LibraryManager.set_instance(lib)
    yield lib
    main.LibraryManager.set_instance(None)
