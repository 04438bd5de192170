import pytest

from catalog.book import BookCondition, BookData
from catalog.cache_manager import cache_manager
from catalog.library import Library
from catalog.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    # The response cache and CLI output mode are process-wide
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    cache_manager.clear()
    yield
    cache_manager.clear()


@pytest.fixture
def data_file(tmp_path):
    # Unique catalog file per test
    return tmp_path / "data" / "books.json"


@pytest.fixture
def lib(data_file):
    return Library(data_file)


@pytest.fixture
def dune():
    return BookData(
        title="Dune",
        author="Herbert",
        isbn="978-0",
        published_year=1965,
        genre="SciFi",
        description="...",
        condition=BookCondition.GOOD,
    )
