import json
import logging
from datetime import datetime, timezone

import pytest

from catalog.book import BookCondition, BookRecord
from catalog.storage import JsonFileStore, StoreWriteError


def _book(book_id="1", **overrides):
    fields = dict(
        id=book_id, title=f"Book {book_id}", author="Author", isbn="000-0",
        published_year=2000, genre="Fiction", description="...",
        condition=BookCondition.GOOD, added_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return BookRecord(**fields)


def test_missing_file_loads_as_empty(tmp_path):
    store = JsonFileStore(tmp_path / "nope.json")
    assert store.load_all() == []


def test_save_writes_books_object_with_two_space_indent(tmp_path):
    path = tmp_path / "books.json"
    JsonFileStore(path).save_all([_book("1"), _book("2")])

    text = path.read_text(encoding="utf-8")
    payload = json.loads(text)
    assert list(payload) == ["books"]
    assert [b["id"] for b in payload["books"]] == ["1", "2"]
    assert '\n  "books": [' in text


def test_save_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "books.json"
    JsonFileStore(path).save_all([_book()])
    assert path.exists()


def test_round_trip_is_idempotent_at_day_granularity(tmp_path):
    path = tmp_path / "books.json"
    store = JsonFileStore(path)
    store.save_all([
        _book("1", added_date=datetime(2024, 5, 6, 18, 45, tzinfo=timezone.utc)),
        _book("2", is_checked_out=True, last_checked_out_date=datetime(2024, 6, 1, 8, tzinfo=timezone.utc)),
    ])
    first = store.load_all()
    first_text = path.read_text(encoding="utf-8")

    store.save_all(first)
    assert store.load_all() == first
    assert path.read_text(encoding="utf-8") == first_text


def test_load_preserves_insertion_order(tmp_path):
    store = JsonFileStore(tmp_path / "books.json")
    store.save_all([_book("3"), _book("1"), _book("2")])
    assert [b.id for b in store.load_all()] == ["3", "1", "2"]


@pytest.mark.parametrize("content", [
    "{not json",
    "[]",
    '{"shelves": []}',
])
def test_unreadable_store_is_reported_as_empty(tmp_path, caplog, content):
    path = tmp_path / "books.json"
    path.write_text(content, encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="catalog.storage"):
        assert JsonFileStore(path).load_all() == []
    assert "Couldn't read books" in caplog.text


@pytest.mark.parametrize("damaged", [
    {"title": "no id", "addedDate": "2024-01-01"},
    {"id": "9", "title": "no date"},
    {"id": "9", "title": "bad date", "addedDate": "yesterday"},
    "not an object",
])
def test_damaged_record_is_skipped_and_the_rest_load(tmp_path, caplog, damaged):
    path = tmp_path / "books.json"
    good = [_book("1").to_dict(), _book("2").to_dict()]
    path.write_text(json.dumps({"books": [good[0], damaged, good[1]]}), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="catalog.storage"):
        books = JsonFileStore(path).load_all()
    assert [b.id for b in books] == ["1", "2"]
    assert "Skipping unreadable book record #1" in caplog.text


def test_version_tracks_file_changes(tmp_path):
    store = JsonFileStore(tmp_path / "books.json")
    assert store.version() is None

    store.save_all([_book("1")])
    first = store.version()
    store.save_all([_book("1"), _book("2")])
    assert first is not None
    assert store.version() != first


def test_write_failure_is_raised(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    store = JsonFileStore(blocker / "books.json")

    with pytest.raises(StoreWriteError, match="Failed to save books") as exc_info:
        store.save_all([_book()])
    assert isinstance(exc_info.value.__cause__, OSError)
