from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from catalog.book import BookCondition, BookData, BookRecord
from catalog.cache_manager import invalidate_views
from catalog.config import settings
from catalog.storage import BookStore, JsonFileStore

logger = logging.getLogger(__name__)

BOOKS_VIEW = "/books"


class MutationResult(str, Enum):
    """Outcome of an id-keyed mutation."""

    UPDATED = "updated"
    NOT_FOUND = "not_found"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _book_view(book_id: str) -> str:
    return f"{BOOKS_VIEW}/{book_id}"


class Library:
    """Catalog operations over a whole-collection store.

    Every call loads the full collection, changes it in memory and writes it
    back. Nothing is cached on the instance, so separate Library objects over
    the same file always see each other's completed writes.
    """

    def __init__(self, data_file: Optional[str | Path] = None, *, store: Optional[BookStore] = None,
                 on_change: Optional[Callable[[List[str]], Any]] = invalidate_views) -> None:
        if store is None:
            store = JsonFileStore(data_file or settings.data_file)
        self.store = store
        self.on_change = on_change

    # ------------------------- Queries ------------------------- #
    def list_books(self) -> List[BookRecord]:
        """All books, removed ones included."""
        return self.store.load_all()

    def list_active_books(self) -> List[BookRecord]:
        return [book for book in self.store.load_all() if book.is_active]

    def find_book(self, book_id: str) -> Optional[BookRecord]:
        """Look a book up by id. Removed books are still returned."""
        return self._find(self.store.load_all(), book_id)

    def data_version(self):
        """Version token of the backing store; see BookStore.version."""
        return self.store.version()

    def get_statistics(self) -> Dict[str, Any]:
        books = self.store.load_all()
        active = [b for b in books if b.is_active]
        checked_out = sum(1 for b in active if b.is_checked_out)
        conditions = Counter(b.condition_name for b in active)
        by_condition = {c.value: conditions.pop(c.value, 0) for c in BookCondition}
        # Stored values outside the enum are reported under their own name
        by_condition.update(conditions)
        return {
            "total_books": len(books),
            "active_books": len(active),
            "inactive_books": len(books) - len(active),
            "checked_out": checked_out,
            "available": len(active) - checked_out,
            "by_condition": by_condition,
        }

    # ------------------------- Mutations ------------------------- #
    def add_book(self, data: BookData) -> BookRecord:
        """Create a new, available, active book and persist it."""
        books = self.store.load_all()
        book = BookRecord(
            # Ids are sequential; not collision safe if the file is pruned by hand
            id=str(len(books) + 1),
            title=data.title,
            author=data.author,
            isbn=data.isbn,
            published_year=data.published_year,
            genre=data.genre,
            description=data.description,
            condition=data.condition,
            is_checked_out=False,
            is_active=True,
            added_date=_now(),
        )
        books.append(book)
        self._save(books, [BOOKS_VIEW])
        logger.info("Added book %s: %s", book.id, book.title)
        return book

    def update_book(self, book_id: str, data: BookData) -> MutationResult:
        """Replace the editable fields of a book."""
        books = self.store.load_all()
        book = self._find(books, book_id)
        if book is None:
            return MutationResult.NOT_FOUND
        book.apply(data)
        self._save(books, [_book_view(book_id), BOOKS_VIEW])
        return MutationResult.UPDATED

    def toggle_checkout(self, book_id: str) -> MutationResult:
        """Check a book out, or back in if it is already out."""
        books = self.store.load_all()
        book = self._find(books, book_id)
        if book is None:
            return MutationResult.NOT_FOUND
        book.is_checked_out = not book.is_checked_out
        book.last_checked_out_date = _now() if book.is_checked_out else None
        self._save(books, [_book_view(book_id), BOOKS_VIEW])
        logger.info("Book %s is now %s", book_id, book.status.lower())
        return MutationResult.UPDATED

    def mark_inactive(self, book_id: str) -> MutationResult:
        """Soft delete: the record stays in the file with is_active=False."""
        books = self.store.load_all()
        book = self._find(books, book_id)
        if book is None:
            return MutationResult.NOT_FOUND
        book.is_active = False
        self._save(books, [_book_view(book_id), BOOKS_VIEW])
        logger.info("Marked book %s inactive", book_id)
        return MutationResult.UPDATED

    def update_condition(self, book_id: str, condition: BookCondition | str) -> MutationResult:
        condition = BookCondition(condition)
        books = self.store.load_all()
        book = self._find(books, book_id)
        if book is None:
            return MutationResult.NOT_FOUND
        book.condition = condition
        self._save(books, [_book_view(book_id), BOOKS_VIEW])
        return MutationResult.UPDATED

    # ------------------------- Helpers ------------------------- #
    @staticmethod
    def _find(books: Iterable[BookRecord], book_id: str) -> Optional[BookRecord]:
        for book in books:
            if book.id == book_id:
                return book
        return None

    def _save(self, books: List[BookRecord], changed_views: List[str]) -> None:
        self.store.save_all(books)
        if self.on_change is not None:
            self.on_change(changed_views)
