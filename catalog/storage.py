"""
JSON-file persistence for the book collection.

The store owns all access to the backing file. Callers hand over and receive
whole-collection snapshots; there is no partial update and no locking, so two
overlapping load/save cycles end with the last writer's snapshot on disk.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Tuple

from catalog.book import BookRecord

logger = logging.getLogger(__name__)


class StoreWriteError(Exception):
    """Raised when the collection could not be written to the backing store."""


class BookStore(ABC):
    """Snapshot-in, snapshot-out contract for the book collection."""

    @abstractmethod
    def load_all(self) -> List[BookRecord]:
        """Return every stored record, or an empty list if the store is unreadable."""

    @abstractmethod
    def save_all(self, records: Iterable[BookRecord]) -> None:
        """Replace the stored collection. Raises StoreWriteError on failure."""

    def version(self):
        """Opaque token that changes whenever the stored collection does, or None if unknown."""
        return None


class JsonFileStore(BookStore):
    """Stores the collection as ``{"books": [...]}`` in a single JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load_all(self) -> List[BookRecord]:
        if not self.path.exists():
            logger.info("No catalog file at %s, starting with an empty collection", self.path)
            return []
        try:
            with self.path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
            items = list(payload["books"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            # An unreadable catalog is reported as empty rather than failing the caller
            logger.warning("Couldn't read books from %s: %s", self.path, e)
            return []

        books = []
        for position, item in enumerate(items):
            try:
                books.append(BookRecord.from_dict(item))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                # One damaged record does not hide the rest of the catalog
                logger.warning("Skipping unreadable book record #%d in %s: %r", position, self.path, e)
        return books

    def version(self) -> Tuple[int, int] | None:
        # Writes from other processes (the CLI) bump the mtime too
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def save_all(self, records: Iterable[BookRecord]) -> None:
        payload = {"books": [record.to_dict() for record in records]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Couldn't save books to %s: %s", self.path, e)
            raise StoreWriteError("Failed to save books") from e
        logger.debug("Saved %d books to %s", len(payload["books"]), self.path)
