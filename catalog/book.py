from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


class BookCondition(str, Enum):
    """Fixed set of physical conditions a copy can be in."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    DESTROYED = "DESTROYED"


def format_date(value: datetime) -> str:
    """Serialize a datetime as a UTC date-only string (YYYY-MM-DD)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


RECORD_KEYS = frozenset({
    "id", "title", "author", "isbn", "publishedYear", "genre", "description",
    "condition", "isCheckedOut", "isActive", "addedDate", "lastCheckedOutDate",
})


def parse_date(raw: str) -> datetime:
    """Parse a stored date string back into an aware UTC datetime.

    Accepts date-only strings and full timestamps, including the ``Z`` suffix
    written by JavaScript's ``toISOString()``.
    """
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _coerce_condition(value: BookCondition | str) -> BookCondition | str:
    # Unknown stored values are kept verbatim rather than failing the load
    try:
        return BookCondition(value)
    except ValueError:
        return value


@dataclass
class BookData:
    """Fields supplied by the user when adding or editing a book."""

    title: str
    author: str
    isbn: str
    published_year: int
    genre: str
    description: str
    condition: BookCondition = BookCondition.GOOD

    def __post_init__(self) -> None:
        self.condition = BookCondition(self.condition)
        self.published_year = int(self.published_year)

    @staticmethod
    def from_dict(data: dict) -> "BookData":
        return BookData(
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            published_year=data["publishedYear"],
            genre=data["genre"],
            description=data["description"],
            condition=data.get("condition", BookCondition.GOOD),
        )


class BookRecord:
    """A single book in the catalog, active or soft-deleted.

    Stored values outside the known condition set, and keys this version does
    not know about, are carried through unchanged so a rewrite never loses them.
    """

    def __init__(self, id: str, title: str, author: str, isbn: str, published_year: int,
                 genre: str, description: str, condition: BookCondition | str,
                 added_date: datetime, is_checked_out: bool = False, is_active: bool = True,
                 last_checked_out_date: datetime | None = None, extra: dict | None = None) -> None:
        self.id = id
        self.title = title
        self.author = author
        self.isbn = isbn
        self.published_year = published_year
        self.genre = genre
        self.description = description
        self.condition = _coerce_condition(condition)
        self.is_checked_out = is_checked_out
        self.is_active = is_active
        self.last_checked_out_date = last_checked_out_date
        self.added_date = added_date
        self.extra = extra or {}

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ID: {self.id})"

    def __repr__(self) -> str:  # pragma: no cover
        return f"BookRecord(id={self.id!r}, title={self.title!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BookRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    @property
    def status(self) -> str:
        return "Checked Out" if self.is_checked_out else "Available"

    @property
    def condition_name(self) -> str:
        """Condition as stored, including values outside BookCondition."""
        return self.condition.value if isinstance(self.condition, BookCondition) else str(self.condition)

    def apply(self, data: BookData) -> None:
        """Overwrite the user-editable fields; identity, flags and dates are kept."""
        self.title = data.title
        self.author = data.author
        self.isbn = data.isbn
        self.published_year = data.published_year
        self.genre = data.genre
        self.description = data.description
        self.condition = data.condition

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "publishedYear": self.published_year,
            "genre": self.genre,
            "description": self.description,
            "condition": self.condition_name,
            "isCheckedOut": self.is_checked_out,
            "isActive": self.is_active,
            "addedDate": format_date(self.added_date),
        })
        # Absent dates are left out of the stored object entirely
        if self.last_checked_out_date is not None:
            data["lastCheckedOutDate"] = format_date(self.last_checked_out_date)
        return data

    @staticmethod
    def from_dict(data: dict) -> "BookRecord":
        """Build a record from its stored form.

        Only ``id`` and a parsable ``addedDate`` are required; missing text
        fields load as empty strings. Raises KeyError/ValueError otherwise.
        """
        last_checked_out = data.get("lastCheckedOutDate")
        return BookRecord(
            id=str(data["id"]),
            title=data.get("title", ""),
            author=data.get("author", ""),
            isbn=data.get("isbn", ""),
            published_year=data.get("publishedYear"),
            genre=data.get("genre", ""),
            description=data.get("description", ""),
            condition=data.get("condition", ""),
            # Only real JSON booleans count; a stored "false" string is not True
            is_checked_out=data.get("isCheckedOut") is True,
            is_active=data.get("isActive", True) is True,
            last_checked_out_date=parse_date(last_checked_out) if last_checked_out else None,
            added_date=parse_date(data["addedDate"]),
            extra={k: v for k, v in data.items() if k not in RECORD_KEYS},
        )
