import os
import json
from typing import List, Any, Dict, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from catalog.book import BookRecord, format_date

# Environment variable controlling CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _last_checked_out(book: BookRecord) -> Optional[str]:
    if book.last_checked_out_date is None:
        return None
    return format_date(book.last_checked_out_date)


def print_list_result(books: List[BookRecord]) -> None:
    """Print books in the current output mode.
    - plain: 'ID - Title by Author [Status]' lines, or 'No books in library.'
    - json: JSON array of stored book objects
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Condition")
        table.add_column("Status")
        table.add_column("Last Checked Out", style="dim")
        for b in books:
            status = b.status if b.is_active else f"{b.status} (removed)"
            table.add_row(b.id, b.title, b.author, b.condition_name, status, _last_checked_out(b) or "-")
        _console.print(table)
    else:
        for b in books:
            suffix = "" if b.is_active else " (removed)"
            print(f"{b.id} - {b.title} by {b.author} [{b.status}]{suffix}")


def print_book_result(book: BookRecord) -> None:
    """Print a single book's details in the current output mode."""
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(book.to_dict(), ensure_ascii=False))
        return

    lines = [
        f"Title: {book.title}",
        f"Author: {book.author}",
        f"ISBN: {book.isbn}",
        f"Published: {book.published_year}",
        f"Genre: {book.genre}",
        f"Condition: {book.condition_name}",
        f"Status: {book.status}",
        f"Added: {format_date(book.added_date)}",
    ]
    last = _last_checked_out(book)
    if last:
        lines.append(f"Last Checked Out: {last}")
    if not book.is_active:
        lines.append("Removed: yes")
    lines.append(f"Description: {book.description}")

    if mode == "rich":
        _console.print(Panel.fit("\n".join(lines), title=f"📖 Book {book.id}", border_style="blue"))
    else:
        print("Book Found")
        for line in lines:
            print(line)


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print catalog statistics in the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
        return

    rows = [
        ("Total Books", stats.get("total_books", 0)),
        ("Active Books", stats.get("active_books", 0)),
        ("Removed Books", stats.get("inactive_books", 0)),
        ("Checked Out", stats.get("checked_out", 0)),
        ("Available", stats.get("available", 0)),
    ]
    if mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {value}" for label, value in rows)
        by_condition = stats.get("by_condition") or {}
        if by_condition:
            content += "\n" + "\n".join(f"  {name}: {count}" for name, count in by_condition.items())
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for label, value in rows:
            print(f"{label}: {value}")
