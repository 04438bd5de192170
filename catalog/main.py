import logging
import subprocess
import sys
import webbrowser
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm

from catalog.book import BookCondition, BookData
from catalog.config import settings
from catalog.library import Library, MutationResult
from catalog.storage import StoreWriteError
from catalog.ui_helpers import (
    set_output_mode,
    print_book_result,
    print_list_result,
    print_stats_result,
)

APP_NAME = "Library Catalog CLI"

console = Console()

# Options set by the global callback
_state = {"data_file": None}

app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    data_file: Optional[str] = typer.Option(
        None,
        "--data-file",
        help="Catalog JSON file (default: LIBRARY_DATA_FILE or data/books.json)",
    ),
):
    """Global CLI options (output mode, catalog file)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)
    _state["data_file"] = data_file


def get_library() -> Library:
    return Library(_state["data_file"] or settings.data_file)


def _not_found(book_id: str) -> None:
    print(f"Book with ID {book_id} not found.")


def _run_mutation(book_id: str, mutate, success_message: str) -> None:
    """Run an id-keyed mutation and report the outcome."""
    try:
        result = mutate()
    except StoreWriteError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    if result is MutationResult.NOT_FOUND:
        _not_found(book_id)
    else:
        print(success_message)


@app.command("list")
def cli_list(show_all: bool = typer.Option(False, "--all", "-a", help="Include removed books")):
    """List books in the catalog (removed books are hidden unless --all)."""
    lib = get_library()
    books = lib.list_books() if show_all else lib.list_active_books()
    print_list_result(books)


@app.command("show")
def cli_show(book_id: str):
    """Show the details of one book, including removed ones."""
    book = get_library().find_book(book_id)
    if book:
        print_book_result(book)
    else:
        _not_found(book_id)


@app.command("add")
def cli_add(
    title: str = typer.Option(..., prompt=True),
    author: str = typer.Option(..., prompt=True),
    isbn: str = typer.Option(..., prompt=True),
    year: int = typer.Option(..., "--year", prompt="Published year"),
    genre: str = typer.Option(..., prompt=True),
    description: str = typer.Option(..., prompt=True),
    condition: BookCondition = typer.Option(BookCondition.GOOD, case_sensitive=False),
):
    """Add a new book to the catalog."""
    data = BookData(title=title, author=author, isbn=isbn, published_year=year,
                    genre=genre, description=description, condition=condition)
    try:
        book = get_library().add_book(data)
    except StoreWriteError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    print(f"Successfully added: {book.title} by {book.author} (ID: {book.id})")


@app.command("edit")
def cli_edit(
    book_id: str,
    title: Optional[str] = typer.Option(None),
    author: Optional[str] = typer.Option(None),
    isbn: Optional[str] = typer.Option(None),
    year: Optional[int] = typer.Option(None, "--year"),
    genre: Optional[str] = typer.Option(None),
    description: Optional[str] = typer.Option(None),
    condition: Optional[BookCondition] = typer.Option(None, case_sensitive=False),
):
    """Edit a book's details; fields that are not given keep their current value."""
    lib = get_library()
    book = lib.find_book(book_id)
    if not book:
        _not_found(book_id)
        return
    try:
        data = BookData(
            title=title if title is not None else book.title,
            author=author if author is not None else book.author,
            isbn=isbn if isbn is not None else book.isbn,
            published_year=year if year is not None else book.published_year,
            genre=genre if genre is not None else book.genre,
            description=description if description is not None else book.description,
            condition=condition if condition is not None else book.condition,
        )
    except (TypeError, ValueError) as e:
        # Stored records may lack a year or carry an unknown condition
        print(f"Error: {e}. Pass the value explicitly to edit book {book_id}.")
        raise typer.Exit(code=1)
    _run_mutation(book_id, lambda: lib.update_book(book_id, data), f"Book {book_id} updated.")


@app.command("checkout")
def cli_checkout(book_id: str):
    """Check a book out, or check it back in if it is already out."""
    lib = get_library()
    try:
        result = lib.toggle_checkout(book_id)
    except StoreWriteError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    if result is MutationResult.NOT_FOUND:
        _not_found(book_id)
        return
    book = lib.find_book(book_id)
    action = "checked out" if book and book.is_checked_out else "checked in"
    print(f"Book {book_id} {action}.")


@app.command("condition")
def cli_condition(book_id: str, condition: BookCondition = typer.Argument(..., case_sensitive=False)):
    """Record the physical condition of a book."""
    lib = get_library()
    _run_mutation(book_id, lambda: lib.update_condition(book_id, condition),
                  f"Book {book_id} condition set to {condition.value}.")


@app.command("remove")
def cli_remove(book_id: str, yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt")):
    """Remove a book from the catalog (it stays on file as inactive)."""
    lib = get_library()
    book = lib.find_book(book_id)
    if not book:
        _not_found(book_id)
        return
    if not yes:
        console.print(Panel(
            f"[bold]Title:[/] {escape(book.title)}\n"
            f"[bold]Author:[/] {escape(book.author)}",
            title="📚 Remove Book",
            border_style="yellow",
        ))
        if not Confirm.ask(f"Are you sure you want to remove \"{escape(book.title)}\" from the library?", default=False):
            print("Removal cancelled.")
            return
    _run_mutation(book_id, lambda: lib.mark_inactive(book_id), f"Book with ID {book_id} has been removed.")


@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(get_library().get_statistics())


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
    open_browser: bool = typer.Option(True, "--browser/--no-browser"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/docs"
    print(f"Starting API on {url}")
    if open_browser:
        try:
            webbrowser.open(url)
        except webbrowser.Error:
            console.print("[yellow]Could not open a web browser automatically.[/]")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "catalog.api:app",
        "--host", host,
        "--port", str(port),
    ]
    try:
        subprocess.run(args, check=False)
    except KeyboardInterrupt:
        console.print("[dim]Server stopped.[/]")


def main():
    app()


if __name__ == "__main__":
    main()
