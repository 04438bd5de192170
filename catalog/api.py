import logging
from datetime import datetime, timezone
from typing import Dict, List

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from catalog.book import BookCondition, BookData
from catalog.cache_manager import cache_manager
from catalog.config import settings
from catalog.library import Library, MutationResult
from catalog.storage import StoreWriteError

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    if request.method == "GET" and request.url.path.startswith("/books"):
        response.headers["Cache-Control"] = "no-cache"
    return response


@app.exception_handler(StoreWriteError)
async def store_write_error_handler(request: Request, exc: StoreWriteError):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# --- Library dependency ---
_library = Library()


def get_library() -> Library:
    """Dependency returning the catalog; tests override it with a temp-file library."""
    return _library


# --- Models ---
class BookModel(BaseModel):
    id: str
    title: str
    author: str
    isbn: str
    publishedYear: int | None = None
    genre: str
    description: str
    condition: str
    isCheckedOut: bool
    isActive: bool
    addedDate: str
    lastCheckedOutDate: str | None = None


class BookCreateModel(BaseModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    isbn: str = Field(min_length=1)
    publishedYear: int
    genre: str = Field(min_length=1)
    description: str = Field(min_length=1)
    condition: BookCondition = BookCondition.GOOD


class ConditionUpdateModel(BaseModel):
    condition: str


class StatsModel(BaseModel):
    total_books: int
    active_books: int
    inactive_books: int
    checked_out: int
    available: int
    by_condition: Dict[str, int]


# --- Helpers ---
def _view_key(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def _cached_view(key: str, library: Library):
    """Return a cached payload only if the data file has not changed since it was stored."""
    entry = cache_manager.get(key)
    if entry is None:
        return None
    version, payload = entry
    if version != library.data_version():
        cache_manager.delete(key)
        return None
    return payload


def _book_or_404(library: Library, book_id: str) -> BookModel:
    book = library.find_book(book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found.")
    return BookModel(**book.to_dict())


def _require_found(result: MutationResult) -> None:
    if result is MutationResult.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Book not found.")


# --- Health ---
@app.get("/health")
def health(library: Library = Depends(get_library)):
    books = library.list_books()
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_books": len(books),
        "active_books": sum(1 for b in books if b.is_active),
    }


# --- Books ---
@app.get("/books", response_model=List[BookModel])
def get_books(request: Request,
              include_inactive: bool = Query(False, description="Include removed books"),
              library: Library = Depends(get_library)):
    """List active books, or every book with include_inactive=true."""
    key = _view_key(request)
    cached = _cached_view(key, library)
    if cached is not None:
        return cached
    version = library.data_version()
    books = library.list_books() if include_inactive else library.list_active_books()
    payload = [BookModel(**b.to_dict()) for b in books]
    cache_manager.set(key, (version, payload))
    return payload


@app.get("/books/{book_id}", response_model=BookModel)
def get_book(book_id: str, request: Request, library: Library = Depends(get_library)):
    key = _view_key(request)
    cached = _cached_view(key, library)
    if cached is not None:
        return cached
    version = library.data_version()
    payload = _book_or_404(library, book_id)
    cache_manager.set(key, (version, payload))
    return payload


@app.post("/books", response_model=BookModel, status_code=201)
def add_book(payload: BookCreateModel, library: Library = Depends(get_library)):
    book = library.add_book(BookData.from_dict(payload.model_dump()))
    return BookModel(**book.to_dict())


@app.put("/books/{book_id}", response_model=BookModel)
def update_book(book_id: str, payload: BookCreateModel, library: Library = Depends(get_library)):
    """Replace the editable fields of a book; checkout state and dates are kept."""
    _require_found(library.update_book(book_id, BookData.from_dict(payload.model_dump())))
    return _book_or_404(library, book_id)


@app.post("/books/{book_id}/checkout", response_model=BookModel)
def toggle_checkout(book_id: str, library: Library = Depends(get_library)):
    """Check the book out, or check it back in if it is already out."""
    _require_found(library.toggle_checkout(book_id))
    return _book_or_404(library, book_id)


@app.patch("/books/{book_id}/condition", response_model=BookModel)
def update_condition(book_id: str, payload: ConditionUpdateModel, library: Library = Depends(get_library)):
    _require_found(library.update_condition(book_id, payload.condition))
    return _book_or_404(library, book_id)


@app.delete("/books/{book_id}")
def remove_book(book_id: str, library: Library = Depends(get_library)):
    """Soft delete: the book disappears from listings but stays retrievable by id."""
    _require_found(library.mark_inactive(book_id))
    return {"message": "Book removed.", "id": book_id}


@app.get("/stats", response_model=StatsModel)
def get_library_stats(library: Library = Depends(get_library)):
    return library.get_statistics()
