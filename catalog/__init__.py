"""Library Catalog - core application package

This package contains the application modules:
- Data models (book.py)
- JSON collection store (storage.py)
- Catalog operations (library.py)
- Response cache and change notification (cache_manager.py)
- HTTP API endpoints (api.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
