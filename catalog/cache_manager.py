"""
In-memory response cache for catalog views.

Entries are keyed by view path (``/books``, ``/books/3``, optionally with a
query string) and dropped whenever a mutation reports the path as changed.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Optional

from catalog.config import settings

logger = logging.getLogger(__name__)

MAX_ENTRIES = 1000


class CacheManager:
    """Thread-safe TTL cache with prefix invalidation."""

    def __init__(self):
        self.memory_cache: Dict[str, tuple] = {}
        self.memory_cache_lock = threading.RLock()
        self.cache_stats = {
            'hits': 0,
            'misses': 0,
            'invalidations': 0,
        }

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self.memory_cache_lock:
            cache_entry = self.memory_cache.get(key)
            if cache_entry:
                value, expires_at = cache_entry
                if datetime.now() < expires_at:
                    self.cache_stats['hits'] += 1
                    return value
                del self.memory_cache[key]
            self.cache_stats['misses'] += 1
        return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value for ttl_seconds (defaults to settings.cache_ttl)."""
        ttl = settings.cache_ttl if ttl_seconds is None else ttl_seconds
        with self.memory_cache_lock:
            self.memory_cache[key] = (value, datetime.now() + timedelta(seconds=ttl))

            # Keep the cache bounded: drop the 10% closest to expiry
            if len(self.memory_cache) > MAX_ENTRIES:
                sorted_items = sorted(self.memory_cache.items(), key=lambda x: x[1][1])
                for k, _ in sorted_items[:MAX_ENTRIES // 10]:
                    self.memory_cache.pop(k, None)

    def delete(self, key: str) -> bool:
        with self.memory_cache_lock:
            return self.memory_cache.pop(key, None) is not None

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key starting with the pattern (a trailing ``*`` is ignored)."""
        prefix = pattern.replace('*', '')
        with self.memory_cache_lock:
            keys_to_remove = [key for key in self.memory_cache if key.startswith(prefix)]
            for key in keys_to_remove:
                self.memory_cache.pop(key, None)
            self.cache_stats['invalidations'] += len(keys_to_remove)
        return len(keys_to_remove)

    def clear(self) -> None:
        with self.memory_cache_lock:
            self.memory_cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self.memory_cache_lock:
            stats = self.cache_stats.copy()
            stats['memory_cache_size'] = len(self.memory_cache)
        total = stats['hits'] + stats['misses']
        stats['hit_ratio'] = stats['hits'] / total if total else 0.0
        return stats


# Global cache manager instance
cache_manager = CacheManager()


def invalidate_views(paths: Iterable[str]) -> int:
    """Change hook for Library: forget cached responses for the given view paths.

    ``/books`` also drops ``/books?include_inactive=...`` variants but leaves
    ``/books/<id>`` entries alone; those are named explicitly by the caller.
    """
    paths = list(paths)
    removed = 0
    for path in paths:
        if cache_manager.delete(path):
            removed += 1
        removed += cache_manager.invalidate_pattern(f"{path}?*")
    if removed:
        logger.debug("Invalidated %d cached views for %s", removed, list(paths))
    return removed
