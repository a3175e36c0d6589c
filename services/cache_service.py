"""
services/cache_service.py
-------------------------
Read-through cache for per-owner read models (bill lists, settings, ...).

One CacheService instance is created at startup and injected into the
services, request handlers and scheduler. Entries are keyed by
(owner_id, resource_kind) and expire after a fixed TTL. Every mutating
service call invalidates the affected kinds before it returns, so the
next read in this process always reloads.

Limitation: the cache is process-local. With several processes, another
process's writes only become visible here once the TTL has elapsed.
"""

import threading
import time
from typing import Any, Callable, Hashable, Optional

from config import CACHE_TTL_SECONDS
from utils.logger import get_logger

logger = get_logger(__name__)

# Resource kinds
BILLS = "bills"
INCOMES = "incomes"
PAYMENTS = "payments"
SETTINGS = "settings"
CATEGORIES = "categories"
TEMPLATES = "templates"

ALL_KINDS = (BILLS, INCOMES, PAYMENTS, SETTINGS, CATEGORIES, TEMPLATES)

_MISS = object()


class CacheService:
    """
    Lock-protected TTL map.

    Usage:
        cache = CacheService()
        bills = cache.get_or_load((owner_id, BILLS), lambda: repo.get_all(owner_id))
        ...
        cache.invalidate((owner_id, BILLS))
    """

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}
        self._versions: dict[Hashable, int] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss or an expired entry."""
        value = self._lookup(key)
        return default if value is _MISS else value

    def set(self, key: Hashable, value: Any) -> None:
        """Store ``value`` until the TTL elapses or the key is invalidated."""
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """
        Read-through access: return the cached value, or call ``loader``,
        cache its result and return it.

        The loader runs outside the lock so slow queries do not block other keys.
        If the key is invalidated while the loader runs, the loaded value is
        returned but not cached: it may predate the invalidating write.
        """
        value = self._lookup(key)
        if value is not _MISS:
            return value
        with self._lock:
            version = self._versions.get(key, 0)
        value = loader()
        with self._lock:
            if self._versions.get(key, 0) == version:
                self._entries[key] = (self._clock() + self.ttl_seconds, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        """Drop one entry."""
        with self._lock:
            self._drop(key)

    def invalidate_many(self, owner_id: int, *kinds: str) -> None:
        """Drop several resource kinds of one owner."""
        with self._lock:
            for kind in kinds:
                self._drop((owner_id, kind))
        logger.debug(f"Invalidated {', '.join(kinds)} for owner {owner_id}")

    def invalidate_owner(self, owner_id: int) -> None:
        """Drop every resource kind of one owner."""
        self.invalidate_many(owner_id, *ALL_KINDS)

    def clear(self) -> None:
        with self._lock:
            for key in list(self._entries):
                self._drop(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _drop(self, key: Hashable) -> None:
        # caller holds the lock
        self._entries.pop(key, None)
        self._versions[key] = self._versions.get(key, 0) + 1

    def _lookup(self, key: Hashable) -> Any:
        with self._lock:
            entry: Optional[tuple[float, Any]] = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return _MISS
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return _MISS
            self.hits += 1
            return value
