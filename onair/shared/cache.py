"""In-process TTL cache with stale fallback.

Uses cachetools.TTLCache for zero-infrastructure caching. Each API worker
keeps its own instances; there is no cross-process sharing, so a count may
differ between workers by at most one TTL.

When the store is unavailable, reads fall back to stale (TTL-expired)
values so the live pages keep showing the last known numbers.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

from onair.shared.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Sentinel object to distinguish "not in cache" from cached None values
_MISSING = object()

T = TypeVar("T")


class AsyncTTLCache:
    """Async-aware TTL cache with a stale fallback store.

    Two tiers:
      1. ``_cache`` (TTLCache): fresh data, governed by *ttl*.
      2. ``_stale`` (OrderedDict, LRU, bounded by *maxsize*): last-known-good
         values that survive TTL expiry. Used **only** when the store is
         unreachable.
    """

    def __init__(
        self,
        maxsize: int = 128,
        ttl: float = 60.0,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._maxsize = maxsize
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    # --- lock management (bounded) ---

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
            if len(self._locks) > self._maxsize * 2:
                stale_keys = set(self._stale)
                for k, lock in list(self._locks.items()):
                    # A held lock belongs to a loader still in flight
                    if k not in stale_keys and k not in self._cache and not lock.locked():
                        del self._locks[k]
        return self._locks[key]

    # --- primary (fresh) operations ---

    def get(self, key: str) -> Any:
        """Return fresh value or ``_MISSING``."""
        return self._cache.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        """Write to both fresh cache and stale store."""
        self._cache[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Remove from fresh cache; stale store keeps the value."""
        self._cache.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every fresh entry whose key starts with *prefix*."""
        keys = [k for k in list(self._cache.keys()) if k.startswith(prefix)]
        for key in keys:
            self._cache.pop(key, None)
        return len(keys)

    def clear(self) -> None:
        """Clear fresh cache; stale store is preserved."""
        self._cache.clear()

    # --- stale fallback ---

    def get_stale(self, key: str) -> Any:
        """Return last-known-good value or ``_MISSING``."""
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value

    async def load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the fresh value for *key*, calling *loader* on a miss.

        Concurrent misses for the same key share one loader call. When the
        loader raises ``StoreUnavailable`` the stale value is returned if one
        exists; otherwise the error propagates.
        """
        result = self.get(key)
        if result is not _MISSING:
            return result

        async with self._get_lock(key):
            result = self.get(key)
            if result is not _MISSING:
                return result
            try:
                result = await loader()
            except StoreUnavailable as exc:
                stale = self.get_stale(key)
                if stale is _MISSING:
                    raise
                logger.warning("Returning stale data for %s (%s)", key, exc)
                return stale
            self.set(key, result)
            return result

    @property
    def size(self) -> int:
        return len(self._cache)

    @property
    def stale_size(self) -> int:
        return len(self._stale)
