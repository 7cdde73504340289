"""Per-store ownership of :class:`~dopplersecrets.cache.store.CacheStore` objects.

A provider is rebuilt for every operation, but its cache has to outlive it.
:class:`CacheRegistry` holds one store per backing-store identity so that
different stores never share entries (nor collide on equal key strings),
and is passed explicitly to whoever builds providers.  There is no
module-level registry.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from dopplersecrets.cache.store import CacheStore

logger = logging.getLogger(__name__)


class CacheRegistry:
    """Thread-safe map of store identity -> :class:`CacheStore`.

    Example::

        registry = CacheRegistry()
        cache = registry.configure("store-uid", enabled=True, ttl_seconds=30)
        assert registry.get("store-uid") is cache
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stores: dict[str, CacheStore] = {}

    def get(self, store_id: str) -> CacheStore:
        """Return the store for *store_id*, creating a disabled one on first use."""
        with self._lock:
            store = self._stores.get(store_id)
            if store is None:
                logger.debug("Creating response cache for store %s", store_id)
                store = CacheStore()
                self._stores[store_id] = store
            return store

    def configure(
        self,
        store_id: str,
        enabled: bool,
        ttl_seconds: Optional[float] = None,
    ) -> CacheStore:
        """Apply a store's cache settings and return its cache.

        Enabling keeps any entries already present.  ``ttl_seconds=None``
        leaves the current TTL in place.
        """
        store = self.get(store_id)
        if enabled:
            store.enable()
            if ttl_seconds is not None:
                store.set_ttl(ttl_seconds)
        else:
            store.disable()
        return store

    def discard(self, store_id: str) -> None:
        """Drop and empty the cache of a store that no longer exists."""
        with self._lock:
            store = self._stores.pop(store_id, None)
        if store is not None:
            store.clear()
            logger.debug("Discarded response cache for store %s", store_id)

    def __contains__(self, store_id: object) -> bool:
        with self._lock:
            return store_id in self._stores

    def __len__(self) -> int:
        with self._lock:
            return len(self._stores)
