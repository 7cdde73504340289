"""In-memory, lock-guarded cache of download responses with per-entry TTL.

:class:`CacheStore` maps cache keys (see :func:`~dopplersecrets.cache.keys.cache_key`)
to :class:`CacheEntry` records holding the response ETag, the payload, and
the time the payload was last fetched.  It knows nothing about HTTP; the
:class:`~dopplersecrets.client.secrets_service.SecretsService` decides what
to do with an entry.

Lock discipline: a single :class:`threading.Lock` guards the map and the
settings.  It is held only for the duration of a dict access, never while a
caller talks to the network, so concurrent callers may fetch the same key
at the same time.

Entries are never evicted.  An expired entry stays in memory until the next
successful fetch for the same key overwrites it; :meth:`CacheStore.expired`
is evaluated at read time.  Disabled stores report every key as missing and
ignore writes.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_CACHE_TTL = 10.0
"""TTL in seconds applied when the store configuration does not set one."""


@dataclass(frozen=True)
class CacheEntry:
    """One cached response.

    Attributes:
        etag: The ETag the API returned with the payload (may be empty).
        data: The cached payload, opaque to the store.
        last_checked_at: Clock reading taken when the payload was fetched.
        ttl: TTL in seconds captured from the store at write time.
    """

    etag: str
    data: Any
    last_checked_at: float
    ttl: float


class CacheStore:
    """Concurrency-safe keyed store of :class:`CacheEntry` objects.

    Args:
        enabled: Whether reads and writes are honoured.
        ttl: TTL in seconds for entries written from now on.
        clock: Monotonic time source, injectable for tests.

    Example::

        store = CacheStore(enabled=True, ttl=30)
        store.write("api:prd:...", '"etag-1"', response)
        entry = store.read("api:prd:...")
        if entry is not None and not store.expired(entry):
            ...
    """

    def __init__(
        self,
        enabled: bool = False,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._enabled = enabled
        self._ttl = float(ttl)
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    @property
    def ttl(self) -> float:
        with self._lock:
            return self._ttl

    def set_ttl(self, seconds: float) -> None:
        """Set the TTL for subsequent writes.

        Entries already in the store keep the TTL they were written with.
        """
        with self._lock:
            self._ttl = float(seconds)

    # ------------------------------------------------------------------ #
    # Entries
    # ------------------------------------------------------------------ #

    def read(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for *key*, expired or not.

        Returns ``None`` on a miss or when the store is disabled.
        """
        with self._lock:
            if not self._enabled:
                return None
            return self._entries.get(key)

    def write(
        self,
        key: str,
        etag: str,
        data: Any,
        checked_at: Optional[float] = None,
    ) -> None:
        """Insert or replace the entry for *key* using the current TTL.

        Args:
            key: Cache key.
            etag: ETag returned with *data*.
            data: Payload to cache.
            checked_at: Fetch time; defaults to the store clock.
        """
        if checked_at is None:
            checked_at = self._clock()
        with self._lock:
            if not self._enabled:
                return
            self._entries[key] = CacheEntry(
                etag=etag, data=data, last_checked_at=checked_at, ttl=self._ttl,
            )

    def expired(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        """Return ``True`` once more than ``entry.ttl`` seconds have passed since the fetch."""
        if now is None:
            now = self._clock()
        return now - entry.last_checked_at > entry.ttl

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Return ``enabled``, ``size`` and ``ttl_seconds`` for diagnostics."""
        with self._lock:
            return {
                "enabled": self._enabled,
                "size": len(self._entries),
                "ttl_seconds": self._ttl,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
