"""In-memory response caching for secrets downloads.

This package provides :class:`CacheStore`, a lock-guarded map of cache
entries with per-entry TTL, :class:`CacheRegistry`, which owns one store
per backing-store identity, and :func:`cache_key`, which derives the key a
download request is cached under.

The cache is consumed by
:class:`~dopplersecrets.client.secrets_service.SecretsService` and is
controlled by the ``cache`` section of a store configuration
(:class:`~dopplersecrets.models.CacheConfig`).  Nothing is persisted; the
cache does not survive a process restart.
"""

from dopplersecrets.cache.keys import cache_key
from dopplersecrets.cache.registry import CacheRegistry
from dopplersecrets.cache.store import DEFAULT_CACHE_TTL, CacheEntry, CacheStore

__all__ = ["CacheEntry", "CacheRegistry", "CacheStore", "DEFAULT_CACHE_TTL", "cache_key"]
