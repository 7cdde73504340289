"""dopplersecrets -- a cache-aware client for the Doppler secrets API.

This package talks to Doppler's v3 API while keeping redundant traffic low:
downloads are revalidated with ``If-None-Match`` against an in-memory,
per-store cache, and pushes only send the secrets whose values actually
changed.

Typical usage::

    from dopplersecrets.cache import CacheRegistry
    from dopplersecrets.models import StoreConfig
    from dopplersecrets.provider import SecretsProvider

    registry = CacheRegistry()
    store = StoreConfig(name="backend", project="api", config="prd")
    provider = SecretsProvider(store, token, cache_registry=registry)
    value = provider.get_secret("DATABASE_URL")

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: Store profiles, environment overrides and credential sources.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    provider: Store-level facade over the secrets service.
"""

__version__ = "0.3.0"
