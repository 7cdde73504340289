"""Store-level facade over :class:`~dopplersecrets.client.SecretsService`.

A :class:`SecretsProvider` is built for one
:class:`~dopplersecrets.models.StoreConfig` and one resolved token.  It
applies the connection overrides from the environment, takes the store's
cache from an injected :class:`~dopplersecrets.cache.CacheRegistry`, and
creates a fresh :class:`~dopplersecrets.client.APIClient` for every
operation.  Providers are cheap; build one per request and keep the
registry alive instead.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from dopplersecrets.cache import CacheRegistry, CacheStore
from dopplersecrets.client import APIClient, SecretsService
from dopplersecrets.client.api_client import normalize_base_url
from dopplersecrets.config import connection_settings, resolve_credential
from dopplersecrets.exceptions import ConfigError, DecodeError
from dopplersecrets.models import (
    Change,
    SecretRequest,
    SecretsRequest,
    StoreConfig,
    UpdateSecretsRequest,
)
from dopplersecrets.output import get_output

SECRETS_FILE_KEY = "DOPPLER_SECRETS_FILE"
"""Key under which :meth:`SecretsProvider.get_all_secrets` returns a formatted download."""

_JSON_OBJECT = TypeAdapter(dict[str, Any])


class SecretsProvider:
    """Read and write the secrets of one Doppler store.

    Args:
        store: The store configuration.
        token: The resolved Doppler token.
        cache_registry: Registry owning the per-store caches.  Caching is
            only used when both a registry is given and the store enables it.
        transport: Optional :class:`httpx.BaseTransport` for every API client.

    Raises:
        ConfigError: If the effective base URL is invalid.
    """

    def __init__(
        self,
        store: StoreConfig,
        token: str,
        cache_registry: Optional[CacheRegistry] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._store = store
        self._token = token
        self._transport = transport

        base_url, verify_tls = connection_settings(store)
        self._base_url = normalize_base_url(base_url)
        self._verify_tls = verify_tls

        self._cache: Optional[CacheStore] = None
        if cache_registry is not None and store.cache.enabled:
            self._cache = cache_registry.configure(
                store.identity, enabled=True, ttl_seconds=store.cache.ttl_seconds,
            )
            stats = self._cache.stats()
            get_output().debug(f"Response cache for store {store.identity}: {stats}")

    @classmethod
    def from_store(
        cls,
        store: StoreConfig,
        cache_registry: Optional[CacheRegistry] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> SecretsProvider:
        """Build a provider, resolving the token from ``store.token_source``."""
        token = resolve_credential(store.token_source)
        return cls(store, token, cache_registry=cache_registry, transport=transport)

    @property
    def store(self) -> StoreConfig:
        return self._store

    @property
    def cache(self) -> Optional[CacheStore]:
        return self._cache

    def service(self) -> SecretsService:
        """Return a service bound to a new API client and the store cache."""
        client = APIClient(
            self._token,
            base_url=self._base_url,
            verify_tls=self._verify_tls,
            transport=self._transport,
        )
        return SecretsService(client, cache=self._cache)

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    def validate(self) -> None:
        """Check that the token is accepted by the API."""
        self.service().client.authenticate()

    def get_secret(self, key: str) -> str:
        """Return the value of secret *key*.

        Raises:
            NotFoundError: If the config has no such secret.
        """
        secret = self.service().get_secret(
            SecretRequest(name=key, project=self._store.project, config=self._store.config)
        )
        return secret.value

    def get_secret_map(self, key: str) -> dict[str, str]:
        """Return secret *key* parsed as a JSON object.

        Non-string values are re-serialised as JSON text.

        Raises:
            DecodeError: If the value is not a JSON object.
        """
        value = self.get_secret(key)
        try:
            parsed = _JSON_OBJECT.validate_json(value)
        except ValidationError as exc:
            raise DecodeError(f"secret '{key}' is not a JSON object", cause=exc) from exc
        return {
            name: item if isinstance(item, str) else json.dumps(item)
            for name, item in parsed.items()
        }

    def get_all_secrets(self, name_pattern: Optional[str] = None) -> dict[str, str]:
        """Return every secret of the store's config.

        When the store sets a download format the formatted file is returned
        as a single entry under :data:`SECRETS_FILE_KEY`.  Otherwise secret
        names can be filtered with the regular expression *name_pattern*.

        Raises:
            ConfigError: If *name_pattern* is not a valid regular expression.
            DecodeError: If a formatted download is not valid UTF-8.
        """
        request = SecretsRequest(
            project=self._store.project,
            config=self._store.config,
            name_transformer=self._store.name_transformer,
            format=self._store.format,
        )
        response = self.service().get_secrets(request)
        if self._store.format:
            try:
                text = response.body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(
                    f"{self._store.format} download is not valid UTF-8", cause=exc
                ) from exc
            return {SECRETS_FILE_KEY: text}

        secrets = response.secrets or {}
        if not name_pattern:
            return dict(secrets)
        try:
            matcher = re.compile(name_pattern)
        except re.error as exc:
            raise ConfigError(f"invalid name pattern {name_pattern!r}", cause=exc) from exc
        return {name: value for name, value in secrets.items() if matcher.search(name)}

    def push_secret(self, key: str, value: str) -> bool:
        """Set secret *key* to *value* unless it already holds that value.

        Returns:
            ``True`` if a write was sent.
        """
        request = UpdateSecretsRequest(
            secrets={key: value},
            project=self._store.project,
            config=self._store.config,
        )
        return self.service().update_secrets(request)

    def delete_secret(self, key: str) -> bool:
        """Delete secret *key* with a change request."""
        change = Change(name=key, original_name=key, value=None, should_delete=True)
        request = UpdateSecretsRequest(
            change_requests=[change],
            project=self._store.project,
            config=self._store.config,
        )
        return self.service().update_secrets(request)
