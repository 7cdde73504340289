"""Cache-aware secrets operations on top of :class:`~dopplersecrets.client.api_client.APIClient`.

:class:`SecretsService` combines one API client with the
:class:`~dopplersecrets.cache.CacheStore` of the backing store:

- :meth:`~SecretsService.get_secrets` always asks the API, but sends the
  cached ETag in ``if-none-match``.  A ``304`` answer returns the cached
  payload without decoding anything; a ``200`` answer is decoded, cached
  and returned.
- :meth:`~SecretsService.update_secrets` downloads the current values first
  and only pushes the secrets whose value differs.  When nothing differs no
  write is issued at all.

A ``304`` does not touch the cache entry, so its ``last_checked_at`` keeps
the time of the last full download.  An entry therefore reports itself as
expired once its TTL has passed even while the API keeps confirming it.
"""

from __future__ import annotations

from typing import Optional

from pydantic import TypeAdapter, ValidationError

from dopplersecrets.cache import CacheStore, cache_key
from dopplersecrets.client.api_client import APIClient
from dopplersecrets.client.response import APIResponse
from dopplersecrets.exceptions import DecodeError, NotFoundError
from dopplersecrets.models import (
    SecretRequest,
    SecretResponse,
    SecretsRequest,
    SecretsResponse,
    UpdateSecretsRequest,
)
from dopplersecrets.output import get_output

_SECRETS_MAP = TypeAdapter(dict[str, str])


class SecretsService:
    """Download and push secrets for one token, reusing a shared cache.

    Args:
        client: The API client for this call.  Its token takes part in every
            cache key.
        cache: The cache of the backing store, shared with other services
            built for the same store.  ``None`` disables caching.

    Example::

        service = SecretsService(APIClient(token), cache=registry.get(store_id))
        response = service.get_secrets(SecretsRequest(project="api", config="prd"))
    """

    def __init__(self, client: APIClient, cache: Optional[CacheStore] = None) -> None:
        self._client = client
        self._cache = cache

    @property
    def client(self) -> APIClient:
        return self._client

    def cache_key(self, request: SecretsRequest) -> str:
        return cache_key(request, self._client.token)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_secret(self, request: SecretRequest) -> SecretResponse:
        """Fetch one secret by name.

        Raises:
            NotFoundError: If the API response does not contain ``request.name``.
        """
        name = request.name
        response = self.get_secrets(
            SecretsRequest(project=request.project, config=request.config, secret_names=[name])
        )
        secrets = response.secrets or {}
        if name not in secrets:
            raise NotFoundError(f"secret '{name}' not found")
        return SecretResponse(name=name, value=secrets[name])

    def get_secrets(self, request: SecretsRequest) -> SecretsResponse:
        """Download secrets, revalidating any cached copy with its ETag.

        Returns:
            A copy of the payload; mutating it never affects the cache.

        Raises:
            DecodeError: If a JSON download is not an object of strings.
            TransportError, HTTPStatusError: Propagated from the client.
        """
        output = get_output()
        key = self.cache_key(request)
        entry = self._cache.read(key) if self._cache is not None else None

        headers: dict[str, str] = {}
        etag = entry.etag if entry is not None else request.etag
        if etag:
            headers["if-none-match"] = etag
        if request.is_raw_format:
            headers["accept"] = "text/plain"

        if entry is not None:
            state = "expired" if self._cache.expired(entry) else "fresh"
            output.debug(f"Revalidating {state} cache entry {key}. Cached ETag: {entry.etag}")

        response = self._client.download_secrets(request.query_params(), headers)

        if response.not_modified:
            if entry is not None:
                output.debug(f"Skipping cache update for {key}. Cached ETag: {entry.etag}")
                return entry.data.model_copy(deep=True)
            return SecretsResponse(etag=response.etag or etag or "", modified=False)

        result = self._decode(request, response)
        if self._cache is not None and self._cache.enabled:
            output.debug(f"Updating cache for {key}. New ETag: {result.etag}")
            self._cache.write(key, result.etag, result)
        return result.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def update_secrets(self, request: UpdateSecretsRequest) -> bool:
        """Push the secrets of *request* whose values changed.

        Values are compared by exact string equality with the current
        download of ``request.project`` / ``request.config``.  A secret
        absent from the current download always counts as changed.  Change
        requests are always sent.  *request* itself is left untouched.

        Returns:
            ``True`` if a push was issued, ``False`` if there was nothing to send.
        """
        output = get_output()
        current = self.get_secrets(
            SecretsRequest(project=request.project, config=request.config)
        )
        known = current.secrets or {}

        changed: dict[str, str] = {}
        for name, value in request.secrets.items():
            if name in known and known[name] == value:
                output.debug(f"Skipping secret push for {name}. Value hasn't changed.")
                continue
            changed[name] = value

        if not changed and not request.change_requests:
            return False

        push = request.model_copy(update={"secrets": changed})
        output.debug("Performing secret push.")
        self._client.update_secrets(push.to_payload())
        return True

    def _decode(self, request: SecretsRequest, response: APIResponse) -> SecretsResponse:
        if request.is_raw_format:
            return SecretsResponse(body=response.body, etag=response.etag)
        try:
            secrets = _SECRETS_MAP.validate_json(response.body)
        except ValidationError as exc:
            raise DecodeError("unable to unmarshal secrets payload", cause=exc) from exc
        return SecretsResponse(secrets=secrets, body=response.body, etag=response.etag)
