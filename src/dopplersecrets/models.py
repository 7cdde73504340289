"""Canonical Pydantic models shared across all dopplersecrets modules.

This is the single source of truth for data shapes in the project.  The
models fall into two groups:

**Configuration models** -- serialised as JSON or YAML store profiles in the
user's config directory:
    :class:`CacheConfig` and :class:`StoreConfig`.

**Wire models** -- requests and responses exchanged with the Doppler API:
    :class:`SecretRequest`, :class:`SecretResponse`, :class:`SecretsRequest`,
    :class:`SecretsResponse`, :class:`Change`, :class:`UpdateSecretsRequest`,
    and :class:`APIErrorPayload`.

Wire models whose JSON names differ from Python naming (``originalName``,
``shouldDelete``) declare aliases and accept either spelling on input.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_FORMATS = ("", "json")
"""Formats whose download body is a JSON object of secret names to values."""


# --- Store configuration ---


class CacheConfig(BaseModel):
    """Response cache settings for one store.

    Caching is off unless ``enabled`` is set.  When ``ttl_seconds`` is
    ``None`` the cache store keeps its default TTL.
    """

    enabled: bool = Field(default=False, description="Enable response caching")
    ttl_seconds: Optional[int] = Field(
        default=None, ge=0, description="Cache entry TTL in seconds"
    )


class StoreConfig(BaseModel):
    """A Doppler backing store: which project/config to read and how.

    Persisted as one file per store under the ``stores/`` config directory
    and managed with ``doppler-secrets store``.  The ``uid`` identifies the
    store for cache scoping; stores without one are scoped by ``name``.

    Example::

        StoreConfig(
            name="backend",
            project="api",
            config="prd",
            cache=CacheConfig(enabled=True, ttl_seconds=30),
        )
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    uid: Optional[str] = Field(default=None, description="Stable store identity")
    project: Optional[str] = Field(
        default=None, description="Doppler project (not needed with a service token)"
    )
    config: Optional[str] = Field(
        default=None, description="Doppler config (not needed with a service token)"
    )
    name_transformer: Optional[str] = Field(
        default=None,
        alias="nameTransformer",
        description="Secret name transformer: upper-camel, camel, lower-snake, "
        "tf-var, dotnet, dotnet-env, lower-kebab",
    )
    format: Optional[str] = Field(
        default=None,
        description="Download format: json, dotnet-json, env, yaml, docker",
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)
    base_url: Optional[str] = Field(
        default=None, description="Override the API base URL"
    )
    verify_tls: Optional[bool] = Field(
        default=None, description="Override TLS certificate verification"
    )
    token_source: str = Field(
        default="env:DOPPLER_TOKEN",
        description="Credential source: env:VAR, file:/path, prompt",
    )

    @property
    def identity(self) -> str:
        """The key under which this store's cache is registered."""
        return self.uid or self.name


# --- Wire models ---


class SecretRequest(BaseModel):
    """Request for a single secret by name."""

    name: str
    project: Optional[str] = None
    config: Optional[str] = None


class SecretResponse(BaseModel):
    """A single resolved secret."""

    name: str
    value: str


class SecretsRequest(BaseModel):
    """Parameters of a secrets download.

    An empty ``secret_names`` list downloads every secret in the config.
    ``etag`` is only consulted when the cache has no entry for the request;
    supplying one means the caller keeps its own copy of the payload.
    """

    project: Optional[str] = None
    config: Optional[str] = None
    name_transformer: Optional[str] = None
    format: Optional[str] = None
    secret_names: list[str] = Field(default_factory=list)
    etag: Optional[str] = None

    @property
    def is_raw_format(self) -> bool:
        """Whether the response body is opaque text rather than a JSON map."""
        return (self.format or "") not in DEFAULT_FORMATS

    def query_params(self) -> dict[str, str]:
        """Build the download query string, omitting unset fields."""
        params: dict[str, str] = {}
        if self.project:
            params["project"] = self.project
        if self.config:
            params["config"] = self.config
        if self.secret_names:
            params["secrets"] = ",".join(self.secret_names)
        if self.name_transformer:
            params["name_transformer"] = self.name_transformer
        if self.format:
            params["format"] = self.format
        return params


class SecretsResponse(BaseModel):
    """Result of a secrets download.

    ``secrets`` is ``None`` when a raw format was requested; the payload is
    then only available as ``body``.  ``modified`` is ``False`` when the API
    answered 304 to a caller-supplied ETag and nothing was cached locally.
    """

    secrets: Optional[dict[str, str]] = None
    body: bytes = b""
    etag: str = ""
    modified: bool = True


class Change(BaseModel):
    """One secret mutation sent in ``change_requests``.

    A ``None`` value together with ``should_delete`` removes the secret.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    original_name: str = Field(alias="originalName")
    value: Optional[str] = None
    should_delete: bool = Field(default=False, alias="shouldDelete")

    def to_wire(self) -> dict[str, Any]:
        """Serialise with API field names; ``value`` stays even when null."""
        data: dict[str, Any] = {
            "name": self.name,
            "originalName": self.original_name,
            "value": self.value,
        }
        if self.should_delete:
            data["shouldDelete"] = True
        return data


class UpdateSecretsRequest(BaseModel):
    """A push of new secret values and/or change requests to one config."""

    secrets: dict[str, str] = Field(default_factory=dict)
    change_requests: list[Change] = Field(default_factory=list)
    project: Optional[str] = None
    config: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body, omitting empty fields."""
        payload: dict[str, Any] = {}
        if self.secrets:
            payload["secrets"] = dict(self.secrets)
        if self.change_requests:
            payload["change_requests"] = [c.to_wire() for c in self.change_requests]
        if self.project:
            payload["project"] = self.project
        if self.config:
            payload["config"] = self.config
        return payload


class APIErrorPayload(BaseModel):
    """JSON body the API returns alongside an error status."""

    messages: list[str] = Field(default_factory=list)
    success: bool = False
