"""Deterministic cache keys for secrets downloads.

A key has a readable ``project:config`` prefix for debugging followed by a
SHA-256 digest over every field that changes the shape or content of the
response: project, config, name transformer, format, the *sorted* set of
requested names, and the token.  Two requests that only differ in the
order of their secret names share a key; any other difference yields a new
one.  The token is only ever present inside the digest.
"""

from __future__ import annotations

import hashlib
import json

from dopplersecrets.models import SecretsRequest

_DIGEST_LENGTH = 32


def cache_key(request: SecretsRequest, token: str) -> str:
    """Derive the cache key for *request* issued with *token*.

    Args:
        request: The download request.  ``etag`` does not take part.
        token: The API token the request is authenticated with.

    Returns:
        A string of the form ``"<project>:<config>:<digest>"``.
    """
    fields = [
        token,
        request.project or "",
        request.config or "",
        request.name_transformer or "",
        request.format or "",
        sorted(set(request.secret_names)),
    ]
    raw = json.dumps(fields, separators=(",", ":"))
    digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return f"{request.project or ''}:{request.config or ''}:{digest}"
