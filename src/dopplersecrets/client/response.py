"""Response classification for the Doppler API.

:class:`APIResponse` is what :class:`~dopplersecrets.client.api_client.APIClient`
hands back for every successful call: the status code, headers and the
fully-read body, plus whether the server answered ``304 Not Modified``.

:func:`raise_for_status` turns an error status into the matching exception
from :mod:`dopplersecrets.exceptions`.  When the API sends a JSON error
document (``{"messages": [...], "success": false}``) its messages become the
exception message; any other error body is summarised by status code and
size.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
from pydantic import ValidationError

from dopplersecrets.exceptions import AuthError, DecodeError, HTTPStatusError
from dopplersecrets.models import APIErrorPayload

NOT_MODIFIED = 304


def is_success(status_code: int) -> bool:
    """Return ``True`` for 2xx and 3xx status codes."""
    return 200 <= status_code <= 399


@dataclass
class APIResponse:
    """An API response with its body fully read.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers (case-insensitive lookups).
        body: Raw response body.
    """

    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: bytes = b""

    @property
    def not_modified(self) -> bool:
        """Whether the server confirmed a conditional request with 304."""
        return self.status_code == NOT_MODIFIED

    @property
    def etag(self) -> str:
        """The ``ETag`` header, or an empty string."""
        return self.headers.get("etag", "")


def raise_for_status(response: APIResponse) -> None:
    """Raise a typed exception when *response* carries an error status.

    Raises:
        AuthError: On 401 / 403.
        HTTPStatusError: On any other status >= 400.
        DecodeError: When a JSON error body cannot be parsed.
    """
    status = response.status_code
    if is_success(status):
        return

    exc_type = AuthError if status in (401, 403) else HTTPStatusError
    body = response.body
    content_type = response.headers.get("content-type", "")
    if not content_type.startswith("application/json"):
        raise exc_type(
            "unable to load response",
            status_code=status,
            cause=f"{status} status code; {len(body)} bytes",
        )

    try:
        payload = APIErrorPayload.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeError("unable to unmarshal error JSON payload", cause=exc) from exc

    message = "\n".join(payload.messages) or f"HTTP {status}"
    raise exc_type(message, status_code=status, messages=payload.messages)
