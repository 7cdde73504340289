"""Exception hierarchy for dopplersecrets.

All exceptions inherit from :class:`DopplerSecretsError`, which carries a
human-readable message, an optional underlying cause, and an ``exit_code``
attribute mapped to a constant from :mod:`dopplersecrets.exit_codes`.  The
CLI entry point in :func:`dopplersecrets.app.main` catches
``DopplerSecretsError`` and exits with the matching code.

Subclass hierarchy::

    DopplerSecretsError  (exit 1)
    +-- ConfigError      (exit 1)
    +-- TransportError   (exit 6)
    +-- HTTPStatusError  (exit 5)
    |   +-- AuthError    (exit 3)
    +-- DecodeError      (exit 7)
    +-- NotFoundError    (exit 4)

Nothing in the client retries on these errors; callers that want a retry
policy wrap the calls themselves.
"""

from __future__ import annotations

from typing import Optional

from dopplersecrets.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_ERROR,
    EXIT_NOT_FOUND,
)


class DopplerSecretsError(Exception):
    """Base exception for all dopplersecrets errors.

    Args:
        message: Human-readable error description.
        cause: The lower-level exception or detail that triggered this one.
            Rendered on its own line by ``str()``.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException | str] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if exit_code is not None:
            self.exit_code = exit_code

    def __str__(self) -> str:
        text = f"Doppler API Client Error: {self.message}"
        if self.cause:
            text = f"{text}\n{self.cause}"
        return text


class ConfigError(DopplerSecretsError):
    """Raised for configuration problems (invalid base URL, bad store file, bad credential source)."""

    exit_code = EXIT_GENERIC_FAILURE


class TransportError(DopplerSecretsError):
    """Raised on network-level failures (timeout, DNS resolution, TLS, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class HTTPStatusError(DopplerSecretsError):
    """Raised when the API answers with a status code of 400 or above.

    Args:
        message: The joined remote error messages, or a synthesized summary
            when the body was not JSON.
        status_code: The HTTP status code of the response.
        messages: The individual messages reported by the API.
        cause: Optional underlying detail.
    """

    exit_code = EXIT_HTTP_ERROR

    def __init__(
        self,
        message: str,
        status_code: int,
        messages: Optional[list[str]] = None,
        cause: Optional[BaseException | str] = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.messages = list(messages or [])


class AuthError(HTTPStatusError):
    """Raised when the API rejects the token (HTTP 401 / 403)."""

    exit_code = EXIT_AUTH_FAILURE


class DecodeError(DopplerSecretsError):
    """Raised when a response payload is not the JSON shape the client expects."""

    exit_code = EXIT_DECODE_ERROR


class NotFoundError(DopplerSecretsError):
    """Raised when a requested secret is absent from an otherwise successful response."""

    exit_code = EXIT_NOT_FOUND
