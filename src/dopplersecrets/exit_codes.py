"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~dopplersecrets.exceptions.DopplerSecretsError`
subclass.  Shell wrappers and CI jobs can inspect the exit code to tell a
rejected token from a missing secret without parsing stderr.

Example::

    $ doppler-secrets get DATABASE_URL
    $ echo $?
    4   # EXIT_NOT_FOUND -- the secret is not in the config
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""The API rejected the token (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The requested secret is absent from the response."""

EXIT_HTTP_ERROR = 5
"""The remote API answered with an error status (HTTP >= 400)."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, TLS, connection refused)."""

EXIT_DECODE_ERROR = 7
"""A response payload could not be decoded."""
