"""Secrets commands -- read and write the secrets of the active store.

Provides ``get``, ``download``, ``push``, ``delete`` and ``validate``.
Each command resolves the active store (see
:func:`~dopplersecrets.config.resolve_store`), builds a
:class:`~dopplersecrets.provider.SecretsProvider` sharing the process-wide
:class:`~dopplersecrets.cache.CacheRegistry` kept in ``ctx.obj``, and maps
:class:`~dopplersecrets.exceptions.DopplerSecretsError` to its exit code.

Typical workflow::

    doppler-secrets --store backend validate
    doppler-secrets get DATABASE_URL
    doppler-secrets download --format env > .env
    doppler-secrets push FEATURE_FLAG on
"""

from __future__ import annotations

import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Optional

import typer

from dopplersecrets.exceptions import DopplerSecretsError
from dopplersecrets.exit_codes import EXIT_INVALID_USAGE
from dopplersecrets.output import error, format_response, info, success

if TYPE_CHECKING:
    from dopplersecrets.provider import SecretsProvider


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Report a :class:`DopplerSecretsError` on stderr and exit with its code."""
    try:
        yield
    except DopplerSecretsError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _provider(ctx: typer.Context) -> SecretsProvider:
    """Build a provider for the store selected on the command line."""
    from dopplersecrets.cache import CacheRegistry
    from dopplersecrets.config import resolve_store
    from dopplersecrets.provider import SecretsProvider

    obj = ctx.ensure_object(dict)
    store = resolve_store(obj.get("store"))
    if store is None:
        error("No store selected. Use --store NAME or add one with 'doppler-secrets store add'.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    registry = obj.setdefault("cache_registry", CacheRegistry())
    return SecretsProvider.from_store(
        store, cache_registry=registry, transport=obj.get("transport"),
    )


def get_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
    as_map: bool = typer.Option(
        False, "--map", help="Parse the value as a JSON object."
    ),
) -> None:
    """Print the value of one secret.

    Example::

        doppler-secrets get DATABASE_URL
        doppler-secrets get SERVICE_CONFIG --map --json
    """
    with _exit_on_error():
        provider = _provider(ctx)
        if as_map:
            format_response(provider.get_secret_map(name))
        else:
            format_response(provider.get_secret(name))


def download_command(
    ctx: typer.Context,
    secret: Optional[list[str]] = typer.Option(
        None, "--secret", "-s", help="Only download this secret (repeatable)."
    ),
    fmt: Optional[str] = typer.Option(
        None, "--format", "-f", help="Download format: json, dotnet-json, env, yaml, docker."
    ),
    name_transformer: Optional[str] = typer.Option(
        None, "--name-transformer", help="Transform secret names, e.g. lower-snake."
    ),
    name_filter: Optional[str] = typer.Option(
        None, "--filter", help="Regular expression secret names must match."
    ),
) -> None:
    """Download secrets of the store's config.

    Without ``--secret`` and ``--format`` the store defaults apply.  Raw
    formats are written to stdout exactly as the API returns them.

    Example::

        doppler-secrets download --json
        doppler-secrets download --format env > .env
    """
    from dopplersecrets.models import SecretsRequest

    with _exit_on_error():
        provider = _provider(ctx)
        store = provider.store
        if not secret and fmt is None and name_transformer is None:
            format_response(provider.get_all_secrets(name_filter))
            return

        request = SecretsRequest(
            project=store.project,
            config=store.config,
            name_transformer=name_transformer or store.name_transformer,
            format=fmt if fmt is not None else store.format,
            secret_names=list(secret or []),
        )
        response = provider.service().get_secrets(request)
        if response.secrets is None:
            format_response(response.body)
            return
        secrets = response.secrets
        if name_filter:
            try:
                matcher = re.compile(name_filter)
            except re.error as exc:
                error(f"Invalid --filter pattern: {exc}")
                raise typer.Exit(code=EXIT_INVALID_USAGE) from None
            secrets = {k: v for k, v in secrets.items() if matcher.search(k)}
        format_response(secrets)


def push_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
    value: str = typer.Argument(help="New value, or '-' to read it from stdin."),
) -> None:
    """Set a secret, skipping the write when the value is unchanged.

    Example::

        doppler-secrets push FEATURE_FLAG on
        cat cert.pem | doppler-secrets push TLS_CERT -

    A value read from stdin loses one trailing newline.
    """
    if value == "-":
        value = sys.stdin.read()
        if value.endswith("\n"):
            value = value[:-1]
    with _exit_on_error():
        pushed = _provider(ctx).push_secret(name, value)
    if pushed:
        success(f"Updated {name}.")
    else:
        info(f"{name} is unchanged; nothing pushed.")


def delete_command(
    ctx: typer.Context,
    name: str = typer.Argument(help="Secret name."),
) -> None:
    """Delete a secret from the store's config."""
    with _exit_on_error():
        _provider(ctx).delete_secret(name)
    success(f"Deleted {name}.")


def validate_command(ctx: typer.Context) -> None:
    """Check that the store's token is accepted by the API."""
    with _exit_on_error():
        _provider(ctx).validate()
    success("Token is valid.")
