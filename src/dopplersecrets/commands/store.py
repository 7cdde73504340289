"""Store commands -- manage the Doppler store profiles on disk.

Provides the ``doppler-secrets store`` sub-command group.  Each profile is
a :class:`~dopplersecrets.models.StoreConfig` saved under the stores
directory of the config dir; the active one is picked with ``--store``.

Typical workflow::

    doppler-secrets store add backend --project api --config prd --cache --ttl 30
    doppler-secrets store list
    doppler-secrets store show backend --json
"""

from __future__ import annotations

from typing import Optional

import typer

from dopplersecrets.output import error, format_response, info, print_table, success


store_app = typer.Typer(no_args_is_help=True)


@store_app.command("add")
def store_add(
    name: str = typer.Argument(help="Store profile name."),
    project: Optional[str] = typer.Option(None, "--project", help="Doppler project."),
    config: Optional[str] = typer.Option(None, "--config", help="Doppler config."),
    uid: Optional[str] = typer.Option(
        None, "--uid", help="Stable identity used to scope the cache."
    ),
    name_transformer: Optional[str] = typer.Option(
        None, "--name-transformer", help="Secret name transformer."
    ),
    fmt: Optional[str] = typer.Option(None, "--format", help="Download format."),
    cache: bool = typer.Option(False, "--cache/--no-cache", help="Enable response caching."),
    ttl: Optional[int] = typer.Option(None, "--ttl", min=0, help="Cache TTL in seconds."),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the API URL."),
    insecure: bool = typer.Option(
        False, "--insecure", help="Skip TLS certificate verification."
    ),
    token_source: str = typer.Option(
        "env:DOPPLER_TOKEN",
        "--token-source",
        help="Credential source: env:VAR, file:/path, or prompt.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing profile."),
) -> None:
    """Create or replace a store profile.

    Raises:
        typer.Exit: With code 2 if the profile exists and ``--force`` is not
            given, or the settings fail validation.
    """
    from pydantic import ValidationError

    from dopplersecrets.config import save_store, store_exists
    from dopplersecrets.models import CacheConfig, StoreConfig

    if store_exists(name) and not force:
        error(f"Store '{name}' already exists. Use --force to replace it.")
        raise typer.Exit(code=2)

    try:
        store = StoreConfig(
            name=name,
            uid=uid,
            project=project,
            config=config,
            name_transformer=name_transformer,
            format=fmt,
            cache=CacheConfig(enabled=cache, ttl_seconds=ttl),
            base_url=base_url,
            verify_tls=False if insecure else None,
            token_source=token_source,
        )
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    path = save_store(store)
    success(f'Store "{name}" saved to {path}.')


@store_app.command("list")
def store_list() -> None:
    """List store profiles."""
    from dopplersecrets.config import list_stores, load_store
    from dopplersecrets.exceptions import ConfigError

    names = list_stores()
    if not names:
        info("No stores configured.")
        return

    rows: list[list[str]] = []
    for name in names:
        try:
            store = load_store(name)
        except ConfigError as exc:
            error(str(exc))
            continue
        cache = f"{store.cache.ttl_seconds}s" if store.cache.ttl_seconds is not None else "default"
        rows.append([
            store.name,
            store.project or "-",
            store.config or "-",
            cache if store.cache.enabled else "off",
        ])
    print_table(["name", "project", "config", "cache"], rows, title="Stores")


@store_app.command("show")
def store_show(name: str = typer.Argument(help="Store profile name.")) -> None:
    """Show a store profile."""
    from dopplersecrets.config import load_store
    from dopplersecrets.exceptions import ConfigError

    try:
        store = load_store(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    format_response(store.model_dump(mode="json", exclude_none=True))


@store_app.command("remove")
def store_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Store profile name."),
) -> None:
    """Delete a store profile and drop its response cache."""
    from dopplersecrets.config import delete_store, load_store
    from dopplersecrets.exceptions import ConfigError

    try:
        identity = load_store(name).identity
    except ConfigError:
        identity = name
    try:
        delete_store(name)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    registry = ctx.ensure_object(dict).get("cache_registry")
    if registry is not None:
        registry.discard(identity)
    success(f'Store "{name}" removed.')
