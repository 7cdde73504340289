"""Configuration management: store profiles, environment overrides, credentials.

This module handles all persistent and environment configuration:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.doppler-secrets/`` on macOS and Windows.  See :func:`get_config_dir`
  and :func:`get_stores_dir`.
* **Store profiles** -- one JSON or YAML file per backing store, each
  deserialised into a :class:`~dopplersecrets.models.StoreConfig`.  Managed
  via :func:`load_store`, :func:`save_store`, :func:`delete_store`.
* **Precedence resolution** -- :func:`resolve_store` picks the active store
  from the CLI flag, the ``DOPPLER_SECRETS_STORE`` environment variable, the
  project file ``./doppler-secrets.json``, or the only stored profile.
* **Connection overrides** -- :func:`connection_settings` applies the
  ``DOPPLER_BASE_URL`` and ``DOPPLER_VERIFY_TLS`` environment variables on
  top of the store settings.
* **Credential resolution** -- :func:`resolve_credential` reads the token
  from an env var, a file, or an interactive prompt.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml

from dopplersecrets.client.api_client import DEFAULT_BASE_URL
from dopplersecrets.exceptions import ConfigError
from dopplersecrets.models import StoreConfig

_APP_NAME = "doppler-secrets"
_PROJECT_CONFIG_FILENAME = "doppler-secrets.json"
_STORE_SUFFIXES = (".json", ".yaml", ".yml")

BASE_URL_ENV_VAR = "DOPPLER_BASE_URL"
VERIFY_TLS_ENV_VAR = "DOPPLER_VERIFY_TLS"
STORE_ENV_VAR = "DOPPLER_SECRETS_STORE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/doppler-secrets/`` (default
    ``~/.config/doppler-secrets/``).  On macOS/Windows: ``~/.doppler-secrets/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_stores_dir() -> Path:
    """Return the store profiles directory (``<config_dir>/stores/``), creating it if necessary."""
    path = get_config_dir() / "stores"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  Store files may
    hold a ``file:`` token path, so they are created owner-readable only.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Store profiles ---


def _existing_store_path(name: str) -> Optional[Path]:
    stores_dir = get_stores_dir()
    for suffix in _STORE_SUFFIXES:
        path = stores_dir / f"{name}{suffix}"
        if path.is_file():
            return path
    return None


def list_stores() -> list[str]:
    """Return all store names found in the stores directory, sorted alphabetically."""
    stores_dir = get_stores_dir()
    return sorted(
        {p.stem for p in stores_dir.iterdir() if p.is_file() and p.suffix in _STORE_SUFFIXES}
    )


def load_store_file(path: Path) -> StoreConfig:
    """Load and validate a store profile from a JSON or YAML file.

    The format is chosen by the file suffix.  A profile without a ``name``
    takes the file stem.

    Raises:
        ConfigError: If the file is missing, unparseable, or fails validation.
    """
    if not path.is_file():
        raise ConfigError(f"Store file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("expected a mapping at the top level")
        data.setdefault("name", path.stem)
        return StoreConfig.model_validate(data)
    except (json.JSONDecodeError, yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"Invalid store file {path}: {exc}") from exc


def load_store(name: str) -> StoreConfig:
    """Load a stored profile by name.

    Raises:
        ConfigError: If no profile with that name exists or it is invalid.
    """
    path = _existing_store_path(name)
    if path is None:
        raise ConfigError(f"Store '{name}' not found in {get_stores_dir()}")
    return load_store_file(path)


def save_store(store: StoreConfig) -> Path:
    """Persist a store profile atomically.

    An existing YAML profile stays YAML; everything else is written as JSON.

    Returns:
        The path written.
    """
    path = _existing_store_path(store.name) or get_stores_dir() / f"{store.name}.json"
    data = store.model_dump(mode="json", exclude_none=True)
    if path.suffix in (".yaml", ".yml"):
        text = yaml.safe_dump(data, sort_keys=False)
    else:
        text = json.dumps(data, indent=2) + "\n"
    _atomic_write(path, text)
    return path


def delete_store(name: str) -> None:
    """Delete a store profile.

    Raises:
        ConfigError: If the store does not exist.
    """
    path = _existing_store_path(name)
    if path is None:
        raise ConfigError(f"Store '{name}' not found in {get_stores_dir()}")
    path.unlink()


def store_exists(name: str) -> bool:
    return _existing_store_path(name) is not None


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./doppler-secrets.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc


# --- Precedence resolution ---


def resolve_store(cli_store: Optional[str] = None) -> Optional[StoreConfig]:
    """Resolve the active store.

    Precedence (high to low):
        1. CLI flag (``cli_store``), a store name or a path to a store file
        2. Environment variable ``DOPPLER_SECRETS_STORE``
        3. Project config (``./doppler-secrets.json`` ``default_store``)
        4. The only stored profile, when exactly one exists

    Returns:
        The resolved :class:`StoreConfig`, or ``None`` if nothing is configured.
    """
    name: Optional[str] = None

    project = load_project_config()
    if project is not None:
        name = project.get("default_store")
    env_store = os.environ.get(STORE_ENV_VAR)
    if env_store:
        name = env_store
    if cli_store is not None:
        name = cli_store

    if name is None:
        stores = list_stores()
        if len(stores) == 1:
            name = stores[0]
        else:
            return None

    candidate = Path(name).expanduser()
    if candidate.suffix in _STORE_SUFFIXES and candidate.is_file():
        return load_store_file(candidate)
    return load_store(name)


def parse_bool(value: str) -> Optional[bool]:
    """Parse a boolean the way Go's ``strconv.ParseBool`` does.

    Returns ``None`` for anything that is not a recognised spelling.
    """
    if value in ("1", "t", "T", "TRUE", "true", "True"):
        return True
    if value in ("0", "f", "F", "FALSE", "false", "False"):
        return False
    return None


def connection_settings(store: StoreConfig) -> tuple[str, bool]:
    """Return the ``(base_url, verify_tls)`` to use for *store*.

    Environment variables win over the store profile, which wins over the
    defaults.  An unparseable ``DOPPLER_VERIFY_TLS`` is ignored.
    """
    base_url = store.base_url or DEFAULT_BASE_URL
    verify_tls = True if store.verify_tls is None else store.verify_tls

    env_base_url = os.environ.get(BASE_URL_ENV_VAR)
    if env_base_url:
        base_url = env_base_url

    env_verify = os.environ.get(VERIFY_TLS_ENV_VAR)
    if env_verify is not None:
        parsed = parse_bool(env_verify)
        if parsed is not None:
            verify_tls = parsed

    return base_url, verify_tls


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve the Doppler token from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts the user interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Doppler token: ")

    raise ConfigError(f"Unknown credential source format: {source}")
