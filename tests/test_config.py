"""Tests for dopplersecrets.config -- paths, store profiles, precedence, overrides."""

from __future__ import annotations

import io
import json
import os
import stat
from pathlib import Path
from typing import Any

import pytest

from dopplersecrets.config import (
    _atomic_write,
    connection_settings,
    delete_store,
    get_config_dir,
    get_stores_dir,
    list_stores,
    load_project_config,
    load_store,
    load_store_file,
    parse_bool,
    resolve_credential,
    resolve_store,
    save_store,
    store_exists,
)
from dopplersecrets.exceptions import ConfigError
from dopplersecrets.models import CacheConfig, StoreConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _make_store(name: str = "backend", **kwargs: Any) -> StoreConfig:
    return StoreConfig(name=name, project="api", config="prd", **kwargs)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


class TestConfigDir:
    def test_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("dopplersecrets.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert get_config_dir() == tmp_path / "xdg" / "doppler-secrets"
        assert get_config_dir().is_dir()

    def test_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("dopplersecrets.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".config" / "doppler-secrets"

    def test_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("dopplersecrets.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_config_dir() == tmp_path / ".doppler-secrets"

    def test_stores_dir_inside_config_dir(self, isolated_config: Path) -> None:
        assert get_stores_dir() == isolated_config / "stores"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "store.json"
        _atomic_write(target, '{"a": 1}')
        assert target.read_text(encoding="utf-8") == '{"a": 1}'

    def test_owner_only_permissions(self, tmp_path: Path) -> None:
        target = tmp_path / "store.json"
        _atomic_write(target, "{}")
        assert stat.S_IMODE(os.stat(target).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        _atomic_write(tmp_path / "store.json", "{}")
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_no_temp_files_left_on_error(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(src: str, dst: Any) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(OSError):
            _atomic_write(tmp_path / "store.json", "{}")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Store profiles
# ---------------------------------------------------------------------------


class TestStores:
    def test_list_empty(self, isolated_config: Path) -> None:
        assert list_stores() == []

    def test_save_and_load(self, isolated_config: Path) -> None:
        store = _make_store(cache=CacheConfig(enabled=True, ttl_seconds=30))
        path = save_store(store)
        assert path == isolated_config / "stores" / "backend.json"
        assert load_store("backend") == store

    def test_saved_file_omits_unset_fields(self, isolated_config: Path) -> None:
        path = save_store(_make_store())
        data = json.loads(path.read_text(encoding="utf-8"))
        assert "base_url" not in data
        assert data["project"] == "api"

    def test_list_sorted(self, isolated_config: Path) -> None:
        save_store(_make_store("web"))
        save_store(_make_store("api"))
        assert list_stores() == ["api", "web"]

    def test_yaml_store(self, isolated_config: Path) -> None:
        path = get_stores_dir() / "ops.yaml"
        path.write_text(
            "project: infra\nconfig: prd\nnameTransformer: lower-snake\ncache:\n  enabled: true\n",
            encoding="utf-8",
        )
        store = load_store("ops")
        assert store.name == "ops"
        assert store.name_transformer == "lower-snake"
        assert store.cache.enabled is True
        assert list_stores() == ["ops"]

    def test_yaml_store_stays_yaml(self, isolated_config: Path) -> None:
        path = get_stores_dir() / "ops.yml"
        path.write_text("project: infra\n", encoding="utf-8")
        written = save_store(StoreConfig(name="ops", project="infra", config="dev"))
        assert written == path
        assert "config: dev" in path.read_text(encoding="utf-8")

    def test_load_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_store("nope")

    def test_load_invalid_json(self, isolated_config: Path) -> None:
        (get_stores_dir() / "bad.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid store file"):
            load_store("bad")

    def test_load_invalid_schema(self, isolated_config: Path) -> None:
        _write_json(get_stores_dir() / "bad.json", {"cache": {"ttl_seconds": -1}})
        with pytest.raises(ConfigError):
            load_store("bad")

    def test_load_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_store_file(path)

    def test_delete(self, isolated_config: Path) -> None:
        save_store(_make_store())
        assert store_exists("backend")
        delete_store("backend")
        assert not store_exists("backend")

    def test_delete_missing(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            delete_store("nope")


# ---------------------------------------------------------------------------
# Store resolution
# ---------------------------------------------------------------------------


class TestResolveStore:
    def test_nothing_configured(self, isolated_config: Path) -> None:
        assert resolve_store() is None

    def test_single_store_is_default(self, isolated_config: Path) -> None:
        save_store(_make_store("only"))
        store = resolve_store()
        assert store is not None
        assert store.name == "only"

    def test_several_stores_need_a_choice(self, isolated_config: Path) -> None:
        save_store(_make_store("a"))
        save_store(_make_store("b"))
        assert resolve_store() is None

    def test_project_default(self, isolated_config: Path, tmp_path: Path) -> None:
        save_store(_make_store("a"))
        save_store(_make_store("b"))
        _write_json(tmp_path / "doppler-secrets.json", {"default_store": "b"})
        store = resolve_store()
        assert store is not None and store.name == "b"

    def test_env_overrides_project(
        self, isolated_config: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        save_store(_make_store("a"))
        save_store(_make_store("b"))
        _write_json(tmp_path / "doppler-secrets.json", {"default_store": "b"})
        monkeypatch.setenv("DOPPLER_SECRETS_STORE", "a")
        store = resolve_store()
        assert store is not None and store.name == "a"

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        save_store(_make_store("a"))
        save_store(_make_store("b"))
        monkeypatch.setenv("DOPPLER_SECRETS_STORE", "a")
        store = resolve_store("b")
        assert store is not None and store.name == "b"

    def test_path_to_store_file(self, isolated_config: Path, tmp_path: Path) -> None:
        path = tmp_path / "adhoc.json"
        _write_json(path, {"project": "api", "config": "dev"})
        store = resolve_store(str(path))
        assert store is not None
        assert (store.name, store.config) == ("adhoc", "dev")

    def test_unknown_name(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError):
            resolve_store("ghost")

    def test_invalid_project_config(self, isolated_config: Path, tmp_path: Path) -> None:
        (tmp_path / "doppler-secrets.json").write_text("nope", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_project_config()


# ---------------------------------------------------------------------------
# Connection overrides
# ---------------------------------------------------------------------------


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "t", "T", "TRUE", "true", "True"])
    def test_true(self, value: str) -> None:
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "f", "F", "FALSE", "false", "False"])
    def test_false(self, value: str) -> None:
        assert parse_bool(value) is False

    @pytest.mark.parametrize("value", ["", "yes", "no", "tRUE", " true"])
    def test_unrecognised(self, value: str) -> None:
        assert parse_bool(value) is None


@pytest.mark.usefixtures("clean_env")
class TestConnectionSettings:
    def test_defaults(self) -> None:
        assert connection_settings(_make_store()) == ("https://api.doppler.com", True)

    def test_store_values(self) -> None:
        store = _make_store(base_url="http://local.test", verify_tls=False)
        assert connection_settings(store) == ("http://local.test", False)

    def test_env_overrides_store(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOPPLER_BASE_URL", "http://env.test")
        monkeypatch.setenv("DOPPLER_VERIFY_TLS", "false")
        store = _make_store(base_url="http://local.test", verify_tls=True)
        assert connection_settings(store) == ("http://env.test", False)

    def test_env_can_reenable_verification(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOPPLER_VERIFY_TLS", "1")
        assert connection_settings(_make_store(verify_tls=False))[1] is True

    def test_invalid_verify_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOPPLER_VERIFY_TLS", "nah")
        assert connection_settings(_make_store(verify_tls=False))[1] is False

    def test_empty_base_url_env_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOPPLER_BASE_URL", "")
        assert connection_settings(_make_store())[0] == "https://api.doppler.com"


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestResolveCredential:
    def test_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_TOKEN", "dp.st.abc")
        assert resolve_credential("env:MY_TOKEN") == "dp.st.abc"

    def test_env_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MY_TOKEN", raising=False)
        with pytest.raises(ConfigError, match="MY_TOKEN"):
            resolve_credential("env:MY_TOKEN")

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token"
        path.write_text("  dp.st.file\n", encoding="utf-8")
        assert resolve_credential(f"file:{path}") == "dp.st.file"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'missing'}")

    def test_prompt_without_tty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO())
        with pytest.raises(ConfigError, match="not a TTY"):
            resolve_credential("prompt")

    def test_unknown_source(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("vault:secret/doppler")
