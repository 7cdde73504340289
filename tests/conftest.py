"""Shared test fixtures for dopplersecrets.

Provides a small in-memory fake of the Doppler API served through
:class:`httpx.MockTransport`, isolated config directories, and automatic
reset of the global output state.  These fixtures are discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import base64
import hashlib
import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from dopplersecrets.models import CacheConfig, StoreConfig
from dopplersecrets.output import OutputManager, reset_output, set_output

TOKEN = "dp.st.prd.test-token"


# ---------------------------------------------------------------------------
# Fake Doppler API
# ---------------------------------------------------------------------------


class FakeDoppler:
    """In-memory stand-in for the Doppler secrets endpoints.

    Serves ``/v3/projects``, the download endpoint (honouring
    ``if-none-match``, ``secrets`` and ``format``) and the update endpoint.
    Every request is recorded in :attr:`requests`.
    """

    def __init__(self, secrets: Optional[dict[str, str]] = None) -> None:
        self.secrets: dict[str, str] = dict(secrets or {})
        self.requests: list[httpx.Request] = []
        self.valid_token = TOKEN

    # -- helpers ---------------------------------------------------------

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def requests_to(self, path: str, method: str = "GET") -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path and r.method == method]

    @property
    def downloads(self) -> list[httpx.Request]:
        return self.requests_to("/v3/configs/config/secrets/download")

    @property
    def pushes(self) -> list[httpx.Request]:
        return self.requests_to("/v3/configs/config/secrets", "POST")

    def etag_for(self, payload: bytes) -> str:
        return '"' + hashlib.sha1(payload).hexdigest()[:16] + '"'

    # -- handler ---------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.headers.get("authorization") != _basic(self.valid_token):
            return _json_error(401, ["Invalid Auth token"])

        if request.url.path == "/v3/projects":
            return httpx.Response(200, json={"projects": [], "success": True})

        if request.url.path == "/v3/configs/config/secrets/download":
            return self._download(request)

        if request.url.path == "/v3/configs/config/secrets" and request.method == "POST":
            body = json.loads(request.content)
            self.secrets.update(body.get("secrets", {}))
            for change in body.get("change_requests", []):
                if change.get("shouldDelete"):
                    self.secrets.pop(change["name"], None)
            return httpx.Response(200, json={"secrets": {}, "success": True})

        return _json_error(404, ["Not found"])

    def _download(self, request: httpx.Request) -> httpx.Response:
        names = request.url.params.get("secrets")
        selected = {
            k: v for k, v in self.secrets.items()
            if not names or k in names.split(",")
        }
        fmt = request.url.params.get("format", "")
        if fmt and fmt != "json":
            payload = "".join(f'{k}="{v}"\n' for k, v in sorted(selected.items())).encode()
            content_type = "text/plain"
        else:
            payload = json.dumps(selected, sort_keys=True).encode()
            content_type = "application/json"

        etag = self.etag_for(payload)
        if request.headers.get("if-none-match") == etag:
            return httpx.Response(304, headers={"etag": etag})
        return httpx.Response(
            200, content=payload, headers={"etag": etag, "content-type": content_type},
        )


def _basic(token: str) -> str:
    return "Basic " + base64.b64encode(f"{token}:".encode()).decode()


def _json_error(status: int, messages: list[str]) -> httpx.Response:
    return httpx.Response(status, json={"messages": messages, "success": False})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Any:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


@pytest.fixture
def fake_doppler() -> FakeDoppler:
    return FakeDoppler({"API_KEY": "abc123", "DATABASE_URL": "postgres://db", "DEBUG": "false"})


@pytest.fixture
def store() -> StoreConfig:
    return StoreConfig(
        name="backend",
        uid="0b7c1a52-store",
        project="api",
        config="prd",
        cache=CacheConfig(enabled=True, ttl_seconds=60),
    )


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at *tmp_path* and clear related env vars."""
    monkeypatch.setattr("dopplersecrets.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("DOPPLER_SECRETS_STORE", raising=False)
    monkeypatch.delenv("DOPPLER_BASE_URL", raising=False)
    monkeypatch.delenv("DOPPLER_VERIFY_TLS", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path / "config" / "doppler-secrets"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove connection overrides that would leak in from the environment."""
    monkeypatch.delenv("DOPPLER_BASE_URL", raising=False)
    monkeypatch.delenv("DOPPLER_VERIFY_TLS", raising=False)
