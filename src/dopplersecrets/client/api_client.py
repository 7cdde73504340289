"""Authenticated HTTP access to the Doppler v3 API.

:class:`APIClient` is the only place that talks to the network.  Every call
goes through :meth:`APIClient.perform_request`, which:

- **Authenticates** with HTTP Basic auth, the token as username and an
  empty password.
- **Sets default headers** -- ``accept: application/json`` always,
  ``content-type: application/json`` on POST, and a ``user-agent``.
  Caller-supplied headers (``if-none-match``, ``accept: text/plain``)
  replace the defaults.
- **Enforces TLS** -- an SSL context with TLS 1.2 as the minimum version.
  Certificate verification is on unless the configuration turns it off.
- **Bounds every call** with a fixed 10 second deadline covering the
  connection and the whole body; a body still arriving after it is
  abandoned with a :class:`~dopplersecrets.exceptions.TransportError`.
- **Disables keep-alive** -- each call opens its own
  :class:`httpx.Client` with no pooled connections and closes it before
  returning.
- **Classifies the response** -- 200-399 is returned as an
  :class:`~dopplersecrets.client.response.APIResponse` (304 flagged as
  not modified); anything else raises via
  :func:`~dopplersecrets.client.response.raise_for_status`.

Calls are never retried here.
"""

from __future__ import annotations

import json
import ssl
import time
from typing import Any, Optional

import certifi
import httpx

from dopplersecrets import __version__
from dopplersecrets.client.response import APIResponse, raise_for_status
from dopplersecrets.exceptions import ConfigError, TransportError
from dopplersecrets.output import get_output

DEFAULT_BASE_URL = "https://api.doppler.com"
DEFAULT_TIMEOUT = 10.0

PROJECTS_PATH = "/v3/projects"
DOWNLOAD_PATH = "/v3/configs/config/secrets/download"
SECRETS_PATH = "/v3/configs/config/secrets"


def normalize_base_url(url: str) -> str:
    """Validate *url* and return it without a trailing slash.

    A URL without a scheme is assumed to be ``https``.

    Raises:
        ConfigError: If the URL cannot be parsed or has no host.
    """
    raw = url.strip().rstrip("/")
    if "://" not in raw:
        raw = f"https://{raw}"
    try:
        parsed = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        raise ConfigError(f"invalid API URL: {url}", cause=exc) from exc
    if not parsed.host:
        raise ConfigError(f"invalid API URL: {url}", cause="URL has no host")
    return raw


class APIClient:
    """Blocking client for the Doppler secrets API.

    Args:
        token: The resolved Doppler token.
        base_url: API root; see :func:`normalize_base_url`.
        verify_tls: Verify server certificates.  Only disable for test
            environments with self-signed certificates.
        timeout: Per-call timeout in seconds.
        transport: Optional :class:`httpx.BaseTransport` used instead of the
            network, e.g. :class:`httpx.MockTransport` in tests.

    Example::

        client = APIClient(token)
        client.authenticate()
        response = client.download_secrets({"project": "api", "config": "prd"})
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        verify_tls: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.token = token
        self.verify_tls = verify_tls
        self.user_agent = f"dopplersecrets/{__version__}"
        self._timeout = timeout
        self._transport = transport
        self._base_url = normalize_base_url(base_url)

    @property
    def base_url(self) -> str:
        return self._base_url

    @base_url.setter
    def base_url(self, value: str) -> None:
        self._base_url = normalize_base_url(value)

    # ------------------------------------------------------------------ #
    # Endpoints
    # ------------------------------------------------------------------ #

    def authenticate(self) -> None:
        """Check the token against a lightweight endpoint.

        The project listing is requested and its body discarded.

        Raises:
            AuthError: If the token is rejected.
        """
        self.perform_request(PROJECTS_PATH, "GET")

    def download_secrets(
        self,
        params: dict[str, str],
        headers: Optional[dict[str, str]] = None,
    ) -> APIResponse:
        """Download the secrets of a config (possibly answered with 304)."""
        return self.perform_request(DOWNLOAD_PATH, "GET", headers=headers, params=params)

    def update_secrets(self, payload: dict[str, Any]) -> APIResponse:
        """POST new secret values and change requests."""
        body = json.dumps(payload).encode("utf-8")
        return self.perform_request(SECRETS_PATH, "POST", body=body)

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def perform_request(
        self,
        path: str,
        method: str = "GET",
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, str]] = None,
        body: Optional[bytes] = None,
    ) -> APIResponse:
        """Send one authenticated request and classify the response.

        Args:
            path: API path appended to :attr:`base_url`.
            method: HTTP method.
            headers: Extra headers; they replace defaults of the same name.
            params: Query parameters.
            body: Raw request body.

        Returns:
            The :class:`APIResponse` for any status from 200 to 399.

        Raises:
            ConfigError: If the final URL is invalid.
            TransportError: On network, TLS or timeout failures.
            AuthError: On 401 / 403.
            HTTPStatusError: On any other status >= 400.
            DecodeError: If a JSON error body cannot be parsed.
        """
        method = method.upper()
        request_headers = httpx.Headers(
            {"accept": "application/json", "user-agent": self.user_agent}
        )
        if method == "POST":
            request_headers["content-type"] = "application/json"
        request_headers.update(headers or {})

        url = f"{self._base_url}{path}"
        get_output().debug(f"{method} {path}")

        deadline = time.monotonic() + self._timeout
        try:
            with httpx.Client(
                timeout=self._timeout,
                verify=self._ssl_context(),
                limits=httpx.Limits(max_keepalive_connections=0),
                transport=self._transport,
            ) as client:
                with client.stream(
                    method,
                    url,
                    headers=request_headers,
                    params=params or None,
                    content=body,
                    auth=(self.token, ""),
                ) as stream:
                    chunks: list[bytes] = []
                    for chunk in stream.iter_bytes():
                        if time.monotonic() > deadline:
                            raise TransportError(
                                "unable to load response",
                                cause=f"no complete response within {self._timeout:g}s",
                            )
                        chunks.append(chunk)
                    response = APIResponse(
                        status_code=stream.status_code,
                        headers=stream.headers,
                        body=b"".join(chunks),
                    )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise ConfigError(f"invalid API URL: {url}", cause=exc) from exc
        except httpx.TransportError as exc:
            raise TransportError("unable to load response", cause=exc) from exc

        get_output().debug(f"HTTP {response.status_code} ({len(response.body)} bytes)")
        raise_for_status(response)
        return response

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context(cafile=certifi.where())
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        if not self.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context
