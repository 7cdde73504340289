"""HTTP client module for dopplersecrets.

Classes:
    :class:`APIClient` -- authenticated, keep-alive-free access to the
    Doppler v3 API backed by :mod:`httpx`.
    :class:`APIResponse` -- a classified 2xx/3xx response.
    :class:`SecretsService` -- ETag-revalidated downloads and diff-based
    pushes on top of an ``APIClient`` and a shared cache.

Example::

    from dopplersecrets.client import APIClient, SecretsService

    service = SecretsService(APIClient(token), cache=cache)
    secret = service.get_secret(SecretRequest(name="DATABASE_URL", project="api", config="prd"))
"""

from dopplersecrets.client.api_client import APIClient
from dopplersecrets.client.response import APIResponse
from dopplersecrets.client.secrets_service import SecretsService

__all__ = ["APIClient", "APIResponse", "SecretsService"]
