"""Async HTTP client for the Vault API.

Every request goes to ``<vault_url>/v1/<path>``.  Non-success responses
are raised as :class:`~vault_inject.errors.TransportError` carrying the
status code and the ``errors`` list Vault returns in its body.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from vault_inject.constants import API_PREFIX, DEFAULT_TIMEOUT
from vault_inject.errors import TransportError

logger = logging.getLogger(__name__)


def make_api_url(vault_url: str, path: str) -> str:
    """Join *vault_url* (which may itself have a path) with an API *path*."""
    url = httpx.URL(vault_url)
    prefix = url.path.strip("/")
    api_path = "/".join(p for p in (prefix, API_PREFIX, path.strip("/")) if p)
    return str(url.copy_with(path=f"/{api_path}"))


class VaultClient:
    """Thin JSON wrapper around :class:`httpx.AsyncClient`.

    Parameters
    ----------
    vault_url:
        Root URL of the Vault instance (e.g. ``https://vault.example.com``).
    token:
        Bearer token sent with every request, if any.
    timeout:
        HTTP request timeout in seconds.
    transport:
        Optional custom :mod:`httpx` transport (used by tests).
    """

    def __init__(
        self,
        vault_url: str,
        *,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._vault_url = vault_url
        self._token = token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None  # lazy

    @property
    def vault_url(self) -> str:
        return self._vault_url

    @property
    def token(self) -> Optional[str]:
        return self._token

    def with_token(self, token: str) -> VaultClient:
        """Return a new client sharing this client's connection pool."""
        clone = VaultClient(
            self._vault_url,
            token=token,
            timeout=self._timeout,
            transport=self._transport,
        )
        clone._client = self._ensure_client()
        return clone

    # ── lifecycle ───────────────────────────────────────────────────

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> VaultClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── requests ────────────────────────────────────────────────────

    async def get(self, path: str) -> Dict[str, Any]:
        """``GET`` *path* and return the decoded JSON body."""
        return await self._request("GET", path)

    async def post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """``POST`` *body* as JSON to *path* and return the decoded JSON body."""
        return await self._request("POST", path, body)

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        path = path.strip("/")
        url = make_api_url(self._vault_url, path)
        headers: Dict[str, str] = {}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        logger.debug("%s %s", method, url)
        client = self._ensure_client()
        try:
            resp = await client.request(method, url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Failed to make request to Vault ({type(exc).__name__})", path=path
            ) from exc

        if not resp.is_success:
            errors = _error_messages(resp)
            logger.debug("%s %s -> %d %s", method, url, resp.status_code, errors)
            status = f"{resp.status_code} {resp.reason_phrase}".strip()
            raise TransportError(
                f"{status} response from Vault",
                path=path,
                status_code=resp.status_code,
                errors=errors,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise TransportError(
                "Failed to handle API response from Vault (invalid JSON)", path=path
            ) from exc
        if not isinstance(payload, dict):
            raise TransportError(
                "Failed to handle API response from Vault (expected a JSON object)", path=path
            )
        return payload


def _error_messages(resp: httpx.Response) -> List[str]:
    """Extract Vault's ``{"errors": [...]}`` list, tolerating other bodies."""
    try:
        data = resp.json()
    except ValueError:
        return []
    if isinstance(data, dict) and isinstance(data.get("errors"), list):
        return [str(e) for e in data["errors"] if e]
    return []
