"""Shared fixtures: an in-memory Vault served through ``httpx.MockTransport``."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from vault_inject.client import VaultClient

VAULT_URL = "https://vault.test"

Handler = Callable[[httpx.Request], httpx.Response]
Route = Union[Tuple[int, Any], Handler]


class FakeVault:
    """Routes ``(METHOD, api path without /v1/)`` to canned responses.

    Unknown routes answer ``404 {"errors": []}`` like Vault does.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.routes[(method.upper(), path.strip("/"))] = (status, body if body is not None else {})

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method.upper(), path.strip("/"))] = handler

    def add_kv2(self, mount: str, path: str, data: Dict[str, Any]) -> None:
        self.add("GET", f"{mount}/data/{path}", body={"data": {"data": data, "metadata": {}}})

    def add_mounts(self, mounts: Dict[str, Dict[str, Any]]) -> None:
        self.add("GET", "sys/internal/ui/mounts", body={"data": {"auth": {}, "secret": mounts}})

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/v1/"):
            path = path[len("/v1/"):]
        route = self.routes.get((request.method, path.strip("/")))
        if route is None:
            return httpx.Response(404, json={"errors": []})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self, token: Optional[str] = None) -> VaultClient:
        return VaultClient(VAULT_URL, token=token, transport=self.transport)

    def paths(self) -> List[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content.decode()) if request.content else None


@pytest.fixture
def vault() -> FakeVault:
    return FakeVault()
