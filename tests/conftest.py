"""
Pytest Configuration and Centralized Fixtures.

Provides reusable transports and plugins for testing:
- Scripted HTTP backends (httpx.MockTransport) that record every request
- HTTP clients wired to those transports
- Fake plugins and registries for client-facade tests
"""

import json
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

import httpx
import pytest

from unified_payment.models.domain import Amount, Provider
from unified_payment.services.client import PluginRegistry
from unified_payment.services.providers.fake_provider import FakePaymentProvider

# ============================================================================
# Scripted HTTP backend
# ============================================================================


RouteResponse = httpx.Response | Callable[[httpx.Request], httpx.Response]


@dataclass
class ScriptedBackend:
    """
    Route table for httpx.MockTransport.

    Routes are keyed by (METHOD, path). Unrouted requests answer 404 so a
    test fails loudly when a backend calls an unexpected endpoint.
    """

    routes: dict[tuple[str, str], RouteResponse] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def add(self, method: str, path: str, response: RouteResponse) -> None:
        self.routes[(method.upper(), path)] = response

    def json(self, method: str, path: str, body: Any, status_code: int = 200) -> None:
        self.add(method, path, httpx.Response(status_code, json=body))

    def fail(self, method: str, path: str, error: Exception) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise error

        self.add(method, path, _raise)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": f"no route {request.url.path}"})
        if callable(route):
            return route(request)
        return route

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> dict[str, Any]:
        """Decoded JSON request body."""
        return json.loads(request.content or b"{}")

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decoded url-encoded request body."""
        return dict(parse_qsl(request.content.decode()))


@pytest.fixture
def backend() -> ScriptedBackend:
    """Empty scripted backend; tests add the routes they need."""
    return ScriptedBackend()


@pytest.fixture
async def http_client(backend: ScriptedBackend) -> AsyncGenerator[httpx.AsyncClient, None]:
    """AsyncClient whose every request is answered by `backend`."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    yield client
    await client.aclose()


# ============================================================================
# Values
# ============================================================================


@pytest.fixture
def xof_amount() -> Amount:
    return Amount(minor_units=10000, currency="XOF")


@pytest.fixture
def payment_data() -> dict[str, Any]:
    """Confirmation data most HTTP backends need."""
    return {
        "amount": 10000,
        "currency": "XOF",
        "customerPhone": "+22890000000",
        "customerEmail": "customer@example.com",
    }


# ============================================================================
# Fake plugins
# ============================================================================


@pytest.fixture
def fake_plugin() -> FakePaymentProvider:
    return FakePaymentProvider(Provider.FLOOZ)


@pytest.fixture
def fake_registry(fake_plugin: FakePaymentProvider) -> PluginRegistry:
    """Registry resolving Flooz to the shared fake plugin instance."""
    registry = PluginRegistry()
    registry.register(Provider.FLOOZ, lambda **kwargs: fake_plugin)
    return registry
