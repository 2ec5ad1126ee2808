"""
Tests for the client facade and plugin registry.
"""

import httpx
import pytest

from unified_payment.exceptions import NotInitializedError, UnsupportedProviderError
from unified_payment.models.domain import Amount, PaymentStatus, PluginState, Provider
from unified_payment.services.client import PaymentClient, PluginRegistry, default_registry
from unified_payment.services.providers.fake_provider import FakePaymentProvider
from unified_payment.services.providers.flooz_provider import FloozProvider
from unified_payment.services.providers.klarna_provider import KlarnaProvider


class TestPluginRegistry:
    """Tests for provider resolution."""

    def test_default_registry_has_every_backend_but_paypal(self):
        registry = default_registry()

        assert len(registry.providers) == 14
        assert set(registry.providers) == set(Provider) - {Provider.PAYPAL}
        assert registry.supports(Provider.KLARNA)
        assert not registry.supports(Provider.PAYPAL)

    def test_resolve_builds_fresh_plugins(self):
        registry = default_registry()
        first = registry.resolve(Provider.FLOOZ)
        second = registry.resolve(Provider.FLOOZ)

        assert isinstance(first, FloozProvider)
        assert first is not second

    @pytest.mark.parametrize("provider", default_registry().providers)
    def test_resolved_plugin_reports_its_provider(self, provider: Provider):
        assert default_registry().resolve(provider).provider is provider

    def test_resolve_unregistered(self):
        with pytest.raises(UnsupportedProviderError) as exc_info:
            PluginRegistry().resolve(Provider.WAVE)
        assert exc_info.value.provider is Provider.WAVE

    def test_register_and_unregister(self):
        registry = PluginRegistry()
        registry.register(Provider.PAYPAL, lambda **kwargs: FakePaymentProvider(Provider.PAYPAL))

        assert registry.providers == [Provider.PAYPAL]
        assert registry.resolve(Provider.PAYPAL).provider is Provider.PAYPAL
        assert registry.unregister(Provider.PAYPAL) is True
        assert registry.unregister(Provider.PAYPAL) is False

    def test_resolve_forwards_kwargs(self):
        client = httpx.AsyncClient()
        plugin = default_registry().resolve(Provider.FLOOZ, http_client=client)
        assert plugin.http_client is client  # type: ignore[attr-defined]


class TestPaymentClient:
    """Tests for the facade."""

    def test_paypal_is_unsupported(self):
        """Test that PayPal fails at construction, before any network activity."""
        with pytest.raises(UnsupportedProviderError):
            PaymentClient(Provider.PAYPAL)

    def test_capability_properties(self):
        client = PaymentClient(Provider.STRIPE)

        assert client.provider is Provider.STRIPE
        assert client.supports_3ds is True
        assert client.requires_client_secret is True
        assert client.display_name == "Stripe"

    def test_klarna_capabilities(self):
        client = PaymentClient(Provider.KLARNA)

        assert isinstance(client.plugin, KlarnaProvider)
        assert client.supports_3ds is False
        assert client.requires_client_secret is False

    @pytest.mark.asyncio
    async def test_forwards_every_operation(
        self, fake_plugin: FakePaymentProvider, fake_registry: PluginRegistry
    ):
        client = PaymentClient(Provider.FLOOZ, registry=fake_registry)
        assert client.plugin is fake_plugin

        await client.initialize("pk", None, {"useSandbox": True})
        intent = await client.create_payment_intent(Amount(100, "XOF"), "cust-1", {"a": 1})
        result = await client.confirm_payment(intent.client_secret, {"amount": 100})
        status = await client.fetch_payment_status(result.payment_id)
        refund = await client.refund_payment(result.payment_id)
        token = await client.tokenize_card("4242424242424242", "12", "2030", "123")
        event = await client.handle_webhook_event({"type": "payment.failed", "data": {"id": "x"}})
        await client.dispose()

        assert intent.metadata == {"a": 1, "customer_id": "cust-1"}
        assert result.succeeded
        assert status is PaymentStatus.SUCCEEDED
        assert refund.succeeded
        assert token == "tok_fake_4242"
        assert event.success is False
        assert [name for name, _ in fake_plugin.calls] == [
            "initialize",
            "create_payment_intent",
            "confirm_payment",
            "fetch_payment_status",
            "refund_payment",
            "tokenize_card",
            "dispose",
        ]

    @pytest.mark.asyncio
    async def test_async_context_manager_disposes(
        self, fake_plugin: FakePaymentProvider, fake_registry: PluginRegistry
    ):
        async with PaymentClient(Provider.FLOOZ, registry=fake_registry) as client:
            await client.initialize("pk")
            assert fake_plugin.is_ready

        assert fake_plugin.state is PluginState.UNINITIALIZED


class TestFloozEndToEnd:
    """Full flow through the facade against a scripted Flooz API."""

    @pytest.mark.asyncio
    async def test_flow(self, backend, http_client: httpx.AsyncClient):
        backend.json("POST", "/api/v1/payments/confirm", {"status": "processing"})

        client = PaymentClient(Provider.FLOOZ, http_client=http_client)
        await client.initialize("k")

        intent = await client.create_payment_intent(Amount(10000, "XOF"), "customer-7")
        assert intent.status is PaymentStatus.PENDING
        assert intent.id.startswith("flooz_")
        assert intent.client_secret == intent.id
        assert intent.metadata is not None
        assert intent.metadata["amount"] == 10000
        assert intent.metadata["currency"] == "XOF"
        assert intent.metadata["customer_id"] == "customer-7"
        assert backend.requests == []

        result = await client.confirm_payment(intent.client_secret)
        assert result.status in (
            PaymentStatus.PROCESSING,
            PaymentStatus.SUCCEEDED,
            PaymentStatus.FAILED,
        )
        assert result.payment_id == intent.id

        sent = backend.calls("/api/v1/payments/confirm")[0]
        assert sent.headers["Authorization"] == "Bearer k"
        body = backend.body(sent)
        assert body["reference"] == intent.id
        assert body["transaction_id"] == intent.id
        assert "amount" not in body

        backend.json("GET", f"/api/v1/payments/{intent.id}/status", {"status": "completed"})
        assert await client.fetch_payment_status(intent.id) is PaymentStatus.SUCCEEDED

        await client.dispose()
        with pytest.raises(NotInitializedError):
            await client.fetch_payment_status(intent.id)

        # Injected clients belong to the caller
        assert http_client.is_closed is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "answer,status_code,expected",
        [
            ({"status": "processing"}, 200, PaymentStatus.PROCESSING),
            ({"status": "completed"}, 200, PaymentStatus.SUCCEEDED),
            ({"error": {"code": "insufficient_funds", "message": "Low balance"}}, 402, None),
        ],
    )
    async def test_confirm_with_client_secret_only(
        self, backend, http_client: httpx.AsyncClient, answer, status_code, expected
    ):
        """Test that confirming needs nothing beyond the intent's client secret."""
        backend.json("POST", "/api/v1/payments/confirm", answer, status_code=status_code)

        async with PaymentClient(Provider.FLOOZ, http_client=http_client) as client:
            await client.initialize("k")
            intent = await client.create_payment_intent(Amount(10000, "XOF"), "cus_1")
            result = await client.confirm_payment(intent.client_secret)

        if expected is None:
            assert result.failed
            assert result.error_code == "insufficient_funds"
        else:
            assert result.status is expected
        assert backend.body(backend.requests[0])["payment_method_data"] is None

    @pytest.mark.asyncio
    async def test_payment_method_data_passed_through(
        self, backend, http_client: httpx.AsyncClient
    ):
        backend.json("POST", "/api/v1/payments/confirm", {"status": "pending"})

        async with PaymentClient(Provider.FLOOZ, http_client=http_client) as client:
            await client.initialize("k")
            await client.confirm_payment(
                "flooz_txn_1", {"customerPhone": "+22890000000", "amount": 500, "currency": "xof"}
            )

        body = backend.body(backend.requests[0])
        assert body["payment_method_data"] == {
            "customerPhone": "+22890000000",
            "amount": 500,
            "currency": "xof",
        }
        assert body["amount"] == 500
        assert body["currency"] == "XOF"
