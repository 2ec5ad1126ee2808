"""
Tests for MTN MoMo, Flooz/Mixx by Yas and Semoa.
"""

import httpx
import pytest

from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import Amount, PaymentStatus, Provider
from unified_payment.services.providers.mixx_by_yas_provider import MixxByYasProvider
from unified_payment.services.providers.mtn_momo_provider import MtnMomoProvider
from unified_payment.services.providers.semoa_provider import SemoaProvider

MTN_CONFIG = {"subscriptionKey": "sub-1", "callbackUrl": "https://shop/cb"}


@pytest.fixture
async def mtn(http_client: httpx.AsyncClient) -> MtnMomoProvider:
    plugin = MtnMomoProvider(http_client=http_client)
    await plugin.initialize("api-user", "api-key", MTN_CONFIG)
    return plugin


class TestMtnMomo:
    """Tests for MTN Mobile Money."""

    @pytest.mark.asyncio
    async def test_request_to_pay_accepted(self, backend, mtn: MtnMomoProvider, payment_data):
        backend.add("POST", "/v1_0/merchantpay/collections", httpx.Response(202))

        result = await mtn.confirm_payment("mtn_1_2", payment_data)

        assert result.status is PaymentStatus.PROCESSING
        sent = backend.requests[0]
        assert sent.headers["X-Reference-Id"] == "mtn_1_2"
        assert sent.headers["Ocp-Apim-Subscription-Key"] == "sub-1"
        assert sent.headers["X-Callback-Url"] == "https://shop/cb"
        assert sent.headers["X-Target-Environment"] == "production"
        body = backend.body(sent)
        assert body["amount"] == "10000"
        assert body["payer"] == {"partyIdType": "MSISDN", "partyId": "+22890000000"}

    @pytest.mark.asyncio
    async def test_request_to_pay_rejected(self, backend, mtn: MtnMomoProvider, payment_data):
        backend.json("POST", "/v1_0/merchantpay/collections", {"code": "PAYER_NOT_FOUND"}, 409)

        result = await mtn.confirm_payment("mtn_1_2", payment_data)

        assert result.failed
        assert result.error_code == "api_error"
        assert "409" in (result.error_message or "")

    @pytest.mark.asyncio
    async def test_payer_phone_required(self, mtn: MtnMomoProvider):
        with pytest.raises(ProcessingError) as exc_info:
            await mtn.confirm_payment("mtn_1_2", {"amount": 100, "currency": "XOF"})
        assert exc_info.value.code == "missing_payment_data"

    @pytest.mark.asyncio
    async def test_fetch(self, backend, mtn: MtnMomoProvider):
        backend.json("GET", "/v1_0/merchantpay/collections/mtn_1_2", {"status": "SUCCESSFUL"})
        assert await mtn.fetch_payment_status("mtn_1_2") is PaymentStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_refund(self, backend, mtn: MtnMomoProvider):
        backend.json(
            "POST",
            "/v1_0/merchantpay/refunds",
            {"refund": {"refundId": "rf-1", "status": "success"}},
        )

        refund = await mtn.refund_payment("mtn_1_2", Amount(2500, "XOF"))

        assert refund.succeeded
        assert refund.refund_id == "rf-1"
        assert backend.body(backend.requests[0])["amount"] == "25.0"

    @pytest.mark.asyncio
    async def test_sandbox_environment_header(self, backend, http_client: httpx.AsyncClient):
        backend.json("GET", "/v1_0/merchantpay/collections/x", {"status": "pending"})
        plugin = MtnMomoProvider(http_client=http_client)
        await plugin.initialize("u", "k", {**MTN_CONFIG, "useSandbox": True})

        await plugin.fetch_payment_status("x")

        assert backend.requests[0].headers["X-Target-Environment"] == "sandbox"


class TestMixxByYas:
    """Mixx shares the Flooz merchant API under its own identity."""

    @pytest.mark.asyncio
    async def test_identity(self, backend, http_client: httpx.AsyncClient):
        backend.json("POST", "/api/v1/payments/confirm", {"status": "approved"})
        plugin = MixxByYasProvider(http_client=http_client)
        await plugin.initialize("k", additional_config={"merchantCode": "M-9"})

        intent = await plugin.create_payment_intent(Amount(500, "XOF"), "c")
        result = await plugin.confirm_payment(intent.id, {"amount": 500, "currency": "XOF"})

        assert plugin.provider is Provider.MIXX_BY_YAS
        assert intent.id.startswith("mixx_txn_")
        assert result.succeeded
        sent = backend.requests[0]
        assert sent.url.host == "api.mixxbyyas.com"
        assert sent.headers["X-Merchant-Code"] == "M-9"

    @pytest.mark.asyncio
    async def test_webhook_reports_mixx(self):
        event = await MixxByYasProvider().handle_webhook_event(
            {"type": "payment.succeeded", "data": {"object": {"transaction_id": "mixx_txn_1"}}}
        )
        assert event.provider is Provider.MIXX_BY_YAS
        assert event.message.startswith("Mixx by Yas payment succeeded")


class TestSemoa:
    """Semoa creates intents remotely."""

    @pytest.mark.asyncio
    async def test_remote_intent(self, backend, http_client: httpx.AsyncClient):
        backend.json(
            "POST",
            "/v1/payment-intents",
            {"id": "spi_1", "client_secret": "spi_1_secret_x", "status": "pending"},
            status_code=201,
        )
        plugin = SemoaProvider(http_client=http_client)
        await plugin.initialize("k", additional_config={"merchantId": "m-1"})

        intent = await plugin.create_payment_intent(Amount(700, "XOF"), "cust")

        assert intent.id == "spi_1"
        assert intent.client_secret == "spi_1_secret_x"
        assert intent.status is PaymentStatus.PENDING
        assert backend.body(backend.requests[0])["merchant_id"] == "m-1"

    @pytest.mark.asyncio
    async def test_remote_intent_rejected(self, backend, http_client: httpx.AsyncClient):
        backend.json("POST", "/v1/payment-intents", {"error": "bad"}, status_code=400)
        plugin = SemoaProvider(http_client=http_client)
        await plugin.initialize("k")

        with pytest.raises(ProcessingError) as exc_info:
            await plugin.create_payment_intent(Amount(700, "XOF"), "cust")
        assert exc_info.value.code == "api_error"

    @pytest.mark.asyncio
    async def test_remote_intent_without_id(self, backend, http_client: httpx.AsyncClient):
        backend.json("POST", "/v1/payment-intents", {"status": "pending"})
        plugin = SemoaProvider(http_client=http_client)
        await plugin.initialize("k")

        with pytest.raises(ProcessingError) as exc_info:
            await plugin.create_payment_intent(Amount(700, "XOF"), "cust")
        assert exc_info.value.code == "invalid_response"

    @pytest.mark.asyncio
    async def test_confirm_strips_secret(self, backend, http_client: httpx.AsyncClient):
        backend.json("POST", "/v1/payment-intents/spi_1/confirm", {"status": "requires_action"})
        plugin = SemoaProvider(http_client=http_client)
        await plugin.initialize("k")

        result = await plugin.confirm_payment("spi_1_secret_x")

        assert result.payment_id == "spi_1"
        assert result.requires_action
