"""
Tests for the Stripe provider.

The SDK is patched; no request leaves the process.
"""

import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest
import stripe

from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import Amount, PaymentStatus
from unified_payment.services.providers.stripe_provider import StripeProvider


@pytest.fixture
async def stripe_plugin() -> StripeProvider:
    plugin = StripeProvider()
    await plugin.initialize("pk_test_123", "sk_test_456")
    return plugin


def intent_object(status: str = "requires_payment_method", **extra) -> MagicMock:
    obj = MagicMock(id="pi_123", client_secret="pi_123_secret_abc", status=status)
    obj.next_action = extra.get("next_action")
    return obj


class TestStripeInitialize:
    @pytest.mark.asyncio
    async def test_secret_key_optional(self):
        plugin = StripeProvider()
        await plugin.initialize("pk_test_123")
        assert plugin.is_ready

    @pytest.mark.asyncio
    async def test_server_call_without_secret(self):
        plugin = StripeProvider()
        await plugin.initialize("pk_test_123")

        with pytest.raises(ProcessingError) as exc_info:
            await plugin.create_payment_intent(Amount(1000, "USD"), "cus_1")
        assert exc_info.value.code == "missing_secret_key"


class TestCreatePaymentIntent:
    @pytest.mark.asyncio
    async def test_create(self, stripe_plugin: StripeProvider):
        with patch.object(stripe.PaymentIntent, "create", return_value=intent_object()) as create:
            intent = await stripe_plugin.create_payment_intent(
                Amount(1999, "USD"), "cus_1", {"order_id": 42}
            )

        assert intent.id == "pi_123"
        assert intent.client_secret == "pi_123_secret_abc"
        assert intent.status is PaymentStatus.PENDING
        create.assert_called_once_with(
            api_key="sk_test_456",
            amount=1999,
            currency="usd",
            metadata={"order_id": "42", "customer_id": "cus_1"},
        )

    @pytest.mark.asyncio
    async def test_create_api_error(self, stripe_plugin: StripeProvider):
        error = stripe.InvalidRequestError("Invalid currency", param="currency")
        with patch.object(stripe.PaymentIntent, "create", side_effect=error):
            with pytest.raises(ProcessingError) as exc_info:
                await stripe_plugin.create_payment_intent(Amount(1999, "USD"), "cus_1")

        assert exc_info.value.code == "api_error"
        assert exc_info.value.__cause__ is error


class TestConfirmPayment:
    @pytest.mark.asyncio
    async def test_confirm_succeeded(self, stripe_plugin: StripeProvider):
        with patch.object(
            stripe.PaymentIntent, "confirm", return_value=intent_object("succeeded")
        ) as confirm:
            result = await stripe_plugin.confirm_payment(
                "pi_123_secret_abc", {"paymentMethodId": "pm_card_visa"}
            )

        assert result.succeeded
        assert result.payment_id == "pi_123"
        assert result.metadata is None
        confirm.assert_called_once_with(
            "pi_123", api_key="sk_test_456", payment_method="pm_card_visa"
        )

    @pytest.mark.asyncio
    async def test_confirm_requires_action(self, stripe_plugin: StripeProvider):
        next_action = {"type": "redirect_to_url"}
        with patch.object(
            stripe.PaymentIntent,
            "confirm",
            return_value=intent_object("requires_action", next_action=next_action),
        ):
            result = await stripe_plugin.confirm_payment("pi_123_secret_abc")

        assert result.requires_action
        assert result.metadata == {"next_action": next_action}

    @pytest.mark.asyncio
    async def test_card_declined_is_returned(self, stripe_plugin: StripeProvider):
        """Test that a decline is a FAILED result, not an exception."""
        error = stripe.CardError("Your card was declined.", None, "card_declined")
        with patch.object(stripe.PaymentIntent, "confirm", side_effect=error):
            result = await stripe_plugin.confirm_payment("pi_123_secret_abc")

        assert result.failed
        assert result.error_code == "card_declined"
        assert result.error_message == "Your card was declined."

    @pytest.mark.asyncio
    async def test_connection_error_raises(self, stripe_plugin: StripeProvider):
        error = stripe.APIConnectionError("Network is unreachable")
        with patch.object(stripe.PaymentIntent, "confirm", side_effect=error):
            with pytest.raises(ProcessingError) as exc_info:
                await stripe_plugin.confirm_payment("pi_123_secret_abc")

        assert exc_info.value.code == "transport_error"

    @pytest.mark.asyncio
    async def test_sdk_call_does_not_block_event_loop(self, stripe_plugin: StripeProvider):
        """Test that other tasks keep running while the SDK waits on the network."""
        ticks = 0

        async def ticker() -> None:
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        def slow_confirm(*args, **kwargs):
            time.sleep(0.3)
            return intent_object("succeeded")

        task = asyncio.create_task(ticker())
        try:
            with patch.object(stripe.PaymentIntent, "confirm", side_effect=slow_confirm):
                result = await stripe_plugin.confirm_payment("pi_123_secret_abc")
        finally:
            task.cancel()

        assert result.succeeded
        assert ticks >= 5


class TestFetchPaymentStatus:
    @pytest.mark.asyncio
    async def test_fetch(self, stripe_plugin: StripeProvider):
        with patch.object(
            stripe.PaymentIntent, "retrieve", return_value=intent_object("processing")
        ) as retrieve:
            status = await stripe_plugin.fetch_payment_status("pi_123_secret_abc")

        assert status is PaymentStatus.PROCESSING
        retrieve.assert_called_once_with("pi_123", api_key="sk_test_456")

    @pytest.mark.asyncio
    async def test_fetch_error_is_failed(self, stripe_plugin: StripeProvider):
        error = stripe.InvalidRequestError("No such payment_intent", param="id")
        with patch.object(stripe.PaymentIntent, "retrieve", side_effect=error):
            assert await stripe_plugin.fetch_payment_status("pi_x") is PaymentStatus.FAILED


class TestRefundAndTokenize:
    @pytest.mark.asyncio
    async def test_partial_refund(self, stripe_plugin: StripeProvider):
        refund_obj = MagicMock(id="re_1", status="succeeded", failure_reason=None)
        with patch.object(stripe.Refund, "create", return_value=refund_obj) as create:
            refund = await stripe_plugin.refund_payment("pi_123", Amount(500, "USD"), "dup")

        assert refund.succeeded
        assert refund.amount == Amount(500, "USD")
        create.assert_called_once_with(
            api_key="sk_test_456",
            payment_intent="pi_123",
            amount=500,
            metadata={"reason": "dup"},
        )

    @pytest.mark.asyncio
    async def test_full_refund_uses_reported_amount(self, stripe_plugin: StripeProvider):
        refund_obj = MagicMock(
            id="re_2", status="pending", amount=1999, currency="usd", failure_reason=None
        )
        with patch.object(stripe.Refund, "create", return_value=refund_obj):
            refund = await stripe_plugin.refund_payment("pi_123")

        assert refund.succeeded is False
        assert refund.amount == Amount(1999, "USD")

    @pytest.mark.asyncio
    async def test_tokenize(self, stripe_plugin: StripeProvider):
        with patch.object(
            stripe.PaymentMethod, "create", return_value=MagicMock(id="pm_1")
        ) as create:
            token = await stripe_plugin.tokenize_card("4242424242424242", "12", "2030", "123")

        assert token == "pm_1"
        assert create.call_args.kwargs["card"] == {
            "number": "4242424242424242",
            "exp_month": 12,
            "exp_year": 2030,
            "cvc": "123",
        }
