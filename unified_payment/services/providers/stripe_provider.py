"""
Stripe Payment Provider Implementation.

NO DICTIONARIES - All results use strongly typed models.

Server-side calls go through the official SDK with the secret key passed per
request, so several Stripe accounts can live in one process. The SDK is
blocking; every call runs in a worker thread.
"""

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

import stripe
from structlog import get_logger

from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import StripeConfig
from unified_payment.services.payment_provider import BasePaymentPlugin, Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule

logger = get_logger(__name__)

T = TypeVar("T")


STRIPE_STATUSES = StatusMapper(
    Provider.STRIPE,
    {
        PaymentStatus.SUCCEEDED: ["succeeded"],
        PaymentStatus.PENDING: [
            "requires_payment_method",
            "requires_confirmation",
            "requires_capture",
        ],
        PaymentStatus.PROCESSING: ["processing"],
        PaymentStatus.CANCELED: ["canceled"],
        PaymentStatus.REQUIRES_ACTION: ["requires_action"],
    },
)

STRIPE_WEBHOOKS = WebhookMapper(
    provider=Provider.STRIPE,
    event_type_key="type",
    data_path=("data", "object"),
    rules={
        "payment_intent.succeeded": WebhookRule("payment succeeded", success=True),
        "payment_intent.payment_failed": WebhookRule("payment failed"),
        "payment_intent.canceled": WebhookRule("payment canceled"),
        "payment_intent.processing": WebhookRule("payment processing"),
        "charge.refunded": WebhookRule(
            "charge refunded", success=True, reference_key="payment_intent"
        ),
    },
)


class StripeProvider(BasePaymentPlugin):
    """
    Stripe payment provider implementation.

    `public_key` is the publishable key handed to clients; `secret_key` is
    only needed for server calls and is checked when one is made.
    """

    provider = Provider.STRIPE
    config_model = StripeConfig
    public_key_label = "publishable key"
    status_mapper = STRIPE_STATUSES
    webhook_mapper = STRIPE_WEBHOOKS

    def _api_key(self, credentials: Credentials) -> str:
        if not credentials.secret_key:
            raise ProcessingError(
                "Stripe secret key is required for server-side calls",
                code="missing_secret_key",
                provider=self.provider,
            )
        return credentials.secret_key

    @staticmethod
    async def _call(method: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a blocking SDK call off the event loop."""
        return await asyncio.to_thread(method, *args, **kwargs)

    def _sdk_error(self, operation: str, exc: stripe.StripeError) -> ProcessingError:
        logger.error(
            "stripe_api_call_failed",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        code = "transport_error" if isinstance(exc, stripe.APIConnectionError) else "api_error"
        return ProcessingError(
            f"Stripe {operation} failed: {exc}", code=code, provider=self.provider
        )

    async def _create_payment_intent(
        self,
        credentials: Credentials,
        amount: Amount,
        customer_id: str,
        metadata: dict[str, Any],
    ) -> PaymentIntent:
        api_key = self._api_key(credentials)
        try:
            payment_intent = await self._call(
                stripe.PaymentIntent.create,
                api_key=api_key,
                amount=amount.minor_units,
                currency=amount.currency.lower(),
                metadata={**{k: str(v) for k, v in metadata.items()}, "customer_id": customer_id},
            )
        except stripe.StripeError as exc:
            raise self._sdk_error("create_payment_intent", exc) from exc

        return PaymentIntent(
            id=payment_intent.id,
            client_secret=payment_intent.client_secret or "",
            status=self.status_mapper.map(payment_intent.status),
            amount=amount,
            metadata={**metadata, "customer_id": customer_id},
        )

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        api_key = self._api_key(credentials)
        # Client secrets look like "pi_123_secret_abc"
        payment_id = client_secret.split("_secret_")[0]

        params: dict[str, Any] = {}
        if payment_method_data.get("paymentMethodId"):
            params["payment_method"] = payment_method_data["paymentMethodId"]
        if payment_method_data.get("returnUrl"):
            params["return_url"] = payment_method_data["returnUrl"]

        try:
            payment_intent = await self._call(
                stripe.PaymentIntent.confirm, payment_id, api_key=api_key, **params
            )
        except stripe.APIConnectionError as exc:
            raise self._sdk_error("confirm_payment", exc) from exc
        except stripe.StripeError as exc:
            # Declines and invalid states are business outcomes
            return PaymentResult(
                payment_id=payment_id,
                status=PaymentStatus.FAILED,
                error_message=exc.user_message or str(exc),
                error_code=exc.code or "card_error",
            )

        status = self.status_mapper.map(payment_intent.status)
        next_action = getattr(payment_intent, "next_action", None)
        return PaymentResult(
            payment_id=payment_intent.id,
            status=status,
            metadata={"next_action": next_action} if next_action else None,
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        payment_intent = await self._call(
            stripe.PaymentIntent.retrieve,
            payment_id.split("_secret_")[0],
            api_key=self._api_key(credentials),
        )
        return payment_intent.status

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        params: dict[str, Any] = {"payment_intent": payment_id}
        if amount is not None:
            params["amount"] = amount.minor_units
        if reason:
            params["metadata"] = {"reason": reason}

        try:
            refund = await self._call(
                stripe.Refund.create, api_key=self._api_key(credentials), **params
            )
        except stripe.StripeError as exc:
            raise self._sdk_error("refund_payment", exc) from exc

        refunded = amount or Amount(minor_units=refund.amount, currency=refund.currency.upper())
        return RefundResult(
            refund_id=refund.id,
            payment_id=payment_id,
            amount=refunded,
            succeeded=refund.status == "succeeded",
            error_message=getattr(refund, "failure_reason", None),
        )

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        try:
            payment_method = await self._call(
                stripe.PaymentMethod.create,
                api_key=self._api_key(credentials),
                type="card",
                card={
                    "number": card_number,
                    "exp_month": int(expiry_month),
                    "exp_year": int(expiry_year),
                    "cvc": cvv,
                },
            )
        except stripe.StripeError as exc:
            raise self._sdk_error("tokenize_card", exc) from exc

        token: str = payment_method.id
        return token
