"""
Semoa Provider Implementation.

The one mobile-money backend with server-side payment intents: creation is a
remote call and confirmation targets the intent id embedded in the client
secret (``<id>_secret_<nonce>``).
"""

from typing import Any

from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import SemoaConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class SemoaProvider(HttpPaymentPlugin):
    """Semoa payment-intent backend."""

    provider = Provider.SEMOA
    config_model = SemoaConfig
    public_key_label = "API key"
    base_url = "https://api.semoa.com/v1"
    reference_prefix = "semoa"
    status_mapper = StatusMapper(
        Provider.SEMOA,
        {
            PaymentStatus.SUCCEEDED: ["succeeded", "completed"],
            PaymentStatus.PENDING: ["pending"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.CANCELED: ["failed", "cancelled"],
            PaymentStatus.REQUIRES_ACTION: ["requires_action"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.SEMOA,
        event_type_key="type",
        data_path=("data", "object"),
        rules={
            "payment_intent.succeeded": WebhookRule("payment succeeded", success=True),
            "payment_intent.payment_failed": WebhookRule("payment failed"),
            "payment_intent.canceled": WebhookRule("payment canceled"),
            "refund.succeeded": WebhookRule(
                "refund succeeded", success=True, reference_key="payment_intent_id"
            ),
            "refund.failed": WebhookRule("refund failed", reference_key="payment_intent_id"),
        },
    )

    async def _create_payment_intent(
        self,
        credentials: Credentials,
        amount: Amount,
        customer_id: str,
        metadata: dict[str, Any],
    ) -> PaymentIntent:
        config: SemoaConfig = credentials.config  # type: ignore[assignment]
        response = await self._request(
            "POST",
            self._url(credentials, "/payment-intents"),
            headers=self._headers(credentials),
            json={
                "amount": amount.minor_units,
                "currency": amount.currency,
                "customer_id": customer_id,
                "merchant_id": config.merchant_id,
                "metadata": metadata,
                "description": metadata.get("description", "Payment transaction"),
                "sandbox": credentials.use_sandbox,
            },
        )
        if not self._ok(response):
            raise self._rejected("create_payment_intent", response)

        data = self._json(response)
        if not data.get("id"):
            raise ProcessingError(
                "Semoa returned a payment intent without an id",
                code="invalid_response",
                provider=self.provider,
            )
        return PaymentIntent(
            id=str(data["id"]),
            client_secret=str(data.get("client_secret") or data["id"]),
            status=self.status_mapper.map(data.get("status")),
            amount=amount,
            metadata={**metadata, "customer_id": customer_id},
        )

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        payment_id = client_secret.split("_secret_")[0]

        response = await self._request(
            "POST",
            self._url(credentials, f"/payment-intents/{payment_id}/confirm"),
            headers=self._headers(credentials),
            json={
                "payment_method_data": payment_method_data,
                "return_url": payment_method_data.get("returnUrl"),
            },
        )

        body = self._json(response)
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        if response.status_code != 200:
            return self._declined(
                payment_id,
                response,
                code=error.get("code") or "confirmation_error",
                message=error.get("message"),
            )
        return PaymentResult(
            payment_id=payment_id,
            status=self.status_mapper.map(body.get("status")),
            error_message=error.get("message"),
            error_code=error.get("code"),
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/payment-intents/{payment_id.split('_secret_')[0]}"),
            headers=self._headers(credentials),
        )
        if response.status_code != 200:
            raise self._rejected("fetch_payment_status", response)
        return self._json(response).get("status")

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        response = await self._request(
            "POST",
            self._url(credentials, "/refunds"),
            headers=self._headers(credentials),
            json={
                "payment_intent_id": payment_id,
                "amount": amount.minor_units if amount else None,
                "currency": amount.currency if amount else None,
                "reason": reason or "Customer request",
            },
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        data = self._json(response)
        return RefundResult(
            refund_id=str(data.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, data),
            succeeded=data.get("status") == "succeeded",
        )

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        response = await self._request(
            "POST",
            self._url(credentials, "/payment-methods"),
            headers=self._headers(credentials),
            json={
                "type": "card",
                "card": {
                    "number": card_number,
                    "expiry_month": int(expiry_month),
                    "expiry_year": int(expiry_year),
                    "cvc": cvv,
                },
            },
        )
        return self._token(response, self._json(response).get("id"))
