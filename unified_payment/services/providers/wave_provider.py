"""
Wave Provider Implementation.

Confirmation opens a Wave checkout session; the customer completes it in the
Wave app and the session id becomes the payment id to poll.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import WaveConfig
from unified_payment.services.http_provider import OAuthHttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class WaveProvider(OAuthHttpPaymentPlugin):
    """Wave checkout backend (OAuth2 client credentials)."""

    provider = Provider.WAVE
    config_model = WaveConfig
    requires_secret_key = True
    public_key_label = "client ID"
    secret_key_label = "client secret"
    base_url = "https://api.wave.com"
    sandbox_base_url = "https://api.sandbox.wave.com"
    token_path = "/v1/oauth2/token"
    reference_prefix = "wave"
    status_mapper = StatusMapper(
        Provider.WAVE,
        {
            PaymentStatus.SUCCEEDED: ["completed", "success", "successful"],
            PaymentStatus.PENDING: ["pending", "initiated"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["failed", "error"],
            PaymentStatus.CANCELED: ["cancelled", "canceled"],
            PaymentStatus.REQUIRES_ACTION: ["requires_action"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.WAVE,
        event_type_key="type",
        rules={
            "checkout.session.completed": WebhookRule(
                "checkout completed",
                reference_key="client_reference",
                success_statuses=frozenset({"completed"}),
            ),
            "checkout.session.failed": WebhookRule(
                "checkout failed", reference_key="client_reference"
            ),
            "refund.completed": WebhookRule("refund completed", success=True),
            "refund.failed": WebhookRule("refund failed"),
        },
    )

    def _token_request(self, credentials: Credentials) -> dict[str, Any]:
        return {
            "headers": {"Accept": "application/json"},
            "data": {
                "grant_type": "client_credentials",
                "client_id": credentials.public_key,
                "client_secret": credentials.secret_key,
            },
        }

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: WaveConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, "/v1/checkout/sessions"),
            headers=await self._auth_headers(credentials),
            json={
                "amount": str(amount.minor_units),
                "currency": amount.currency,
                "client_reference": client_secret,
                "success_url": payment_method_data.get("successUrl", config.success_url),
                "error_url": payment_method_data.get("errorUrl", config.error_url),
                "payment_method_types": ["wave"],
            },
        )

        if not self._ok(response):
            return self._declined(client_secret, response)

        body = self._json(response)
        session_id = body.get("id")
        return PaymentResult(
            payment_id=str(session_id or client_secret),
            status=PaymentStatus.PROCESSING,
            metadata={"checkout_url": body.get("checkout_url"), "session_id": session_id},
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/v1/checkout/sessions/{payment_id}"),
            headers=await self._auth_headers(credentials),
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
        body: dict[str, Any] = {"session_id": payment_id, "reason": reason or "Customer request"}
        if amount is not None:
            body["amount"] = str(amount.major_units)
            body["currency"] = amount.currency

        response = await self._request(
            "POST",
            self._url(credentials, "/v1/refunds"),
            headers=await self._auth_headers(credentials),
            json=body,
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        data = self._json(response)
        return RefundResult(
            refund_id=str(data.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, data),
            succeeded=data.get("status") == "completed",
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
            self._url(credentials, "/v1/payment-methods"),
            headers=await self._auth_headers(credentials),
            json={
                "type": "card",
                "card": {
                    "number": card_number,
                    "exp_month": expiry_month,
                    "exp_year": expiry_year,
                    "cvc": cvv,
                },
            },
        )
        return self._token(response, self._json(response).get("id"))
