"""
Flutterwave Provider Implementation.

Standard checkout: confirmation creates a hosted payment link for the local
``tx_ref``; Flutterwave's numeric transaction id is then used for verify and
refund calls.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import FlutterwaveConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class FlutterwaveProvider(HttpPaymentPlugin):
    """Flutterwave v3 backend."""

    provider = Provider.FLUTTERWAVE
    config_model = FlutterwaveConfig
    requires_secret_key = True
    base_url = "https://api.flutterwave.com/v3"
    reference_prefix = "flutterwave"
    status_mapper = StatusMapper(
        Provider.FLUTTERWAVE,
        {
            PaymentStatus.SUCCEEDED: ["successful"],
            PaymentStatus.PENDING: ["pending"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["failed"],
            PaymentStatus.CANCELED: ["cancelled"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.FLUTTERWAVE,
        event_type_key="type",
        data_path=("data", "data"),
        rules={
            "charge.completed": WebhookRule(
                "charge completed",
                reference_key="tx_ref",
                success_statuses=frozenset({"successful"}),
            ),
            "transfer.completed": WebhookRule("transfer completed", success=True),
            "refund.completed": WebhookRule("refund completed", success=True),
            "subscription.cancelled": WebhookRule("subscription cancelled"),
        },
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        return {"Authorization": f"Bearer {credentials.secret_key}"}

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: FlutterwaveConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, "/payments"),
            headers=self._headers(credentials),
            json={
                "tx_ref": client_secret,
                "amount": amount.major_units,
                "currency": amount.currency,
                "redirect_url": payment_method_data.get("successUrl", config.redirect_url),
                "payment_options": payment_method_data.get("paymentType", "card"),
                "customer": {
                    "email": self._require_field(payment_method_data, "customerEmail"),
                    "phonenumber": payment_method_data.get("customerPhone"),
                    "name": payment_method_data.get("customerName"),
                },
                "customizations": {
                    "title": payment_method_data.get("title", "Payment"),
                    "description": payment_method_data.get("description", "Payment transaction"),
                },
            },
        )

        body = self._json(response)
        if response.status_code != 200 or body.get("status") != "success":
            return self._declined(client_secret, response, message=body.get("message"))

        data = body.get("data") or {}
        return PaymentResult(
            payment_id=str(data.get("id") or client_secret),
            status=PaymentStatus.PROCESSING,
            metadata={"link": data.get("link"), "tx_ref": client_secret},
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/transactions/{payment_id}/verify"),
            headers=self._headers(credentials),
        )
        if response.status_code != 200:
            raise self._rejected("fetch_payment_status", response)
        return (self._json(response).get("data") or {}).get("status")

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        body: dict[str, Any] = {"reason": reason or "Customer request"}
        if amount is not None:
            body["amount"] = amount.major_units

        response = await self._request(
            "POST",
            self._url(credentials, f"/transactions/{payment_id}/refund"),
            headers=self._headers(credentials),
            json=body,
        )
        if response.status_code != 200:
            raise self._rejected("refund_payment", response)

        refund = self._json(response).get("data") or {}
        return RefundResult(
            refund_id=str(refund.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, refund),
            succeeded=refund.get("status") in ("successful", "completed"),
        )

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        config: FlutterwaveConfig = credentials.config  # type: ignore[assignment]
        body: dict[str, Any] = {
            "card": {
                "number": card_number,
                "expiry_month": expiry_month,
                "expiry_year": expiry_year,
                "cvv": cvv,
            }
        }
        if config.encryption_key:
            body["encryption_key"] = config.encryption_key

        response = await self._request(
            "POST",
            self._url(credentials, "/tokens"),
            headers=self._headers(credentials),
            json=body,
        )
        return self._token(response, (self._json(response).get("data") or {}).get("token"))
