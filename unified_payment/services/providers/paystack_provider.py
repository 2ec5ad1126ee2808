"""
PayStack Provider Implementation.

Confirmation initializes a transaction under the local reference; PayStack
answers with an authorization URL the customer is sent to. Every response is
wrapped in ``{"status": bool, "message": str, "data": {...}}``.
"""

from typing import Any

from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import PaystackConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class PaystackProvider(HttpPaymentPlugin):
    """PayStack backend (test and live keys share one host)."""

    provider = Provider.PAYSTACK
    config_model = PaystackConfig
    requires_secret_key = True
    base_url = "https://api.paystack.co"
    reference_prefix = "paystack"
    status_mapper = StatusMapper(
        Provider.PAYSTACK,
        {
            PaymentStatus.SUCCEEDED: ["success"],
            PaymentStatus.PENDING: ["pending", "ongoing"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["failed"],
            PaymentStatus.CANCELED: ["abandoned", "reversed"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.PAYSTACK,
        event_type_key="event",
        rules={
            "charge.success": WebhookRule(
                "charge successful",
                reference_key="reference",
                success_statuses=frozenset({"success"}),
            ),
            "charge.failed": WebhookRule("charge failed", reference_key="reference"),
            "transfer.success": WebhookRule("transfer successful", success=True),
            "transfer.failed": WebhookRule("transfer failed"),
            "transfer.reversed": WebhookRule("transfer reversed"),
            "refund.processed": WebhookRule("refund processed", success=True),
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
        config: PaystackConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        custom_fields = [
            {
                "display_name": "Payment Reference",
                "variable_name": "reference",
                "value": client_secret,
            }
        ]
        if payment_method_data.get("customerName"):
            custom_fields.append(
                {
                    "display_name": "Customer Name",
                    "variable_name": "customer_name",
                    "value": payment_method_data["customerName"],
                }
            )
        if payment_method_data.get("customerPhone"):
            custom_fields.append(
                {
                    "display_name": "Phone Number",
                    "variable_name": "phone_number",
                    "value": payment_method_data["customerPhone"],
                }
            )

        response = await self._request(
            "POST",
            self._url(credentials, "/transaction/initialize"),
            headers=self._headers(credentials),
            json={
                "reference": client_secret,
                "amount": amount.minor_units,
                "currency": amount.currency,
                "email": self._require_field(payment_method_data, "customerEmail"),
                "callback_url": payment_method_data.get("callbackUrl", config.callback_url),
                "metadata": {"custom_fields": custom_fields},
            },
        )

        body = self._json(response)
        if response.status_code != 200:
            return self._declined(client_secret, response)
        if body.get("status") is not True:
            return self._declined(
                client_secret,
                response,
                code="initialization_failed",
                message=body.get("message"),
            )

        data = body.get("data") or {}
        return PaymentResult(
            payment_id=str(data.get("reference") or client_secret),
            status=PaymentStatus.PROCESSING,
            metadata={
                "authorization_url": data.get("authorization_url"),
                "access_code": data.get("access_code"),
            },
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/transaction/verify/{payment_id}"),
            headers=self._headers(credentials),
        )
        body = self._json(response)
        if response.status_code != 200 or body.get("status") is not True:
            raise self._rejected("fetch_payment_status", response)
        return (body.get("data") or {}).get("status")

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        body: dict[str, Any] = {
            "transaction": payment_id,
            "merchant_note": reason or "Customer request",
        }
        if amount is not None:
            body["amount"] = amount.minor_units
            body["currency"] = amount.currency

        response = await self._request(
            "POST",
            self._url(credentials, "/refund"),
            headers=self._headers(credentials),
            json=body,
        )
        answer = self._json(response)
        if response.status_code != 200 or answer.get("status") is not True:
            raise self._rejected("refund_payment", response)

        refund = answer.get("data") or {}
        return RefundResult(
            refund_id=str(refund.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, refund),
            succeeded=refund.get("status") == "processed",
        )

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        config: PaystackConfig = credentials.config  # type: ignore[assignment]
        if not config.tokenization_email:
            raise ProcessingError(
                "PayStack card tokenization requires 'tokenizationEmail' in additional config",
                code="missing_config",
                provider=self.provider,
            )

        # A minimal charge yields a reusable authorization code
        response = await self._request(
            "POST",
            self._url(credentials, "/charge"),
            headers=self._headers(credentials),
            json={
                "email": config.tokenization_email,
                "amount": "100",
                "card": {
                    "number": card_number,
                    "cvv": cvv,
                    "expiry_month": expiry_month,
                    "expiry_year": expiry_year,
                },
            },
        )
        body = self._json(response)
        authorization = (body.get("data") or {}).get("authorization") or {}
        token = authorization.get("authorization_code") if body.get("status") is True else None
        return self._token(response, token)
