"""
Bizao Provider Implementation.

The secret key carries the Bizao merchant id, sent as ``X-Merchant-Id``.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import BizaoConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.providers.mtn_momo_provider import MOBILE_MONEY_STATUS_TABLE
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class BizaoProvider(HttpPaymentPlugin):
    """Bizao mobile-money aggregator."""

    provider = Provider.BIZAO
    config_model = BizaoConfig
    requires_secret_key = True
    public_key_label = "API key"
    secret_key_label = "merchant ID"
    base_url = "https://api.bizao.com"
    reference_prefix = "bizao"
    status_mapper = StatusMapper(Provider.BIZAO, MOBILE_MONEY_STATUS_TABLE)
    webhook_mapper = WebhookMapper(
        provider=Provider.BIZAO,
        event_type_key="eventType",
        rules={
            "payment.success": WebhookRule(
                "payment completed",
                id_key="transactionId",
                reference_key="reference",
                success_statuses=frozenset({"successful", "success"}),
            ),
            "payment.failed": WebhookRule(
                "payment failed", id_key="transactionId", reference_key="reference"
            ),
            "refund.completed": WebhookRule("refund completed", success=True, id_key="refundId"),
        },
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {credentials.public_key}",
            "X-Merchant-Id": credentials.secret_key or "",
        }
        config: BizaoConfig = credentials.config  # type: ignore[assignment]
        if config.country_code:
            headers["country-code"] = config.country_code
        return headers

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, "/v1/payments"),
            headers=self._headers(credentials),
            json={
                "merchantId": credentials.secret_key,
                "reference": client_secret,
                "amount": {"value": amount.major_units, "currency": amount.currency},
                "customer": {
                    "email": payment_method_data.get("customerEmail"),
                    "phone": payment_method_data.get("customerPhone"),
                    "name": payment_method_data.get("customerName"),
                },
                "description": payment_method_data.get("description", "Payment transaction"),
                "callbackUrl": payment_method_data.get("successUrl"),
            },
        )

        if not self._ok(response):
            return self._declined(client_secret, response)
        transaction_id = self._json(response).get("transactionId") or client_secret
        return PaymentResult(payment_id=str(transaction_id), status=PaymentStatus.PROCESSING)

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/v1/payments/{payment_id}/status"),
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
        body: dict[str, Any] = {
            "originalTransactionId": payment_id,
            "reason": reason or "Customer request",
        }
        if amount is not None:
            body["amount"] = {"value": amount.major_units, "currency": amount.currency}

        response = await self._request(
            "POST",
            self._url(credentials, "/v1/refunds"),
            headers=self._headers(credentials),
            json=body,
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        refund = self._json(response).get("refund") or {}
        # Bizao reports {"value": <major units>, "currency": ...}
        reported = refund.get("amount") if isinstance(refund.get("amount"), dict) else {}
        minor = round(float(reported.get("value") or 0) * 100)
        return RefundResult(
            refund_id=str(refund.get("refundId") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(
                amount, {"amount": minor, "currency": reported.get("currency")}
            ),
            succeeded=refund.get("status") == "success",
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
            self._url(credentials, "/v1/tokens"),
            headers=self._headers(credentials),
            json={
                "card": {
                    "number": card_number,
                    "expiryMonth": expiry_month,
                    "expiryYear": expiry_year,
                    "cvv": cvv,
                }
            },
        )
        return self._token(response, self._json(response).get("token"))
