"""
MTN Mobile Money Provider Implementation.

Collections are initiated with a request-to-pay that MTN answers with 202;
the final outcome arrives through status polling or a callback.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import MtnMomoConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule

# Shared by MTN, Orange Money and Bizao
MOBILE_MONEY_STATUS_TABLE = {
    PaymentStatus.SUCCEEDED: ["successful", "success", "completed"],
    PaymentStatus.PENDING: ["pending", "initiated"],
    PaymentStatus.PROCESSING: ["processing"],
    PaymentStatus.FAILED: ["failed", "error"],
    PaymentStatus.CANCELED: ["cancelled", "canceled"],
}

MTN_WEBHOOK_RULES = {
    "payment.success": WebhookRule(
        "payment completed",
        id_key="transactionId",
        reference_key="externalId",
        success_statuses=frozenset({"successful", "success"}),
    ),
    "payment.failed": WebhookRule(
        "payment failed", id_key="transactionId", reference_key="externalId"
    ),
    "refund.completed": WebhookRule("refund completed", success=True, id_key="refundId"),
}


class MtnMomoProvider(HttpPaymentPlugin):
    """MTN MoMo merchant-pay backend (API user + key, plus APIM subscription key)."""

    provider = Provider.MTN_MOMO
    config_model = MtnMomoConfig
    requires_secret_key = True
    public_key_label = "API key"
    secret_key_label = "API secret"
    base_url = "https://api.mtn.com"
    reference_prefix = "mtn"
    status_mapper = StatusMapper(Provider.MTN_MOMO, MOBILE_MONEY_STATUS_TABLE)
    webhook_mapper = WebhookMapper(
        provider=Provider.MTN_MOMO, event_type_key="eventType", rules=MTN_WEBHOOK_RULES
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        config: MtnMomoConfig = credentials.config  # type: ignore[assignment]
        headers = {
            "Authorization": f"Bearer {credentials.public_key}",
            "X-Target-Environment": "sandbox" if credentials.use_sandbox else "production",
            "Ocp-Apim-Subscription-Key": config.subscription_key,
        }
        if config.callback_url:
            headers["X-Callback-Url"] = config.callback_url
        return headers

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        amount = self._amount_from(payment_method_data)
        payer = self._require_field(payment_method_data, "customerPhone")

        response = await self._request(
            "POST",
            self._url(credentials, "/v1_0/merchantpay/collections"),
            headers={**self._headers(credentials), "X-Reference-Id": client_secret},
            json={
                "amount": str(amount.minor_units),
                "currency": amount.currency,
                "externalId": client_secret,
                "payer": {"partyIdType": "MSISDN", "partyId": payer},
                "payerMessage": payment_method_data.get("description", "Payment transaction"),
                "payeeNote": "Payment received",
            },
        )

        if response.status_code != 202:
            return self._declined(client_secret, response)
        return PaymentResult(payment_id=client_secret, status=PaymentStatus.PROCESSING)

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/v1_0/merchantpay/collections/{payment_id}"),
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
            body["amount"] = str(amount.major_units)
            body["currency"] = amount.currency

        response = await self._request(
            "POST",
            self._url(credentials, "/v1_0/merchantpay/refunds"),
            headers=self._headers(credentials),
            json=body,
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        refund = self._json(response).get("refund") or {}
        return RefundResult(
            refund_id=str(refund.get("refundId") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, refund),
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
            self._url(credentials, "/v1_0/merchantpay/tokens"),
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
