"""
Flooz (Moov Money) Provider Implementation.

Only the public API key is mandatory. Intents are local ``flooz_txn_``
references; the Flooz merchant API is reached at confirmation time.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import FloozConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule

# "failed" is reported for customer cancellations as well as declines
MERCHANT_WALLET_STATUS_TABLE = {
    PaymentStatus.SUCCEEDED: ["completed", "success", "approved"],
    PaymentStatus.PENDING: ["pending"],
    PaymentStatus.PROCESSING: ["processing"],
    PaymentStatus.CANCELED: ["failed", "cancelled"],
    PaymentStatus.REQUIRES_ACTION: ["requires_action"],
}

MERCHANT_WALLET_WEBHOOK_RULES = {
    "payment.created": WebhookRule("payment created", id_key="transaction_id"),
    "payment.succeeded": WebhookRule("payment succeeded", success=True, id_key="transaction_id"),
    "payment.failed": WebhookRule("payment failed", id_key="transaction_id"),
    "payment.cancelled": WebhookRule("payment cancelled", id_key="transaction_id"),
    "refund.succeeded": WebhookRule(
        "refund succeeded",
        success=True,
        id_key="refund_id",
        reference_key="original_payment_id",
    ),
    "refund.failed": WebhookRule("refund failed", id_key="refund_id"),
}


class FloozProvider(HttpPaymentPlugin):
    """Flooz merchant wallet backend."""

    provider = Provider.FLOOZ
    config_model = FloozConfig
    public_key_label = "API key"
    base_url = "https://api.flooz.incorex.com/api/v1"
    reference_prefix = "flooz_txn"
    status_mapper = StatusMapper(Provider.FLOOZ, MERCHANT_WALLET_STATUS_TABLE)
    webhook_mapper = WebhookMapper(
        provider=Provider.FLOOZ,
        event_type_key="type",
        data_path=("data", "object"),
        rules=MERCHANT_WALLET_WEBHOOK_RULES,
        fallback_id_keys=("transaction_id", "id"),
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {credentials.public_key}"}
        config: FloozConfig = credentials.config  # type: ignore[assignment]
        if config.merchant_code:
            headers["X-Merchant-Code"] = config.merchant_code
        return headers

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: FloozConfig = credentials.config  # type: ignore[assignment]
        payload: dict[str, Any] = {
            "reference": client_secret,
            "transaction_id": client_secret,
            "payment_method_data": payment_method_data or None,
        }
        # The merchant API already knows the amount from the reference
        if "amount" in payment_method_data:
            amount = self._amount_from(payment_method_data)
            payload["amount"] = amount.minor_units
            payload["currency"] = amount.currency
        callback_url = payment_method_data.get("callbackUrl", config.callback_url)
        if callback_url:
            payload["callback_url"] = callback_url

        response = await self._request(
            "POST",
            self._url(credentials, "/payments/confirm"),
            headers=self._headers(credentials),
            json=payload,
        )

        body = self._json(response)
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        if response.status_code != 200:
            return self._declined(
                client_secret,
                response,
                code=error.get("code") or "confirmation_error",
                message=error.get("message"),
            )

        return PaymentResult(
            payment_id=client_secret,
            status=self.status_mapper.map(body.get("status")),
            error_message=error.get("message"),
            error_code=error.get("code"),
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/payments/{payment_id}/status"),
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
                "payment_id": payment_id,
                "amount": amount.minor_units if amount else None,
                "currency": amount.currency if amount else None,
                "reason": reason or "Customer request",
            },
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        data = self._json(response)
        return RefundResult(
            refund_id=str(data.get("refund_id") or data.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(amount, data),
            succeeded=data.get("status") in ("completed", "success"),
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
                    "exp_month": int(expiry_month),
                    "exp_year": int(expiry_year),
                    "cvc": cvv,
                },
            },
        )
        data = self._json(response)
        return self._token(response, data.get("token_id") or data.get("id"))
