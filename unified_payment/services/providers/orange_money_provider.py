"""
Orange Money Provider Implementation.

Web payments through the Orange developer API. Every call needs an OAuth
access token obtained with the client id/secret pair (Basic auth), which is
cached until shortly before it expires.
"""

import base64
from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import OrangeMoneyConfig
from unified_payment.services.http_provider import OAuthHttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.providers.mtn_momo_provider import MOBILE_MONEY_STATUS_TABLE
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule

WEBPAY_PATH = "/orange-money-webpay/dev/v1"


class OrangeMoneyProvider(OAuthHttpPaymentPlugin):
    """Orange Money web payment backend."""

    provider = Provider.ORANGE_MONEY
    config_model = OrangeMoneyConfig
    requires_secret_key = True
    public_key_label = "client ID"
    secret_key_label = "client secret"
    base_url = "https://api.orange.com"
    sandbox_base_url = "https://api-sandbox.orange.com"
    reference_prefix = "om"
    status_mapper = StatusMapper(Provider.ORANGE_MONEY, MOBILE_MONEY_STATUS_TABLE)
    webhook_mapper = WebhookMapper(
        provider=Provider.ORANGE_MONEY,
        event_type_key="event_type",
        rules={
            "payment_success": WebhookRule(
                "payment completed",
                id_key="transaction_id",
                reference_key="order_id",
                success_statuses=frozenset({"success"}),
            ),
            "payment_failed": WebhookRule(
                "payment failed", id_key="transaction_id", reference_key="order_id"
            ),
            "refund_completed": WebhookRule("refund completed", success=True, id_key="refund_id"),
        },
    )

    def _token_url(self, credentials: Credentials) -> str:
        # Tokens are issued by the production host for both environments
        return f"{self.base_url}/oauth/v3/token"

    def _token_request(self, credentials: Credentials) -> dict[str, Any]:
        basic = base64.b64encode(
            f"{credentials.public_key}:{credentials.secret_key}".encode()
        ).decode()
        return {
            "headers": {"Authorization": f"Basic {basic}", "Accept": "application/json"},
            "data": {"grant_type": "client_credentials"},
        }

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: OrangeMoneyConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, f"{WEBPAY_PATH}/webpayment"),
            headers=await self._auth_headers(credentials),
            json={
                "merchant_key": config.merchant_key,
                "currency": amount.currency,
                "order_id": client_secret,
                "amount": amount.minor_units,
                "return_url": payment_method_data.get("successUrl", config.return_url),
                "cancel_url": payment_method_data.get("cancelUrl", config.cancel_url),
                "notif_url": payment_method_data.get("webhookUrl", config.notif_url),
                "lang": payment_method_data.get("lang", config.lang),
                "reference": client_secret,
            },
        )

        if not self._ok(response):
            return self._declined(client_secret, response)

        body = self._json(response)
        if not body.get("payment_url") or not body.get("pay_token"):
            return self._declined(
                client_secret,
                response,
                code="invalid_response",
                message="Orange Money did not return a payment URL",
            )
        return PaymentResult(
            payment_id=client_secret,
            status=PaymentStatus.PROCESSING,
            metadata={"payment_url": body["payment_url"], "pay_token": body["pay_token"]},
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "POST",
            self._url(credentials, f"{WEBPAY_PATH}/transactionstatus"),
            headers=await self._auth_headers(credentials),
            json={"order_id": payment_id},
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
        body: dict[str, Any] = {"order_id": payment_id, "reason": reason or "Customer request"}
        if amount is not None:
            body["amount"] = amount.minor_units
            body["currency"] = amount.currency

        response = await self._request(
            "POST",
            self._url(credentials, f"{WEBPAY_PATH}/refund"),
            headers=await self._auth_headers(credentials),
            json=body,
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        refund = self._json(response).get("refund") or {}
        return RefundResult(
            refund_id=str(refund.get("refund_id") or ""),
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
            self._url(credentials, f"{WEBPAY_PATH}/tokenize"),
            headers=await self._auth_headers(credentials),
            json={
                "card_number": card_number,
                "expiry_month": expiry_month,
                "expiry_year": expiry_year,
                "cvv": cvv,
            },
        )
        return self._token(response, self._json(response).get("token"))
