"""
FedaPay Provider Implementation.

The secret key slot carries the FedaPay environment name ("live" or
"sandbox"), forwarded on every call as ``FedaPay-Environment``.
"""

from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.models.provider_config import FedaPayConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class FedaPayProvider(HttpPaymentPlugin):
    """FedaPay transactions backend."""

    provider = Provider.FEDAPAY
    config_model = FedaPayConfig
    requires_secret_key = True
    public_key_label = "API key"
    secret_key_label = "environment"
    base_url = "https://api.fedapay.com"
    sandbox_base_url = "https://sandbox-api.fedapay.com"
    reference_prefix = "fedapay"
    status_mapper = StatusMapper(
        Provider.FEDAPAY,
        {
            PaymentStatus.SUCCEEDED: ["approved", "success", "successful"],
            PaymentStatus.PENDING: ["pending", "started"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["failed", "error", "declined", "cancelled"],
            PaymentStatus.CANCELED: ["canceled", "cancelled"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.FEDAPAY,
        event_type_key="entity",
        rules={
            "transaction": WebhookRule(
                "transaction",
                reference_key="reference",
                success_statuses=frozenset({"approved"}),
            ),
            "payout": WebhookRule("payout completed", success=True),
        },
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {credentials.public_key}",
            "FedaPay-Environment": credentials.secret_key or "",
        }

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: FedaPayConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, "/v1/transactions"),
            headers=self._headers(credentials),
            json={
                "amount": amount.major_units,
                "currency": {"iso": amount.currency},
                "customer": {
                    "firstname": payment_method_data.get("customerFirstName"),
                    "lastname": payment_method_data.get("customerLastName"),
                    "email": payment_method_data.get("customerEmail"),
                    "phone_number": {
                        "number": payment_method_data.get("customerPhone"),
                        "country": payment_method_data.get("customerCountry"),
                    },
                },
                "description": payment_method_data.get("description", "Payment transaction"),
                "callback_url": payment_method_data.get("successUrl", config.callback_url),
                "merchant_reference": client_secret,
                "mode": "test" if credentials.use_sandbox else "live",
            },
        )

        if not self._ok(response):
            return self._declined(client_secret, response)
        transaction_id = self._json(response).get("id") or client_secret
        return PaymentResult(payment_id=str(transaction_id), status=PaymentStatus.PROCESSING)

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/v1/transactions/{payment_id}"),
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
        body: dict[str, Any] = {"reason": reason or "Customer request"}
        if amount is not None:
            body["amount"] = amount.major_units

        response = await self._request(
            "POST",
            self._url(credentials, f"/v1/transactions/{payment_id}/refund"),
            headers=self._headers(credentials),
            json=body,
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        refund = self._json(response).get("refund") or {}
        currency = refund.get("currency")
        return RefundResult(
            refund_id=str(refund.get("id") or ""),
            payment_id=payment_id,
            amount=self._refunded_amount(
                amount,
                {
                    "amount": refund.get("amount"),
                    "currency": currency.get("iso") if isinstance(currency, dict) else currency,
                },
            ),
            succeeded=refund.get("status") == "approved",
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
                    "expiration_month": int(expiry_month),
                    "expiration_year": int(expiry_year),
                    "cvc": cvv,
                }
            },
        )
        return self._token(response, self._json(response).get("token"))
