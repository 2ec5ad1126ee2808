"""
Klarna Provider Implementation.

Klarna Payments sessions with HTTP Basic auth (API username as public key,
password as secret key). Klarna never exposes raw card data, so card
tokenization is not offered.
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
from unified_payment.models.provider_config import KlarnaConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule


class KlarnaProvider(HttpPaymentPlugin):
    """Klarna Payments + Order Management backend."""

    provider = Provider.KLARNA
    config_model = KlarnaConfig
    requires_secret_key = True
    public_key_label = "username"
    secret_key_label = "password"
    base_url = "https://api.klarna.com"
    sandbox_base_url = "https://api.playground.klarna.com"
    reference_prefix = "klarna"
    status_mapper = StatusMapper(
        Provider.KLARNA,
        {
            PaymentStatus.SUCCEEDED: ["authorized", "captured"],
            PaymentStatus.PENDING: ["pending"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["expired"],
            PaymentStatus.CANCELED: ["cancelled"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.KLARNA,
        event_type_key="event_type",
        data_path=(),
        rules={
            "ORDER_AUTHORIZED": WebhookRule(
                "order authorized", success=True, id_key="order_id", reference_key="order_id"
            ),
            "ORDER_CANCELLED": WebhookRule(
                "order cancelled", id_key="order_id", reference_key="order_id"
            ),
            "FRAUD_RISK_ACCEPTED": WebhookRule(
                "fraud risk accepted", success=True, id_key="order_id", reference_key="order_id"
            ),
            "FRAUD_RISK_REJECTED": WebhookRule(
                "fraud risk rejected", id_key="order_id", reference_key="order_id"
            ),
            "FRAUD_RISK_UNKNOWN": WebhookRule(
                "fraud risk unknown", id_key="order_id", reference_key="order_id"
            ),
        },
        fallback_id_keys=("order_id",),
    )

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        basic = base64.b64encode(
            f"{credentials.public_key}:{credentials.secret_key}".encode()
        ).decode()
        return {"Authorization": f"Basic {basic}"}

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: KlarnaConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        order_lines = payment_method_data.get("orderLines") or [
            {
                "name": payment_method_data.get("description", "Payment"),
                "quantity": 1,
                "unit_price": amount.minor_units,
                "total_amount": amount.minor_units,
                "tax_rate": 0,
                "total_tax_amount": 0,
            }
        ]

        response = await self._request(
            "POST",
            self._url(credentials, "/payments/v1/sessions"),
            headers=self._headers(credentials),
            json={
                "purchase_country": payment_method_data.get(
                    "purchaseCountry", config.purchase_country
                ),
                "purchase_currency": amount.currency,
                "locale": payment_method_data.get("locale", config.locale),
                "order_amount": amount.minor_units,
                "order_tax_amount": 0,
                "order_lines": order_lines,
                "merchant_reference1": client_secret,
            },
        )

        if not self._ok(response):
            return self._declined(client_secret, response, code="session_creation_failed")

        body = self._json(response)
        session_id = body.get("session_id")
        return PaymentResult(
            payment_id=str(session_id or client_secret),
            status=PaymentStatus.PROCESSING,
            metadata={
                "session_id": session_id,
                "client_token": body.get("client_token"),
                "payment_method_categories": body.get("payment_method_categories"),
            },
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        response = await self._request(
            "GET",
            self._url(credentials, f"/payments/v1/authorizations/{payment_id}"),
            headers=self._headers(credentials),
        )
        if response.status_code != 200:
            raise self._rejected("fetch_payment_status", response)
        return self._json(response).get("order_status")

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        if amount is None:
            # Order Management needs an explicit amount; read the captured total
            order = await self._request(
                "GET",
                self._url(credentials, f"/ordermanagement/v1/orders/{payment_id}"),
                headers=self._headers(credentials),
            )
            if order.status_code != 200:
                raise self._rejected("refund_payment", order)
            data = self._json(order)
            amount = Amount(
                minor_units=int(data.get("captured_amount") or data.get("order_amount") or 0),
                currency=str(data.get("purchase_currency") or "XXX").upper(),
            )

        response = await self._request(
            "POST",
            self._url(credentials, f"/ordermanagement/v2/orders/{payment_id}/refunds"),
            headers=self._headers(credentials),
            json={
                "refunded_amount": amount.minor_units,
                "description": reason or "Customer refund",
            },
        )
        if not self._ok(response):
            raise self._rejected("refund_payment", response)

        refund_id = self._json(response).get("refund_id") or response.headers.get("Refund-Id", "")
        return RefundResult(
            refund_id=str(refund_id),
            payment_id=payment_id,
            amount=amount,
            succeeded=True,
        )
