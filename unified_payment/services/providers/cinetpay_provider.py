"""
CinetPay Provider Implementation.

Pan-African checkout (mobile money and cards). The API key is the public
key and the site id comes from ``siteId`` in the additional config. CinetPay
offers neither refunds nor a card vault through this API.
"""

from collections.abc import Mapping
from typing import Any

from unified_payment.models.domain import PaymentResult, PaymentStatus, Provider, WebhookEvent
from unified_payment.models.provider_config import CinetPayConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.providers.paygate_provider import TRANSACTION_STATUS_RULES
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import SignatureVerifier, WebhookMapper


class CinetPayWebhookMapper(WebhookMapper):
    """Also understands CinetPay's own notification shape (``cpm_*`` fields)."""

    def _normalize(
        self, payload: Any, signature_verifier: SignatureVerifier | None
    ) -> WebhookEvent:
        if not isinstance(payload, Mapping) or "cpm_trans_id" not in payload:
            return super()._normalize(payload, signature_verifier)

        transaction_id = str(payload["cpm_trans_id"])
        result = payload.get("cpm_result")
        return WebhookEvent(
            provider=self.provider,
            event_type="payment.notification",
            success=str(result) == "00",
            message=(
                f"{self.provider.display_name} payment notification: {transaction_id}, "
                f"result: {result}"
            ),
            raw_data=payload,
            id=transaction_id,
            reference=transaction_id,
            signature_valid=self._check_signature(payload, signature_verifier),
        )


class CinetPayProvider(HttpPaymentPlugin):
    """CinetPay checkout v2 backend."""

    provider = Provider.CINETPAY
    config_model = CinetPayConfig
    public_key_label = "API key"
    base_url = "https://api-checkout.cinetpay.com/v2"
    reference_prefix = "cinetpay"
    status_mapper = StatusMapper(
        Provider.CINETPAY,
        {
            PaymentStatus.SUCCEEDED: ["accepted", "accepte"],
            PaymentStatus.PENDING: ["pending", "waiting_for_customer"],
            PaymentStatus.PROCESSING: ["processing"],
            PaymentStatus.FAILED: ["refused", "refuse", "expired"],
            PaymentStatus.CANCELED: ["cancelled", "annule", "cancel"],
        },
    )
    webhook_mapper = CinetPayWebhookMapper(
        provider=Provider.CINETPAY,
        event_type_key="TRANSACTION_STATUS",
        data_path=(),
        status_key="RESULT_DESC",
        signature_key="CHECKSUM",
        rules=TRANSACTION_STATUS_RULES,
        fallback_id_keys=("PAY_REQUEST_ID",),
    )

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: CinetPayConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        response = await self._request(
            "POST",
            self._url(credentials, "/payment"),
            headers={"Accept": "application/json"},
            json={
                "apikey": credentials.public_key,
                "site_id": config.site_id,
                "transaction_id": client_secret,
                "amount": amount.minor_units,
                "currency": amount.currency,
                "channels": payment_method_data.get("channels", config.channels),
                "customer_name": payment_method_data.get("customerName"),
                "customer_surname": payment_method_data.get("customerSurname"),
                "customer_email": payment_method_data.get("customerEmail"),
                "customer_phone_number": payment_method_data.get("customerPhone"),
                "notify_url": payment_method_data.get("notifyUrl", config.notify_url),
                "return_url": payment_method_data.get("returnUrl", config.return_url),
                "description": payment_method_data.get("description", "Payment transaction"),
            },
        )
        if response.status_code != 200:
            return self._declined(client_secret, response, code="http_error")

        body = self._json(response)
        code = str(body.get("code") or "")
        if code != "201":
            return self._declined(
                client_secret,
                response,
                code=code or "api_error",
                message=body.get("message") or "CinetPay payment initiation failed",
            )

        data = body.get("data") or {}
        return PaymentResult(
            payment_id=client_secret,
            status=PaymentStatus.PROCESSING,
            metadata={
                "payment_token": data.get("payment_token"),
                "payment_url": data.get("payment_url"),
            },
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        config: CinetPayConfig = credentials.config  # type: ignore[assignment]
        response = await self._request(
            "POST",
            self._url(credentials, "/payment/check"),
            headers={"Accept": "application/json"},
            json={
                "apikey": credentials.public_key,
                "site_id": config.site_id,
                "transaction_id": payment_id,
            },
        )
        body = self._json(response)
        # "627" is "transaction not found"; any code but "00" is a lookup failure
        if response.status_code != 200 or str(body.get("code")) != "00":
            raise self._rejected("fetch_payment_status", response)
        return (body.get("data") or {}).get("status")
