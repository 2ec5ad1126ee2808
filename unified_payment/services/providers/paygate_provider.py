"""
PayGate (PayWeb3) Provider Implementation.

PayWeb3 is form based: requests are url-encoded and carry an MD5 CHECKSUM,
answers come back as ``KEY=value&KEY=value``. The encryption key is passed
as the secret key and used only for request signing.

PayWeb3 has no refund or card-vault endpoint, so those capabilities are
reported as unsupported.
"""

import hashlib
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qsl

import httpx

from unified_payment.models.domain import PaymentResult, PaymentStatus, Provider
from unified_payment.models.provider_config import PayGateConfig
from unified_payment.services.http_provider import HttpPaymentPlugin
from unified_payment.services.payment_provider import Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper, WebhookRule

# PayWeb3 TRANSACTION_STATUS codes (also used by CinetPay notifications)
TRANSACTION_STATUS_RULES = {
    "1": WebhookRule(
        "payment approved", success=True, id_key="PAY_REQUEST_ID", reference_key="REFERENCE"
    ),
    "0": WebhookRule("payment pending", id_key="PAY_REQUEST_ID", reference_key="REFERENCE"),
    "2": WebhookRule("payment declined", id_key="PAY_REQUEST_ID", reference_key="REFERENCE"),
    "3": WebhookRule("payment cancelled", id_key="PAY_REQUEST_ID", reference_key="REFERENCE"),
    "4": WebhookRule(
        "payment user cancelled", id_key="PAY_REQUEST_ID", reference_key="REFERENCE"
    ),
    "5": WebhookRule("payment received", id_key="PAY_REQUEST_ID", reference_key="REFERENCE"),
}


def paygate_checksum(fields: Mapping[str, Any], encryption_key: str) -> str:
    """MD5 over the field values in key order, followed by the encryption key."""
    values = "".join(str(fields[key]) for key in sorted(fields) if fields[key] is not None)
    return hashlib.md5(f"{values}{encryption_key}".encode()).hexdigest()


class PayGateProvider(HttpPaymentPlugin):
    """PayGate PayWeb3 backend."""

    provider = Provider.PAYGATE
    config_model = PayGateConfig
    requires_secret_key = True
    public_key_label = "PayGate ID"
    secret_key_label = "encryption key"
    base_url = "https://secure.paygate.co.za/payweb3"
    reference_prefix = "PG"
    process_url = "https://secure.paygate.co.za/payweb3/process.trans"
    status_mapper = StatusMapper(
        Provider.PAYGATE,
        {
            PaymentStatus.SUCCEEDED: ["1", "approved"],
            PaymentStatus.PENDING: ["0", "pending", "not_done"],
            PaymentStatus.PROCESSING: ["5", "received_by_paygate"],
            PaymentStatus.CANCELED: ["2", "declined", "3", "cancelled", "4", "user_cancelled"],
        },
    )
    webhook_mapper = WebhookMapper(
        provider=Provider.PAYGATE,
        event_type_key="TRANSACTION_STATUS",
        data_path=(),
        status_key="RESULT_DESC",
        signature_key="CHECKSUM",
        rules=TRANSACTION_STATUS_RULES,
        fallback_id_keys=("PAY_REQUEST_ID",),
    )

    def _signed(self, credentials: Credentials, fields: dict[str, Any]) -> dict[str, Any]:
        return {**fields, "CHECKSUM": paygate_checksum(fields, credentials.secret_key or "")}

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, str]:
        return dict(parse_qsl(response.text, keep_blank_values=True))

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        config: PayGateConfig = credentials.config  # type: ignore[assignment]
        amount = self._amount_from(payment_method_data)

        fields = {
            "PAYGATE_ID": credentials.public_key,
            "REFERENCE": client_secret,
            "AMOUNT": amount.minor_units,
            "CURRENCY": amount.currency,
            "RETURN_URL": payment_method_data.get("returnUrl", config.return_url),
            "TRANSACTION_DATE": datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S"),
            "LOCALE": config.locale,
            "COUNTRY": config.country,
            "EMAIL": payment_method_data.get("customerEmail", ""),
            "NOTIFY_URL": payment_method_data.get("notifyUrl", config.notify_url),
        }

        response = await self._request(
            "POST",
            self._url(credentials, "/initiate.trans"),
            data=self._signed(credentials, fields),
        )
        if response.status_code != 200:
            return self._declined(client_secret, response, code="http_error")

        answer = self._parse(response)
        error = answer.get("ERROR")
        if error and error != "0":
            return self._declined(
                client_secret,
                response,
                code=error,
                message=answer.get("ERROR_MESSAGE") or "PayGate initiation failed",
            )

        pay_request_id = answer.get("PAY_REQUEST_ID")
        return PaymentResult(
            payment_id=pay_request_id or client_secret,
            status=PaymentStatus.PROCESSING,
            metadata={
                "redirect_url": self.process_url,
                "pay_request_id": pay_request_id,
                "checksum": answer.get("CHECKSUM"),
                "reference": client_secret,
            },
        )

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        fields = {
            "PAYGATE_ID": credentials.public_key,
            "PAY_REQUEST_ID": payment_id,
            "REFERENCE": payment_id,
        }
        response = await self._request(
            "POST",
            self._url(credentials, "/query.trans"),
            data=self._signed(credentials, fields),
        )
        if response.status_code != 200:
            raise self._rejected("fetch_payment_status", response)

        answer = self._parse(response)
        if answer.get("ERROR") not in (None, "", "0", "000"):
            raise self._rejected("fetch_payment_status", response)
        return answer.get("TRANSACTION_STATUS")
