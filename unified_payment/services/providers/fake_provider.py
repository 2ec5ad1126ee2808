"""
Fake Provider - Deterministic in-memory backend for tests and local runs.

Stands in for any Provider: register it in a PluginRegistry under the
provider a test wants to exercise. Outcomes are scripted through the
constructor and every operation is recorded in `calls`.
"""

import itertools
from collections.abc import Mapping
from typing import Any

from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
)
from unified_payment.services.payment_provider import BasePaymentPlugin, Credentials
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import (
    SignatureVerifier,
    WebhookMapper,
    WebhookRule,
)

FAKE_WEBHOOK_RULES = {
    "payment.succeeded": WebhookRule("payment succeeded", success=True),
    "payment.failed": WebhookRule("payment failed"),
    "payment.canceled": WebhookRule("payment canceled"),
    "refund.succeeded": WebhookRule("refund succeeded", success=True),
}


class FakePaymentProvider(BasePaymentPlugin):
    """
    Scripted plugin.

    Args:
        provider: Provider identity to report (defaults to Stripe)
        confirm_status: Status every confirm_payment() returns
        fetch_status: Status every fetch_payment_status() returns
        refund_succeeds: `succeeded` flag of every RefundResult
        fail_with: Operation name -> exception the hook raises instead
        signature_verifier: Forwarded to webhook normalization
    """

    def __init__(
        self,
        provider: Provider = Provider.STRIPE,
        *,
        confirm_status: PaymentStatus = PaymentStatus.SUCCEEDED,
        fetch_status: PaymentStatus = PaymentStatus.SUCCEEDED,
        refund_succeeds: bool = True,
        fail_with: Mapping[str, Exception] | None = None,
        signature_verifier: SignatureVerifier | None = None,
    ) -> None:
        super().__init__(signature_verifier=signature_verifier)
        self.provider = provider
        self.status_mapper = StatusMapper(
            provider, {status: [status.value] for status in PaymentStatus}
        )
        self.webhook_mapper = WebhookMapper(
            provider=provider, event_type_key="type", rules=FAKE_WEBHOOK_RULES
        )
        self.confirm_status = confirm_status
        self.fetch_status = fetch_status
        self.refund_succeeds = refund_succeeds
        self.fail_with = dict(fail_with or {})
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._sequence = itertools.count(1)

    def _record(self, operation: str, *args: Any) -> None:
        self.calls.append((operation, args))
        error = self.fail_with.get(operation)
        if error is not None:
            raise error

    def called(self, operation: str) -> int:
        """How many times a hook ran."""
        return sum(1 for name, _ in self.calls if name == operation)

    async def _on_initialize(self, credentials: Credentials) -> None:
        self._record("initialize", credentials.public_key)

    async def _on_dispose(self) -> None:
        self._record("dispose")

    async def _create_payment_intent(
        self,
        credentials: Credentials,
        amount: Amount,
        customer_id: str,
        metadata: dict[str, Any],
    ) -> PaymentIntent:
        self._record("create_payment_intent", amount, customer_id)
        reference = f"{self.provider.value}_fake_{next(self._sequence)}"
        return PaymentIntent(
            id=reference,
            client_secret=reference,
            status=PaymentStatus.PENDING,
            amount=amount,
            metadata={**metadata, "customer_id": customer_id},
        )

    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        self._record("confirm_payment", client_secret, payment_method_data)
        if self.confirm_status is PaymentStatus.FAILED:
            return PaymentResult(
                payment_id=client_secret,
                status=PaymentStatus.FAILED,
                error_message="Payment declined",
                error_code="card_declined",
            )
        return PaymentResult(payment_id=client_secret, status=self.confirm_status)

    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        self._record("fetch_payment_status", payment_id)
        return self.fetch_status.value

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        self._record("refund_payment", payment_id, amount, reason)
        return RefundResult(
            refund_id=f"re_fake_{next(self._sequence)}",
            payment_id=payment_id,
            amount=amount or Amount(0, "XXX"),
            succeeded=self.refund_succeeds,
            error_message=None if self.refund_succeeds else "Refund declined",
        )

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        self._record("tokenize_card", card_number[-4:])
        return f"tok_fake_{card_number[-4:]}"
