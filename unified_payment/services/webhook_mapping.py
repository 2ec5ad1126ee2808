"""
Webhook Normalization - Provider callbacks to one WebhookEvent shape.

Never raises: a webhook delivery endpoint must always be able to answer, so
malformed input becomes a WebhookEvent with success=False and `error` set.
Unknown event types are reported as unsuccessful (conservative, like status
normalization).

Signature handling only ever asserts "checked and valid" or "not checked":
signature_valid is False only when an injected verifier rejected a present
signature. No cryptographic verification ships with the library.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from structlog import get_logger

from unified_payment.models.domain import Provider, WebhookEvent

logger = get_logger(__name__)

# (payload, signature) -> valid?
SignatureVerifier = Callable[[Mapping[str, Any], str], bool]


@dataclass(frozen=True)
class WebhookRule:
    """How to read one provider event type."""

    description: str
    success: bool = False
    id_key: str | None = None
    reference_key: str | None = None
    # When set, success is decided by the data's status field instead of `success`
    success_statuses: frozenset[str] | None = None


@dataclass(frozen=True)
class WebhookMapper:
    """Generic webhook normalizer parameterized by a per-backend rule table."""

    provider: Provider
    event_type_key: str
    rules: Mapping[str, WebhookRule]
    data_path: tuple[str, ...] = ("data",)
    status_key: str = "status"
    signature_key: str = "signature"
    fallback_id_keys: tuple[str, ...] = field(default=("id",))

    def normalize(
        self,
        payload: Any,
        signature_verifier: SignatureVerifier | None = None,
    ) -> WebhookEvent:
        """Fold a raw provider payload into a WebhookEvent."""
        try:
            return self._normalize(payload, signature_verifier)
        except Exception as exc:
            logger.exception("webhook_normalization_failed", provider=self.provider.value)
            return self._malformed(payload, f"{type(exc).__name__}: {exc}")

    def _normalize(
        self, payload: Any, signature_verifier: SignatureVerifier | None
    ) -> WebhookEvent:
        if not isinstance(payload, Mapping):
            return self._malformed(payload, "Webhook payload must be a JSON object")

        data = self._extract_data(payload)
        if data is None:
            return self._malformed(payload, "No event data provided")

        event_type = payload.get(self.event_type_key)
        if event_type is None or event_type == "":
            return self._malformed(payload, f"Missing {self.event_type_key} in webhook payload")
        event_type = str(event_type)

        signature_valid = self._check_signature(payload, signature_verifier)

        rule = self.rules.get(event_type)
        if rule is None:
            return WebhookEvent(
                provider=self.provider,
                event_type=event_type,
                success=False,
                message=f"Unhandled {self.provider.display_name} webhook: {event_type}",
                raw_data=payload,
                id=self._first(data, self.fallback_id_keys),
                signature_valid=signature_valid,
            )

        status = data.get(self.status_key)
        if rule.success_statuses is not None:
            success = status is not None and str(status).lower() in rule.success_statuses
        else:
            success = rule.success

        event_id = self._first(data, (rule.id_key,) if rule.id_key else self.fallback_id_keys)
        reference = self._first(data, (rule.reference_key,)) if rule.reference_key else None

        message = f"{self.provider.display_name} {rule.description}"
        if reference or event_id:
            message = f"{message}: {reference or event_id}"
        if status is not None:
            message = f"{message}, status: {status}"

        return WebhookEvent(
            provider=self.provider,
            event_type=event_type,
            success=success,
            message=message,
            raw_data=payload,
            id=event_id,
            reference=reference,
            signature_valid=signature_valid,
        )

    def _extract_data(self, payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
        current: Any = payload
        for key in self.data_path:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
        if not isinstance(current, Mapping) or not current:
            return None
        return current

    def _check_signature(
        self, payload: Mapping[str, Any], signature_verifier: SignatureVerifier | None
    ) -> bool:
        signature = payload.get(self.signature_key)
        if signature is None or signature_verifier is None:
            return True
        return bool(signature_verifier(payload, str(signature)))

    @staticmethod
    def _first(data: Mapping[str, Any], keys: tuple[str | None, ...]) -> str | None:
        for key in keys:
            if key is None:
                continue
            value = data.get(key)
            if value is not None and value != "":
                return str(value)
        return None

    def _malformed(self, payload: Any, error: str) -> WebhookEvent:
        logger.warning("webhook_payload_malformed", provider=self.provider.value, error=error)
        event_type = None
        if isinstance(payload, Mapping) and payload.get(self.event_type_key) is not None:
            event_type = str(payload.get(self.event_type_key))
        return WebhookEvent(
            provider=self.provider,
            event_type=event_type,
            success=False,
            message=f"Invalid {self.provider.display_name} webhook: {error}",
            raw_data=payload,
            error=error,
        )
