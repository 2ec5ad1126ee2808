"""
Payment Provider Protocol - Provider-agnostic interface.

NO DICTIONARIES - All results use strongly typed models.

`PaymentProviderPlugin` is the contract the client facade talks to.
`BasePaymentPlugin` implements it once: lifecycle state, readiness checks,
error translation, status/webhook normalization, logging and metrics. Backends
subclass it and only fill in the `_`-prefixed hooks.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import ValidationError
from structlog import get_logger

from unified_payment.exceptions import (
    InitializationError,
    NotInitializedError,
    PaymentError,
    ProcessingError,
    UnsupportedCapabilityError,
)
from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    PluginState,
    Provider,
    RefundResult,
    WebhookEvent,
)
from unified_payment.models.provider_config import BackendConfig
from unified_payment.observability.logging import mask_secret
from unified_payment.observability.metrics import metrics, track_operation
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import SignatureVerifier, WebhookMapper

logger = get_logger(__name__)


@runtime_checkable
class PaymentProviderPlugin(Protocol):
    """
    Payment provider plugin protocol.

    Any payment network (Stripe, MTN MoMo, Wave, ...) must implement this
    interface so callers never branch on provider identity.
    """

    @property
    def provider(self) -> Provider: ...

    @property
    def state(self) -> PluginState: ...

    async def initialize(
        self,
        public_key: str,
        secret_key: str | None = None,
        additional_config: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Validate credentials and config, then mark the plugin ready.

        Raises:
            InitializationError: If a mandatory credential or config field is missing
        """
        ...

    async def create_payment_intent(
        self,
        amount: Amount,
        customer_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> PaymentIntent:
        """
        Create a provider-scoped payment reference. Does not move money.

        Raises:
            NotInitializedError: If the plugin is not ready
            ProcessingError: If the backend call fails
        """
        ...

    async def confirm_payment(
        self,
        client_secret: str,
        payment_method_data: Mapping[str, Any] | None = None,
    ) -> PaymentResult:
        """
        Initiate the charge. Declines are returned as a FAILED result.

        Raises:
            NotInitializedError: If the plugin is not ready
            ProcessingError: On transport failure or missing caller data
        """
        ...

    async def fetch_payment_status(self, payment_id: str) -> PaymentStatus:
        """
        Read the current status. Lookup failures return FAILED.

        Raises:
            NotInitializedError: If the plugin is not ready
        """
        ...

    async def refund_payment(
        self,
        payment_id: str,
        amount: Amount | None = None,
        reason: str | None = None,
    ) -> RefundResult:
        """
        Refund a payment (amount=None = full refund).

        Raises:
            NotInitializedError: If the plugin is not ready
            ProcessingError: If the backend rejects the refund outright
        """
        ...

    async def tokenize_card(
        self,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        """
        Vault a card and return an opaque token.

        Raises:
            NotInitializedError: If the plugin is not ready
            UnsupportedCapabilityError: If the network has no card vault
        """
        ...

    async def handle_webhook_event(self, payload: Mapping[str, Any]) -> WebhookEvent:
        """Normalize a provider callback. Never raises."""
        ...

    async def dispose(self) -> None:
        """Release credentials and tokens. Idempotent."""
        ...


@dataclass(frozen=True)
class Credentials:
    """Immutable snapshot of what initialize() accepted."""

    public_key: str
    secret_key: str | None
    config: BackendConfig

    @property
    def use_sandbox(self) -> bool:
        return self.config.use_sandbox


class BasePaymentPlugin(ABC):
    """
    Lifecycle and error-handling base for every backend.

    State machine: UNINITIALIZED <-> READY, changed only by `_transition`
    under `_lock`. Every other operation works on the credentials snapshot
    returned by `_require_ready()`.
    """

    provider: ClassVar[Provider]
    config_model: ClassVar[type[BackendConfig]] = BackendConfig
    requires_secret_key: ClassVar[bool] = False
    public_key_label: ClassVar[str] = "public key"
    secret_key_label: ClassVar[str] = "secret key"
    status_mapper: ClassVar[StatusMapper]
    webhook_mapper: ClassVar[WebhookMapper]

    def __init__(self, signature_verifier: SignatureVerifier | None = None) -> None:
        self._state = PluginState.UNINITIALIZED
        self._credentials: Credentials | None = None
        self._lock = asyncio.Lock()
        self._signature_verifier = signature_verifier

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> PluginState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is PluginState.READY

    async def initialize(
        self,
        public_key: str,
        secret_key: str | None = None,
        additional_config: Mapping[str, Any] | None = None,
    ) -> None:
        """Validate credentials/config and move to READY (re-initializes if already ready)."""
        credentials = self._validate_credentials(public_key, secret_key, additional_config)

        async with self._lock:
            await self._on_initialize(credentials)
            self._transition(PluginState.READY, credentials)

        logger.info(
            "payment_plugin_initialized",
            provider=self.provider.value,
            public_key=mask_secret(public_key),
            has_secret_key=bool(secret_key),
            mode="sandbox" if credentials.use_sandbox else "production",
        )

    async def dispose(self) -> None:
        """Clear credentials and move to UNINITIALIZED. Safe to call repeatedly."""
        async with self._lock:
            if (
                self._state is PluginState.UNINITIALIZED
                and self._credentials is None
                and not self._holds_resources()
            ):
                return
            await self._on_dispose()
            self._transition(PluginState.UNINITIALIZED, None)

        logger.info("payment_plugin_disposed", provider=self.provider.value)

    def _transition(self, state: PluginState, credentials: Credentials | None) -> None:
        """The only writer of lifecycle state."""
        if (state is PluginState.READY) != (credentials is not None):
            raise ValueError(f"Invalid transition to {state.value} for {self.provider.value}")
        self._credentials = credentials
        self._state = state

    def _require_ready(self) -> Credentials:
        credentials = self._credentials
        if self._state is not PluginState.READY or credentials is None:
            raise NotInitializedError(self.provider)
        return credentials

    def _validate_credentials(
        self,
        public_key: str,
        secret_key: str | None,
        additional_config: Mapping[str, Any] | None,
    ) -> Credentials:
        name = self.provider.display_name

        if not public_key:
            raise InitializationError(
                f"{name} {self.public_key_label} is required",
                provider=self.provider,
                field="publicKey",
            )

        if self.requires_secret_key and not secret_key:
            raise InitializationError(
                f"{name} {self.secret_key_label} is required",
                provider=self.provider,
                field="secretKey",
            )

        try:
            config = self.config_model.model_validate(dict(additional_config or {}))
        except ValidationError as exc:
            error = exc.errors()[0]
            field_name = ".".join(str(part) for part in error["loc"]) or "additionalConfig"
            raise InitializationError(
                f"{name} config field '{field_name}' is invalid: {error['msg']}",
                provider=self.provider,
                field=field_name,
            ) from exc

        return Credentials(public_key=public_key, secret_key=secret_key or None, config=config)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_payment_intent(
        self,
        amount: Amount,
        customer_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> PaymentIntent:
        credentials = self._require_ready()

        with self._track("create_payment_intent") as tracker, self._processing(
            "create_payment_intent"
        ):
            intent = await self._create_payment_intent(
                credentials, amount, customer_id, dict(metadata or {})
            )
            tracker.set_outcome(intent.status.value)

        logger.info(
            "payment_intent_created",
            provider=self.provider.value,
            payment_id=intent.id,
            amount_minor=amount.minor_units,
            currency=amount.currency,
            status=intent.status.value,
        )
        return intent

    async def confirm_payment(
        self,
        client_secret: str,
        payment_method_data: Mapping[str, Any] | None = None,
    ) -> PaymentResult:
        credentials = self._require_ready()

        with self._track("confirm_payment") as tracker, self._processing("confirm_payment"):
            result = await self._confirm_payment(
                credentials, client_secret, dict(payment_method_data or {})
            )
            tracker.set_outcome(result.status.value)

        if result.failed:
            logger.warning(
                "payment_confirmation_failed",
                provider=self.provider.value,
                payment_id=result.payment_id,
                error_code=result.error_code,
                error=result.error_message,
            )
        else:
            logger.info(
                "payment_confirmed",
                provider=self.provider.value,
                payment_id=result.payment_id,
                status=result.status.value,
            )
        return result

    async def fetch_payment_status(self, payment_id: str) -> PaymentStatus:
        credentials = self._require_ready()

        with self._track("fetch_payment_status") as tracker:
            try:
                raw_status = await self._fetch_payment_status(credentials, payment_id)
                status = self.status_mapper.map(raw_status)
            except Exception as exc:
                logger.error(
                    "payment_status_lookup_failed",
                    provider=self.provider.value,
                    payment_id=payment_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                status = PaymentStatus.FAILED
            tracker.set_outcome(status.value)

        return status

    async def refund_payment(
        self,
        payment_id: str,
        amount: Amount | None = None,
        reason: str | None = None,
    ) -> RefundResult:
        credentials = self._require_ready()

        with self._track("refund_payment") as tracker, self._processing("refund_payment"):
            refund = await self._refund_payment(credentials, payment_id, amount, reason)
            tracker.set_outcome("succeeded" if refund.succeeded else "unsuccessful")

        logger.info(
            "payment_refund_created",
            provider=self.provider.value,
            payment_id=payment_id,
            refund_id=refund.refund_id,
            amount_minor=refund.amount.minor_units,
            succeeded=refund.succeeded,
        )
        return refund

    async def tokenize_card(
        self,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        credentials = self._require_ready()

        with self._track("tokenize_card"), self._processing("tokenize_card"):
            token = await self._tokenize_card(
                credentials, card_number, expiry_month, expiry_year, cvv
            )

        logger.info(
            "card_tokenized",
            provider=self.provider.value,
            card_last4=card_number[-4:],
        )
        return token

    async def handle_webhook_event(self, payload: Mapping[str, Any]) -> WebhookEvent:
        event = self.webhook_mapper.normalize(payload, self._signature_verifier)
        metrics.record_webhook(self.provider.value, event.success)

        logger.info(
            "webhook_event_processed",
            provider=self.provider.value,
            event_type=event.event_type,
            success=event.success,
            signature_valid=event.signature_valid,
            error=event.error,
        )
        return event

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    async def _on_initialize(self, credentials: Credentials) -> None:
        """Called under the lifecycle lock before READY (drop stale tokens here)."""

    async def _on_dispose(self) -> None:
        """Called under the lifecycle lock before UNINITIALIZED."""

    def _holds_resources(self) -> bool:
        """True while something still needs releasing after credentials are gone."""
        return False

    @abstractmethod
    async def _create_payment_intent(
        self,
        credentials: Credentials,
        amount: Amount,
        customer_id: str,
        metadata: dict[str, Any],
    ) -> PaymentIntent:
        """Create the intent (locally or remotely)."""

    @abstractmethod
    async def _confirm_payment(
        self,
        credentials: Credentials,
        client_secret: str,
        payment_method_data: dict[str, Any],
    ) -> PaymentResult:
        """Initiate the charge; declines are returned, not raised."""

    @abstractmethod
    async def _fetch_payment_status(self, credentials: Credentials, payment_id: str) -> Any:
        """Return the provider's raw status token; the base maps it."""

    async def _refund_payment(
        self,
        credentials: Credentials,
        payment_id: str,
        amount: Amount | None,
        reason: str | None,
    ) -> RefundResult:
        raise UnsupportedCapabilityError("Refunds", self.provider)

    async def _tokenize_card(
        self,
        credentials: Credentials,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        raise UnsupportedCapabilityError("Card tokenization", self.provider)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _track(self, operation: str) -> track_operation:
        return track_operation(self.provider.value, operation)

    @contextmanager
    def _processing(self, operation: str) -> Iterator[None]:
        """Let PaymentErrors through; wrap anything else in ProcessingError."""
        try:
            yield
        except PaymentError:
            raise
        except Exception as exc:
            logger.error(
                "payment_operation_failed",
                provider=self.provider.value,
                operation=operation,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise ProcessingError(
                f"{self.provider.display_name} {operation} failed: {exc}",
                code=f"{operation}_error",
                provider=self.provider,
            ) from exc
