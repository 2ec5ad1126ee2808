"""
Domain Models - Provider-agnostic payment values using dataclasses.

NO DICTIONARIES - All data structures are strongly typed immutable dataclasses.
Provider payloads only survive in explicit `metadata` / `raw_data` fields.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class Provider(str, Enum):
    """Payment networks known to the library."""

    STRIPE = "stripe"
    PAYPAL = "paypal"
    FLUTTERWAVE = "flutterwave"
    WAVE = "wave"
    MTN_MOMO = "mtn_momo"
    ORANGE_MONEY = "orange_money"
    FLOOZ = "flooz"
    MIXX_BY_YAS = "mixx_by_yas"
    PAYGATE = "paygate"
    CINETPAY = "cinetpay"
    SEMOA = "semoa"
    BIZAO = "bizao"
    FEDAPAY = "fedapay"
    PAYSTACK = "paystack"
    KLARNA = "klarna"

    @property
    def supports_3ds(self) -> bool:
        """Whether the network runs 3-D Secure challenges."""
        return self in (Provider.STRIPE, Provider.FLUTTERWAVE)

    @property
    def requires_client_secret(self) -> bool:
        """Whether confirmation needs a provider-issued client secret distinct from the id."""
        return self is Provider.STRIPE

    @property
    def display_name(self) -> str:
        """Human readable provider name."""
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Provider, str] = {
    Provider.STRIPE: "Stripe",
    Provider.PAYPAL: "PayPal",
    Provider.FLUTTERWAVE: "Flutterwave",
    Provider.WAVE: "Wave",
    Provider.MTN_MOMO: "MTN Mobile Money",
    Provider.ORANGE_MONEY: "Orange Money",
    Provider.FLOOZ: "Flooz",
    Provider.MIXX_BY_YAS: "Mixx by Yas",
    Provider.PAYGATE: "PayGate",
    Provider.CINETPAY: "CinetPay",
    Provider.SEMOA: "Semoa",
    Provider.BIZAO: "Bizao",
    Provider.FEDAPAY: "FedaPay",
    Provider.PAYSTACK: "PayStack",
    Provider.KLARNA: "Klarna",
}


class PaymentStatus(str, Enum):
    """Canonical payment state every provider vocabulary collapses into."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    REQUIRES_ACTION = "requires_action"

    @property
    def is_final(self) -> bool:
        """True once the payment can no longer change state."""
        return self in (PaymentStatus.SUCCEEDED, PaymentStatus.FAILED, PaymentStatus.CANCELED)

    @property
    def finality(self) -> int:
        """Rank used to prefer the less final status when a token is ambiguous."""
        return _FINALITY[self]


_FINALITY: dict[PaymentStatus, int] = {
    PaymentStatus.PENDING: 0,
    PaymentStatus.PROCESSING: 1,
    PaymentStatus.REQUIRES_ACTION: 1,
    PaymentStatus.CANCELED: 2,
    PaymentStatus.FAILED: 3,
    PaymentStatus.SUCCEEDED: 3,
}


class PluginState(str, Enum):
    """Lifecycle state of a provider plugin."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class Amount:
    """Money in minor units (cents, centimes...) of a currency."""

    minor_units: int
    currency: str

    def __post_init__(self) -> None:
        """Validate amount constraints."""
        if self.minor_units < 0:
            raise ValueError(f"Amount cannot be negative: {self.minor_units}")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError(f"Invalid currency code: {self.currency}")

    @property
    def major_units(self) -> float:
        """Amount in major units (e.g. 5000 cents -> 50.0)."""
        return self.minor_units / 100

    def to_dict(self) -> dict[str, Any]:
        """Wire representation shared by most backends."""
        return {"amount": self.minor_units, "currency": self.currency}


@dataclass(frozen=True)
class PaymentIntent:
    """
    Provider-side handle created before user interaction.

    For providers without a real client secret, `client_secret` carries the
    provider reference that confirm_payment() needs (usually the id).
    """

    id: str
    client_secret: str
    status: PaymentStatus
    amount: Amount
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a confirmation attempt."""

    payment_id: str
    status: PaymentStatus
    error_message: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is PaymentStatus.SUCCEEDED

    @property
    def requires_action(self) -> bool:
        return self.status is PaymentStatus.REQUIRES_ACTION

    @property
    def failed(self) -> bool:
        return self.status is PaymentStatus.FAILED


@dataclass(frozen=True)
class RefundResult:
    """Outcome of a refund request the backend accepted."""

    refund_id: str
    payment_id: str
    amount: Amount
    succeeded: bool
    error_message: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """
    Normalized asynchronous provider notification.

    `signature_valid` only asserts "checked and valid" or "not checked";
    it is False only when a configured verifier rejected the signature.
    `error` is set when the payload could not be interpreted at all.
    """

    provider: Provider
    event_type: str | None
    success: bool
    message: str
    raw_data: Any
    id: str | None = None
    reference: str | None = None
    signature_valid: bool = True
    error: str | None = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
