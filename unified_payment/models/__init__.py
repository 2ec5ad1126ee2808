"""
Models module - Payment value types and backend configuration schemas.
"""

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

__all__ = [
    "Amount",
    "PaymentIntent",
    "PaymentResult",
    "PaymentStatus",
    "PluginState",
    "Provider",
    "RefundResult",
    "WebhookEvent",
]
