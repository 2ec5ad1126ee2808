"""
Unified Payment - One async contract over many payment networks.
"""

from unified_payment.exceptions import (
    ConfigurationError,
    InitializationError,
    NotInitializedError,
    PaymentError,
    ProcessingError,
    UnsupportedCapabilityError,
    UnsupportedProviderError,
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
from unified_payment.services.client import PaymentClient, PluginRegistry, default_registry
from unified_payment.services.payment_provider import BasePaymentPlugin, PaymentProviderPlugin

__version__ = "0.1.0"

__all__ = [
    "Amount",
    "BasePaymentPlugin",
    "ConfigurationError",
    "InitializationError",
    "NotInitializedError",
    "PaymentClient",
    "PaymentError",
    "PaymentIntent",
    "PaymentProviderPlugin",
    "PaymentResult",
    "PaymentStatus",
    "PluginRegistry",
    "PluginState",
    "ProcessingError",
    "Provider",
    "RefundResult",
    "UnsupportedCapabilityError",
    "UnsupportedProviderError",
    "WebhookEvent",
    "default_registry",
]
