"""
Tests for exception classes.
"""

import pytest

from unified_payment.exceptions import (
    ConfigurationError,
    InitializationError,
    NotInitializedError,
    PaymentError,
    ProcessingError,
    UnsupportedCapabilityError,
    UnsupportedProviderError,
)
from unified_payment.models.domain import Provider


class TestPaymentError:
    """Tests for base PaymentError."""

    def test_message_only(self):
        error = PaymentError("Something broke")
        assert str(error) == "Something broke"
        assert error.code is None
        assert error.provider is None

    def test_code_and_provider_in_str(self):
        error = PaymentError("Declined", code="card_declined", provider=Provider.STRIPE)
        assert str(error) == "Declined (code=card_declined, provider=Stripe)"


class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigurationError("bad"),
            InitializationError("bad", provider=Provider.WAVE),
            NotInitializedError(Provider.WAVE),
            ProcessingError("bad"),
            UnsupportedCapabilityError("Refunds", Provider.PAYGATE),
            UnsupportedProviderError(Provider.PAYPAL),
        ],
    )
    def test_all_are_payment_errors(self, error: PaymentError):
        assert isinstance(error, PaymentError)

    def test_initialization_is_configuration_error(self):
        assert issubclass(InitializationError, ConfigurationError)

    def test_unsupported_capability_is_processing_error(self):
        assert issubclass(UnsupportedCapabilityError, ProcessingError)


class TestTypedAttributes:
    def test_initialization_error_field(self):
        error = InitializationError(
            "MTN Mobile Money config field 'subscriptionKey' is invalid",
            provider=Provider.MTN_MOMO,
            field="subscriptionKey",
        )
        assert error.field == "subscriptionKey"
        assert error.code == "initialization_error"
        assert error.provider is Provider.MTN_MOMO

    def test_not_initialized_message(self):
        error = NotInitializedError(Provider.KLARNA)
        assert "Klarna" in str(error)
        assert error.code == "not_initialized"

    def test_unsupported_capability(self):
        error = UnsupportedCapabilityError("Card tokenization", Provider.KLARNA)
        assert error.capability == "Card tokenization"
        assert error.code == "unsupported_capability"
        assert "not supported by Klarna" in error.message

    def test_unsupported_provider(self):
        error = UnsupportedProviderError(Provider.PAYPAL)
        assert error.code == "unsupported_provider"
        assert "PayPal" in str(error)
