"""
Tests for domain models.
"""

from dataclasses import FrozenInstanceError

import pytest
from hypothesis import given
from hypothesis import strategies as st

from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Provider,
    WebhookEvent,
)

currencies = st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ", min_size=3, max_size=3)


class TestAmount:
    """Tests for Amount value type."""

    def test_major_units(self):
        """Test that minor units convert to major units."""
        assert Amount(5000, "USD").major_units == 50.0

    def test_zero_amount_is_valid(self):
        """Test that a zero amount is accepted."""
        assert Amount(0, "USD").major_units == 0.0

    def test_negative_amount_rejected(self):
        """Test that negative amounts raise ValueError."""
        with pytest.raises(ValueError, match="negative"):
            Amount(-1, "USD")

    @pytest.mark.parametrize("currency", ["US", "USDT", "U$D", ""])
    def test_invalid_currency_rejected(self, currency: str):
        """Test that non 3-letter currency codes raise ValueError."""
        with pytest.raises(ValueError, match="currency"):
            Amount(100, currency)

    def test_to_dict(self):
        assert Amount(1500, "EUR").to_dict() == {"amount": 1500, "currency": "EUR"}

    def test_amount_is_immutable(self):
        amount = Amount(100, "USD")
        with pytest.raises(FrozenInstanceError):
            amount.minor_units = 200  # type: ignore[misc]

    @given(minor=st.integers(min_value=0, max_value=10**12), currency=currencies)
    def test_major_units_property(self, minor: int, currency: str):
        """Property: major units are always minor units / 100."""
        assert Amount(minor, currency).major_units == minor / 100

    @given(minor=st.integers(max_value=-1), currency=currencies)
    def test_negative_always_rejected(self, minor: int, currency: str):
        with pytest.raises(ValueError):
            Amount(minor, currency)


class TestProvider:
    """Tests for Provider capability flags."""

    def test_supports_3ds(self):
        supported = {p for p in Provider if p.supports_3ds}
        assert supported == {Provider.STRIPE, Provider.FLUTTERWAVE}

    def test_requires_client_secret(self):
        assert [p for p in Provider if p.requires_client_secret] == [Provider.STRIPE]

    @pytest.mark.parametrize(
        "provider,name",
        [
            (Provider.MTN_MOMO, "MTN Mobile Money"),
            (Provider.MIXX_BY_YAS, "Mixx by Yas"),
            (Provider.PAYSTACK, "PayStack"),
            (Provider.PAYPAL, "PayPal"),
        ],
    )
    def test_display_name(self, provider: Provider, name: str):
        assert provider.display_name == name

    def test_every_provider_has_display_name(self):
        assert all(provider.display_name for provider in Provider)

    def test_string_values(self):
        assert Provider("orange_money") is Provider.ORANGE_MONEY


class TestPaymentStatus:
    """Tests for PaymentStatus."""

    def test_final_statuses(self):
        final = {s for s in PaymentStatus if s.is_final}
        assert final == {PaymentStatus.SUCCEEDED, PaymentStatus.FAILED, PaymentStatus.CANCELED}

    def test_finality_order(self):
        assert PaymentStatus.PENDING.finality < PaymentStatus.PROCESSING.finality
        assert PaymentStatus.PROCESSING.finality < PaymentStatus.CANCELED.finality
        assert PaymentStatus.CANCELED.finality < PaymentStatus.FAILED.finality


class TestPaymentResult:
    """Tests for PaymentResult predicates."""

    @pytest.mark.parametrize("status", list(PaymentStatus))
    def test_predicates_follow_status(self, status: PaymentStatus):
        """Test that predicates are pure functions of status."""
        result = PaymentResult(payment_id="p1", status=status)

        assert result.succeeded is (status is PaymentStatus.SUCCEEDED)
        assert result.requires_action is (status is PaymentStatus.REQUIRES_ACTION)
        assert result.failed is (status is PaymentStatus.FAILED)


class TestPaymentIntent:
    def test_defaults(self):
        intent = PaymentIntent(
            id="flooz_txn_1",
            client_secret="flooz_txn_1",
            status=PaymentStatus.PENDING,
            amount=Amount(100, "XOF"),
        )
        assert intent.metadata is None
        assert intent.client_secret == intent.id


class TestWebhookEvent:
    def test_processed_at_is_utc(self):
        """Test that processed_at is timezone aware."""
        event = WebhookEvent(
            provider=Provider.WAVE,
            event_type="refund.completed",
            success=True,
            message="ok",
            raw_data={},
        )
        assert event.processed_at.utcoffset() is not None
        assert event.signature_valid is True
        assert event.error is None
