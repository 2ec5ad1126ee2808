"""
Payment Client - Provider resolution and the caller-facing facade.

PluginRegistry maps each Provider to a factory building a fresh plugin.
PaymentClient owns exactly one plugin and forwards every operation to it,
so calling code only ever names the provider once.
"""

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from structlog import get_logger

from unified_payment.exceptions import UnsupportedProviderError
from unified_payment.models.domain import (
    Amount,
    PaymentIntent,
    PaymentResult,
    PaymentStatus,
    Provider,
    RefundResult,
    WebhookEvent,
)
from unified_payment.services.payment_provider import PaymentProviderPlugin
from unified_payment.services.providers.bizao_provider import BizaoProvider
from unified_payment.services.providers.cinetpay_provider import CinetPayProvider
from unified_payment.services.providers.fedapay_provider import FedaPayProvider
from unified_payment.services.providers.flooz_provider import FloozProvider
from unified_payment.services.providers.flutterwave_provider import FlutterwaveProvider
from unified_payment.services.providers.klarna_provider import KlarnaProvider
from unified_payment.services.providers.mixx_by_yas_provider import MixxByYasProvider
from unified_payment.services.providers.mtn_momo_provider import MtnMomoProvider
from unified_payment.services.providers.orange_money_provider import OrangeMoneyProvider
from unified_payment.services.providers.paygate_provider import PayGateProvider
from unified_payment.services.providers.paystack_provider import PaystackProvider
from unified_payment.services.providers.semoa_provider import SemoaProvider
from unified_payment.services.providers.stripe_provider import StripeProvider
from unified_payment.services.providers.wave_provider import WaveProvider

logger = get_logger(__name__)

PluginFactory = Callable[..., PaymentProviderPlugin]


class PluginRegistry:
    """Provider -> plugin factory table."""

    def __init__(self, factories: Mapping[Provider, PluginFactory] | None = None) -> None:
        self._factories: dict[Provider, PluginFactory] = dict(factories or {})

    def register(self, provider: Provider, factory: PluginFactory) -> None:
        """Register (or replace) the factory for a provider."""
        if provider in self._factories:
            logger.warning("payment_plugin_factory_replaced", provider=provider.value)
        self._factories[provider] = factory

    def unregister(self, provider: Provider) -> bool:
        return self._factories.pop(provider, None) is not None

    def supports(self, provider: Provider) -> bool:
        return provider in self._factories

    @property
    def providers(self) -> list[Provider]:
        """Registered providers, in registration order."""
        return list(self._factories)

    def resolve(self, provider: Provider, **kwargs: Any) -> PaymentProviderPlugin:
        """
        Build a new plugin for a provider.

        Raises:
            UnsupportedProviderError: If nothing is registered for the provider
        """
        factory = self._factories.get(provider)
        if factory is None:
            logger.warning("payment_provider_unsupported", provider=provider.value)
            raise UnsupportedProviderError(provider)
        return factory(**kwargs)


def default_registry() -> PluginRegistry:
    """Registry holding every backend shipped with the library."""
    return PluginRegistry(
        {
            Provider.STRIPE: StripeProvider,
            Provider.FLUTTERWAVE: FlutterwaveProvider,
            Provider.WAVE: WaveProvider,
            Provider.MTN_MOMO: MtnMomoProvider,
            Provider.ORANGE_MONEY: OrangeMoneyProvider,
            Provider.FLOOZ: FloozProvider,
            Provider.MIXX_BY_YAS: MixxByYasProvider,
            Provider.PAYGATE: PayGateProvider,
            Provider.CINETPAY: CinetPayProvider,
            Provider.SEMOA: SemoaProvider,
            Provider.BIZAO: BizaoProvider,
            Provider.FEDAPAY: FedaPayProvider,
            Provider.PAYSTACK: PaystackProvider,
            Provider.KLARNA: KlarnaProvider,
        }
    )


class PaymentClient:
    """
    Unified entry point for one payment provider.

    Example:
        async with PaymentClient(Provider.FLOOZ) as client:
            await client.initialize("pk_live_...")
            intent = await client.create_payment_intent(Amount(10000, "XOF"), "cust-1")

    Extra keyword arguments (``http_client``, ``signature_verifier``) are
    handed to the plugin factory.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        registry: PluginRegistry | None = None,
        **plugin_kwargs: Any,
    ) -> None:
        self._provider = provider
        self._plugin = (registry or default_registry()).resolve(provider, **plugin_kwargs)

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def plugin(self) -> PaymentProviderPlugin:
        return self._plugin

    @property
    def supports_3ds(self) -> bool:
        return self._provider.supports_3ds

    @property
    def requires_client_secret(self) -> bool:
        return self._provider.requires_client_secret

    @property
    def display_name(self) -> str:
        return self._provider.display_name

    async def initialize(
        self,
        public_key: str,
        secret_key: str | None = None,
        additional_config: Mapping[str, Any] | None = None,
    ) -> None:
        await self._plugin.initialize(public_key, secret_key, additional_config)

    async def create_payment_intent(
        self,
        amount: Amount,
        customer_id: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> PaymentIntent:
        return await self._plugin.create_payment_intent(amount, customer_id, metadata)

    async def confirm_payment(
        self,
        client_secret: str,
        payment_method_data: Mapping[str, Any] | None = None,
    ) -> PaymentResult:
        return await self._plugin.confirm_payment(client_secret, payment_method_data)

    async def fetch_payment_status(self, payment_id: str) -> PaymentStatus:
        return await self._plugin.fetch_payment_status(payment_id)

    async def refund_payment(
        self,
        payment_id: str,
        amount: Amount | None = None,
        reason: str | None = None,
    ) -> RefundResult:
        return await self._plugin.refund_payment(payment_id, amount, reason)

    async def tokenize_card(
        self,
        card_number: str,
        expiry_month: str,
        expiry_year: str,
        cvv: str,
    ) -> str:
        return await self._plugin.tokenize_card(card_number, expiry_month, expiry_year, cvv)

    async def handle_webhook_event(self, payload: Mapping[str, Any]) -> WebhookEvent:
        return await self._plugin.handle_webhook_event(payload)

    async def dispose(self) -> None:
        await self._plugin.dispose()

    async def __aenter__(self) -> "PaymentClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()
