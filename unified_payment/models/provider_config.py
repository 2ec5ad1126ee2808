"""
Backend Configuration Schemas - Pydantic models for `additional_config`.

Each backend owns its schema. Keys arrive camelCase (``useSandbox``,
``subscriptionKey``) and are exposed snake_case on the model.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BackendConfig(BaseModel):
    """Options every backend understands."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    use_sandbox: bool = False


class StripeConfig(BackendConfig):
    """Stripe has no extra options; server calls use the secret key."""


class FlutterwaveConfig(BackendConfig):
    encryption_key: str | None = None
    redirect_url: str | None = None


class WaveConfig(BackendConfig):
    success_url: str | None = None
    error_url: str | None = None


class MtnMomoConfig(BackendConfig):
    subscription_key: str = Field(min_length=1)
    callback_url: str | None = None


class OrangeMoneyConfig(BackendConfig):
    merchant_key: str = Field(min_length=1)
    return_url: str | None = None
    cancel_url: str | None = None
    notif_url: str | None = None
    lang: str = "fr"


class FloozConfig(BackendConfig):
    merchant_code: str | None = None
    callback_url: str | None = None


class MixxByYasConfig(FloozConfig):
    """Mixx by Yas exposes the same merchant API shape as Flooz."""


class PayGateConfig(BackendConfig):
    locale: str = "en-za"
    country: str = "ZAF"
    notify_url: str | None = None
    return_url: str | None = None


class CinetPayConfig(BackendConfig):
    site_id: str = Field(min_length=1)
    notify_url: str | None = None
    return_url: str | None = None
    channels: str = "ALL"


class SemoaConfig(BackendConfig):
    merchant_id: str | None = None


class BizaoConfig(BackendConfig):
    country_code: str | None = None


class FedaPayConfig(BackendConfig):
    callback_url: str | None = None


class PaystackConfig(BackendConfig):
    callback_url: str | None = None
    # Paystack charges need a customer email even when only vaulting a card
    tokenization_email: str | None = None


class KlarnaConfig(BackendConfig):
    purchase_country: str = "US"
    locale: str = "en-US"
