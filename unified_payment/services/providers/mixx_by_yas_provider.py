"""
Mixx by Yas Provider Implementation.

Mixx by Yas (formerly Tmoney/Tigo Cash) speaks the same merchant wallet API
as Flooz, so only identity and endpoints differ.
"""

from unified_payment.models.domain import Provider
from unified_payment.models.provider_config import MixxByYasConfig
from unified_payment.services.providers.flooz_provider import (
    MERCHANT_WALLET_STATUS_TABLE,
    MERCHANT_WALLET_WEBHOOK_RULES,
    FloozProvider,
)
from unified_payment.services.status_mapping import StatusMapper
from unified_payment.services.webhook_mapping import WebhookMapper


class MixxByYasProvider(FloozProvider):
    """Mixx by Yas merchant wallet backend."""

    provider = Provider.MIXX_BY_YAS
    config_model = MixxByYasConfig
    base_url = "https://api.mixxbyyas.com/api/v1"
    reference_prefix = "mixx_txn"
    status_mapper = StatusMapper(Provider.MIXX_BY_YAS, MERCHANT_WALLET_STATUS_TABLE)
    webhook_mapper = WebhookMapper(
        provider=Provider.MIXX_BY_YAS,
        event_type_key="type",
        data_path=("data", "object"),
        rules=MERCHANT_WALLET_WEBHOOK_RULES,
        fallback_id_keys=("transaction_id", "id"),
    )
