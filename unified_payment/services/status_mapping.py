"""
Status Normalization - Provider status vocabularies to PaymentStatus.

One algorithm, one small table per backend.

Unknown tokens map to PENDING, never FAILED: an unrecognized status after an
accepted request is far more often "still settling", and a false FAILED would
stop a caller's polling loop. When a provider overloads a token (listed under
two statuses), the less final status wins so a poller is never told a payment
failed prematurely. Do not make these mappings stricter.
"""

from collections.abc import Iterable, Mapping

from structlog import get_logger

from unified_payment.models.domain import PaymentStatus, Provider

logger = get_logger(__name__)


class StatusMapper:
    """Total, case-insensitive mapping from provider tokens to PaymentStatus."""

    def __init__(
        self,
        provider: Provider,
        table: Mapping[PaymentStatus, Iterable[str]],
        default: PaymentStatus = PaymentStatus.PENDING,
    ) -> None:
        self.provider = provider
        self.default = default
        self._lookup: dict[str, PaymentStatus] = {}

        for status, tokens in table.items():
            for token in tokens:
                key = token.strip().lower()
                existing = self._lookup.get(key)
                if existing is None or status.finality < existing.finality:
                    self._lookup[key] = status

    def map(self, raw_status: object) -> PaymentStatus:
        """Map a raw provider status (any type, including None) to PaymentStatus."""
        if raw_status is None:
            return self.default

        key = str(raw_status).strip().lower()
        status = self._lookup.get(key)
        if status is None:
            logger.debug(
                "unknown_provider_status",
                provider=self.provider.value,
                raw_status=key,
                mapped_to=self.default.value,
            )
            return self.default
        return status

    __call__ = map

    @property
    def tokens(self) -> dict[str, PaymentStatus]:
        """Resolved token table (after tie-breaks)."""
        return dict(self._lookup)
