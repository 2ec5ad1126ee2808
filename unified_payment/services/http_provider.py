"""
HTTP Backend Base - Shared httpx plumbing for REST payment networks.

Backends describe their endpoints and payloads; this module owns the client,
sandbox routing, transport-error translation and local reference minting.
"""

import time
import zlib
from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, ClassVar

import httpx
from structlog import get_logger

from unified_payment.config import settings
from unified_payment.exceptions import ProcessingError
from unified_payment.models.domain import Amount, PaymentIntent, PaymentResult, PaymentStatus
from unified_payment.services.payment_provider import BasePaymentPlugin, Credentials
from unified_payment.services.webhook_mapping import SignatureVerifier

logger = get_logger(__name__)


class HttpPaymentPlugin(BasePaymentPlugin):
    """Base for backends that talk JSON (or form) over HTTPS."""

    base_url: ClassVar[str]
    sandbox_base_url: ClassVar[str | None] = None
    reference_prefix: ClassVar[str]

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        signature_verifier: SignatureVerifier | None = None,
    ) -> None:
        super().__init__(signature_verifier=signature_verifier)
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client (created on first use unless one was injected)."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                headers={"User-Agent": settings.user_agent},
            )
        return self._http_client

    def _holds_resources(self) -> bool:
        # An in-flight call may re-create the owned client after dispose()
        return self._owns_http_client and self._http_client is not None

    async def _on_dispose(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            client, self._http_client = self._http_client, None
            await client.aclose()

    def _url(self, credentials: Credentials, path: str) -> str:
        base = self.base_url
        if credentials.use_sandbox and self.sandbox_base_url:
            base = self.sandbox_base_url
        return f"{base}{path}"

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        """Authentication headers; backends override."""
        return {"Authorization": f"Bearer {credentials.secret_key or credentials.public_key}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request; transport failures become ProcessingError, status codes do not."""
        try:
            response = await self.http_client.request(
                method,
                url,
                headers=dict(headers or {}),
                json=json,
                data=data,
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.error(
                "payment_http_transport_failed",
                provider=self.provider.value,
                method=method,
                url=url,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise ProcessingError(
                f"{self.provider.display_name} request failed: {exc}",
                code="transport_error",
                provider=self.provider,
            ) from exc

        logger.debug(
            "payment_http_response",
            provider=self.provider.value,
            method=method,
            url=url,
            status=response.status_code,
        )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        """Parse a JSON object body; anything else reads as empty."""
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _ok(response: httpx.Response) -> bool:
        return response.status_code in (200, 201, 202)

    def _rejected(self, operation: str, response: httpx.Response) -> ProcessingError:
        """Error for a request the backend refused outright."""
        return ProcessingError(
            f"{self.provider.display_name} {operation} failed: "
            f"HTTP {response.status_code} {response.text}",
            code="api_error",
            provider=self.provider,
        )

    def _declined(
        self,
        payment_id: str,
        response: httpx.Response,
        code: str = "api_error",
        message: str | None = None,
    ) -> PaymentResult:
        """Confirmation the backend answered but did not accept."""
        return PaymentResult(
            payment_id=payment_id,
            status=PaymentStatus.FAILED,
            error_message=message or f"HTTP {response.status_code}: {response.text}",
            error_code=code,
        )

    @staticmethod
    def _refunded_amount(amount: Amount | None, data: Mapping[str, Any]) -> Amount:
        """Requested amount, or whatever the backend reports for a full refund."""
        if amount is not None:
            return amount
        raw_amount = data.get("amount")
        raw_currency = str(data.get("currency") or "XXX").upper()
        # The refund already went through; report what is known rather than raise
        try:
            minor_units = max(int(Decimal(str(raw_amount or 0))), 0)
        except (ArithmeticError, ValueError):
            logger.warning("refund_amount_unparsed", amount=repr(raw_amount))
            minor_units = 0
        if len(raw_currency) != 3 or not raw_currency.isalpha():
            logger.warning("refund_currency_unparsed", currency=repr(raw_currency))
            raw_currency = "XXX"
        return Amount(minor_units=minor_units, currency=raw_currency)

    def _token(self, response: httpx.Response, token: Any) -> str:
        """Validate a tokenization answer."""
        if not self._ok(response):
            raise self._rejected("tokenize_card", response)
        if not token:
            raise ProcessingError(
                f"{self.provider.display_name} returned no card token",
                code="tokenization_failed",
                provider=self.provider,
            )
        return str(token)

    def _require_field(self, data: Mapping[str, Any], key: str) -> Any:
        """Fetch caller-supplied confirmation data; absence is caller misuse."""
        value = data.get(key)
        if value is None or value == "":
            raise ProcessingError(
                f"{self.provider.display_name} requires '{key}' in payment_method_data",
                code="missing_payment_data",
                provider=self.provider,
            )
        return value

    def _amount_from(self, data: Mapping[str, Any]) -> Amount:
        """Amount (minor units + currency) the caller passes at confirmation time."""
        return Amount(
            minor_units=int(self._require_field(data, "amount")),
            currency=str(self._require_field(data, "currency")).upper(),
        )

    def _new_reference(self, customer_id: str) -> str:
        """Provider-scoped reference: <prefix>_<epoch ms>_<crc32(customer)>."""
        millis = int(time.time() * 1000)
        return f"{self.reference_prefix}_{millis}_{zlib.crc32(customer_id.encode())}"

    async def _create_payment_intent(
        self,
        credentials: Credentials,
        amount: Amount,
        customer_id: str,
        metadata: dict[str, Any],
    ) -> PaymentIntent:
        """Mint a local reference; mobile-money networks only see money at confirmation."""
        reference = self._new_reference(customer_id)
        return PaymentIntent(
            id=reference,
            client_secret=reference,
            status=PaymentStatus.PENDING,
            amount=amount,
            metadata={
                **metadata,
                "customer_id": customer_id,
                "amount": amount.minor_units,
                "currency": amount.currency,
                "created_at": datetime.now(UTC).isoformat(),
            },
        )


class OAuthHttpPaymentPlugin(HttpPaymentPlugin):
    """HTTP backend authenticating with an OAuth2 client-credentials token."""

    token_path: ClassVar[str] = "/oauth2/token"
    token_leeway_seconds: ClassVar[int] = 60

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        signature_verifier: SignatureVerifier | None = None,
    ) -> None:
        super().__init__(http_client=http_client, signature_verifier=signature_verifier)
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0

    async def _on_initialize(self, credentials: Credentials) -> None:
        self._access_token = None
        self._token_expires_at = 0.0

    async def _on_dispose(self) -> None:
        self._access_token = None
        self._token_expires_at = 0.0
        await super()._on_dispose()

    async def _access_token_for(self, credentials: Credentials) -> str:
        """Return a cached token, fetching a new one when missing or about to expire."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        response = await self._request(
            "POST", self._token_url(credentials), **self._token_request(credentials)
        )
        if response.status_code != 200:
            raise ProcessingError(
                f"{self.provider.display_name} authentication failed: HTTP {response.status_code}",
                code="authentication_error",
                provider=self.provider,
            )

        body = self._json(response)
        token = body.get("access_token")
        if not token:
            raise ProcessingError(
                f"{self.provider.display_name} authentication returned no access token",
                code="authentication_error",
                provider=self.provider,
            )

        expires_in = int(body.get("expires_in", 3600))
        self._access_token = str(token)
        self._token_expires_at = time.monotonic() + max(expires_in - self.token_leeway_seconds, 0)
        logger.info(
            "payment_access_token_refreshed",
            provider=self.provider.value,
            expires_in=expires_in,
        )
        return self._access_token

    def _token_url(self, credentials: Credentials) -> str:
        return self._url(credentials, self.token_path)

    def _token_request(self, credentials: Credentials) -> dict[str, Any]:
        """`_request` kwargs (headers, form data) carrying the client credentials."""
        raise NotImplementedError

    async def _auth_headers(self, credentials: Credentials) -> dict[str, str]:
        token = await self._access_token_for(credentials)
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
