"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.

Raised:   caller misuse (configuration, readiness) and transport failures.
Returned: business outcomes (declined charge, refused refund) as result values.
"""

from unified_payment.models.domain import Provider


class PaymentError(Exception):
    """Base exception for all payment errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        provider: Provider | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.provider = provider
        super().__init__(message)

    def __str__(self) -> str:
        details = []
        if self.code:
            details.append(f"code={self.code}")
        if self.provider is not None:
            details.append(f"provider={self.provider.display_name}")
        if details:
            return f"{self.message} ({', '.join(details)})"
        return self.message


class ConfigurationError(PaymentError):
    """Raised when configuration is missing or invalid."""


class InitializationError(ConfigurationError):
    """Raised when a backend rejects the credentials or config given to initialize()."""

    def __init__(
        self,
        message: str,
        provider: Provider | None = None,
        field: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(message, code="initialization_error", provider=provider)


class NotInitializedError(PaymentError):
    """Raised when a plugin is used before initialize() or after dispose()."""

    def __init__(self, provider: Provider) -> None:
        super().__init__(
            f"{provider.display_name} plugin is not initialized. Call initialize() first.",
            code="not_initialized",
            provider=provider,
        )


class ProcessingError(PaymentError):
    """Raised when a backend call fails at the transport layer or is rejected outright."""


class UnsupportedCapabilityError(ProcessingError):
    """Raised when an operation has no meaning for a backend (e.g. card vault on BNPL)."""

    def __init__(self, capability: str, provider: Provider) -> None:
        self.capability = capability
        super().__init__(
            f"{capability} is not supported by {provider.display_name}",
            code="unsupported_capability",
            provider=provider,
        )


class UnsupportedProviderError(PaymentError):
    """Raised when no backend is registered for a provider."""

    def __init__(self, provider: Provider) -> None:
        super().__init__(
            f"Provider {provider.display_name} is not implemented",
            code="unsupported_provider",
            provider=provider,
        )
