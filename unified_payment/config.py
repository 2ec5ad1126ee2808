"""
Library Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Invalid config is rejected when settings are loaded.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from unified_payment.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Library settings loaded from environment variables."""

    # Identity (attached to every log line)
    service_name: str = "unified-payment"
    version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Metrics
    metrics_enabled: bool = True

    # Outbound HTTP to payment networks
    http_timeout_seconds: float = 30.0
    user_agent: str = "unified-payment/0.1.0"

    model_config = SettingsConfigDict(
        env_prefix="UNIFIED_PAYMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration when settings are loaded.

        A bad timeout or log level would otherwise only surface on the first
        payment call.
        """
        errors: list[str] = []

        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            errors.append(f"LOG_LEVEL must be a standard level name, got: {self.log_level}")

        if self.log_format not in {"json", "console"}:
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")

        if self.http_timeout_seconds <= 0:
            errors.append(
                f"HTTP_TIMEOUT_SECONDS must be positive, got: {self.http_timeout_seconds}"
            )

        if errors:
            raise ConfigurationError("Invalid settings: " + "; ".join(errors))

        return self


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get library settings instance."""
    return settings
