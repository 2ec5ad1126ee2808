"""
Structured Logging with Structlog.

The library only asks structlog for loggers and never configures logging on
import. Applications that want the library's JSON shape can opt in with
`setup_logging()`; applications with their own structlog setup skip it.
"""

import logging
import sys
from typing import IO, Any

import structlog
from structlog.types import EventDict, Processor

from unified_payment.config import settings


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag entries with the library name and version."""
    event_dict.setdefault("service", settings.service_name)
    event_dict.setdefault("version", settings.version)
    return event_dict


def setup_logging(stream: IO[str] | None = None) -> None:
    """
    Opt-in structlog configuration for applications without their own.

    Level and renderer come from `settings` (`log_level`, `log_format`).
    Entries are written to `stream` (stderr by default); the standard
    library's root logger is left untouched.
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[settings.log_level.upper()]
        ),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def mask_secret(value: str | None) -> str | None:
    """Render a credential for logs: at most its first 8 characters."""
    if not value:
        return None
    if len(value) <= 8:
        return "***"
    return f"{value[:8]}..."


class log_context:
    """
    Bind structlog context variables for the duration of a block.

        with log_context(provider="wave", order_id="ord-123"):
            await client.confirm_payment(intent.client_secret)
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())
