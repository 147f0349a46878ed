"""
Logging setup for the ledger service.

Modules log through structlog with snake_case event names and keyword
context. Events are routed through the stdlib root logger, so uvicorn and
aiosqlite records end up in the same stream.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from inventory_ledger.config.settings import Settings, get_settings
from inventory_ledger.core.exceptions import LedgerError

# Third-party loggers that are too chatty at INFO/DEBUG
_QUIET_LOGGERS = {
    "aiosqlite": logging.WARNING,  # logs every statement at DEBUG
    "uvicorn.access": logging.WARNING,
}

_configured = False


def add_service_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    settings = get_settings()
    event_dict.setdefault("service", settings.app_name)
    event_dict["version"] = settings.app_version
    event_dict["environment"] = settings.environment
    return event_dict


def expand_ledger_error(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Turn ``error=<LedgerError>`` into its message, code, ids and retry flag."""
    error = event_dict.get("error")
    if isinstance(error, LedgerError):
        event_dict["error"] = error.message
        event_dict["error_code"] = error.code
        event_dict["retryable"] = error.retryable
        if error.details:
            event_dict.setdefault("error_details", error.details)
    return event_dict


def _renderers(settings: Settings) -> list[Processor]:
    if settings.json_logs:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(force: bool = False) -> None:
    """Configure structlog and the stdlib root logger once per process."""
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_service_context,
        expand_ledger_error,
        *_renderers(settings),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )
    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
