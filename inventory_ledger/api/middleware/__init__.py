"""Request logging and error rendering."""

from inventory_ledger.api.middleware.error_handler import (
    ErrorHandlerMiddleware,
    setup_exception_handlers,
)
from inventory_ledger.api.middleware.logging import LoggingMiddleware

__all__ = ["ErrorHandlerMiddleware", "LoggingMiddleware", "setup_exception_handlers"]
