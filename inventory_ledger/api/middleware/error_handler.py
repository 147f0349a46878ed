"""
Error handling middleware.

Standardizes all API error responses to include:
- error_code: machine-readable identifier
- message: human-readable description
- hint: whether to fix the input or retry the same call

Lock timeouts and concurrent-update conflicts map to 503 with Retry-After;
repeating the same call is always safe because completion is idempotent.
"""

import traceback
from collections.abc import Awaitable, Callable

import aiosqlite
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from inventory_ledger.application.dto.responses import ErrorResponse
from inventory_ledger.config import get_logger, get_settings
from inventory_ledger.core.exceptions import (
    ConcurrentUpdateError,
    DatabaseError,
    DuplicateLedgerEntryError,
    InvalidStateError,
    InvariantViolation,
    LedgerError,
    LockTimeoutError,
    NotFoundError,
    PartialApplyError,
    StorageError,
    ValidationError,
)

logger = get_logger(__name__)


# Map exceptions to HTTP status codes; first isinstance match wins
EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    PartialApplyError: status.HTTP_409_CONFLICT,
    DuplicateLedgerEntryError: status.HTTP_409_CONFLICT,
    InvariantViolation: 422,
    LockTimeoutError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConcurrentUpdateError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ValueError: status.HTTP_400_BAD_REQUEST,
}

# Hint messages per error code
HINT_MAP: dict[str, str] = {
    "PURCHASE_ORDER_NOT_FOUND": "Check the ID and try GET /api/purchase-orders to list orders.",
    "INGREDIENT_NOT_FOUND": "Register the ingredient with POST /api/inventory/ingredients.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "INVALID_STATE": "The purchase order is not in a state that allows this operation.",
    "DUPLICATE_LEDGER_ENTRY": "The document line was already recorded; nothing was changed.",
    "INVARIANT_VIOLATION": "Stock would go negative. Correct the line item or the stock first.",
    "PARTIAL_APPLY": "Some lines were received. Repeat the same completion call to finish.",
    "LOCK_TIMEOUT": "The ingredient is busy. Retry the same call.",
    "CONCURRENT_UPDATE": "The ingredient changed since it was read. Re-read the account and retry.",
    "DATABASE_ERROR": "A database operation failed. Retry; check server logs if it persists.",
}

# Default hints by HTTP status code
STATUS_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    404: "The requested resource was not found. Verify the ID.",
    409: "The request conflicts with the current state of the resource.",
    422: "The request could not be processed. Check the input format.",
    500: "An internal error occurred. Check server logs.",
    503: "The service is temporarily unavailable. Retry later.",
}


def _get_hint(error_code: str, status_code: int) -> str:
    """Resolve hint from error code, falling back to status-based hint."""
    return HINT_MAP.get(error_code) or STATUS_HINTS.get(status_code, "")


def status_for(exc: Exception) -> int:
    for exc_type, code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Convert exception to standardized JSON response."""
    if isinstance(exc, aiosqlite.Error):
        exc = DatabaseError(f"{request.method} {request.url.path}", str(exc))
    status_code = status_for(exc)

    if isinstance(exc, LedgerError):
        error_code = exc.code
        message = exc.message
        details = exc.details
        retryable = exc.retryable
    else:
        error_code = exc.__class__.__name__
        message = str(exc)
        details = None
        retryable = False

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_error",
        request_id=getattr(request.state, "request_id", None),
        path=request.url.path,
        error_type=error_code,
        error=message,
        traceback=traceback.format_exc() if status_code >= 500 else None,
    )

    cause = getattr(exc, "cause", None)
    body = ErrorResponse(
        error_code=error_code,
        message=message,
        hint=_get_hint(error_code, status_code),
        detail=str(cause) if cause is not None else None,
        details=details,
        retryable=retryable,
        path=request.url.path,
    )
    headers = None
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(get_settings().api.retry_after_seconds)}
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Last line of defence for exceptions no handler claimed.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return error_response(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Set up FastAPI exception handlers."""
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException

    @app.exception_handler(LedgerError)
    async def ledger_exception_handler(request: Request, exc: LedgerError) -> JSONResponse:
        """Render domain errors with their mapped status."""
        return error_response(request, exc)

    @app.exception_handler(aiosqlite.Error)
    async def database_exception_handler(request: Request, exc: aiosqlite.Error) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")

        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                hint="Check the request body fields and types.",
                detail="; ".join(errors),
                path=request.url.path,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request,
        exc: HTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions with standardized format."""
        error_code = _infer_error_code(exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error_code=error_code,
                message=exc.detail or "An error occurred",
                hint=_get_hint(error_code, exc.status_code),
                path=request.url.path,
            ).model_dump(mode="json"),
        )


def _infer_error_code(status_code: int) -> str:
    return {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        422: "UNPROCESSABLE_ENTITY",
    }.get(status_code, "HTTP_ERROR")
