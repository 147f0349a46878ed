"""
Domain exceptions for the inventory ledger.

Every error carries a machine-readable code, the offending entity ids in
``details`` and whether the caller may simply retry the same call.
"""

from typing import Any


class LedgerError(Exception):
    """Base exception for all inventory ledger errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


# Storage Exceptions
class StorageError(LedgerError):
    """Base exception for storage operations."""

    retryable = True


class DatabaseError(StorageError):
    """Database operation failed."""

    def __init__(self, operation: str, error: str):
        super().__init__(
            f"Database error during {operation}: {error}",
            code="DATABASE_ERROR",
            details={"operation": operation, "error": error},
        )


class ConcurrentUpdateError(StorageError):
    """An account row changed between read and write."""

    def __init__(self, ingredient_id: str, expected_version: int):
        super().__init__(
            f"Ingredient account {ingredient_id} was modified concurrently",
            code="CONCURRENT_UPDATE",
            details={
                "ingredient_id": ingredient_id,
                "expected_version": expected_version,
            },
        )


# Lookup Exceptions
class NotFoundError(LedgerError):
    """Base exception for missing entities."""

    pass


class PurchaseOrderNotFoundError(NotFoundError):
    """Purchase order not found."""

    def __init__(self, purchase_order_id: str):
        super().__init__(
            f"Purchase order not found: {purchase_order_id}",
            code="PURCHASE_ORDER_NOT_FOUND",
            details={"purchase_order_id": purchase_order_id},
        )


class IngredientAccountNotFoundError(NotFoundError):
    """No account exists for the ingredient."""

    def __init__(self, ingredient_id: str):
        super().__init__(
            f"Ingredient account not found: {ingredient_id}",
            code="INGREDIENT_NOT_FOUND",
            details={"ingredient_id": ingredient_id},
        )


# Validation Exceptions
class ValidationError(LedgerError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class UnknownIngredientError(ValidationError):
    """A movement references an ingredient without an account."""

    def __init__(self, ingredient_id: str):
        super().__init__(
            field="ingredient_id",
            message=f"Unknown ingredient '{ingredient_id}'",
            value=ingredient_id,
        )
        self.details["ingredient_id"] = ingredient_id


# State Exceptions
class InvalidStateError(LedgerError):
    """Operation not allowed in the purchase order's current state."""

    def __init__(self, purchase_order_id: str, status: str, operation: str):
        super().__init__(
            f"Cannot {operation} purchase order {purchase_order_id} in status '{status}'",
            code="INVALID_STATE",
            details={
                "purchase_order_id": purchase_order_id,
                "status": status,
                "operation": operation,
            },
        )


class DuplicateLedgerEntryError(LedgerError):
    """The document line already has a ledger entry."""

    def __init__(self, ref_type: str | None, ref_id: str | None, ref_line: int | None):
        super().__init__(
            f"Ledger already records {ref_type} {ref_id} line {ref_line}",
            code="DUPLICATE_LEDGER_ENTRY",
            details={"ref_type": ref_type, "ref_id": ref_id, "ref_line": ref_line},
        )


class InvariantViolation(LedgerError):
    """A movement would break an account invariant (negative stock)."""

    def __init__(self, ingredient_id: str, current_stock: int, delta_qty: int):
        super().__init__(
            f"Movement of {delta_qty} would leave ingredient {ingredient_id} "
            f"with negative stock (current {current_stock})",
            code="INVARIANT_VIOLATION",
            details={
                "ingredient_id": ingredient_id,
                "current_stock": current_stock,
                "delta_qty": delta_qty,
            },
        )


# Concurrency / Completion Exceptions
class LockTimeoutError(LedgerError):
    """Timed out waiting for an ingredient lock."""

    retryable = True

    def __init__(self, key: str, timeout: float):
        super().__init__(
            f"Timed out after {timeout}s waiting for lock on ingredient {key}",
            code="LOCK_TIMEOUT",
            details={"ingredient_id": key, "timeout": timeout},
        )


class PartialApplyError(LedgerError):
    """Some, but not all, line items of a purchase order were applied."""

    def __init__(
        self,
        purchase_order_id: str,
        applied: list[int],
        pending: list[int],
        cause: Exception,
    ):
        super().__init__(
            f"Purchase order {purchase_order_id} partially applied: "
            f"{len(pending)} line(s) still pending ({cause})",
            code="PARTIAL_APPLY",
            details={
                "purchase_order_id": purchase_order_id,
                "applied_lines": applied,
                "pending_lines": pending,
                "cause": getattr(cause, "code", cause.__class__.__name__),
            },
        )
        self.applied = applied
        self.pending = pending
        self.cause = cause

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        """Retrying helps unless the cause needs an operator."""
        return getattr(self.cause, "retryable", True)
