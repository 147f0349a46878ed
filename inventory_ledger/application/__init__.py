"""
Use cases and their request/response models.

Route handlers call only into this package. Purchase order completion is
the one use case that takes locks and opens transactions; the others read
or make single-row changes.
"""

from inventory_ledger.application.dto import (
    CompletionResponse,
    CreatePurchaseOrderRequest,
    ErrorResponse,
    HealthResponse,
    IngredientAccountResponse,
    PurchaseOrderResponse,
    RegisterIngredientRequest,
    ReplaceItemsRequest,
)
from inventory_ledger.application.use_cases import (
    CompletionCoordinator,
    InventoryReportUseCase,
    PurchaseOrderWorkflow,
)

__all__ = [
    # Request DTOs
    "CreatePurchaseOrderRequest",
    "ReplaceItemsRequest",
    "RegisterIngredientRequest",
    # Response DTOs
    "PurchaseOrderResponse",
    "CompletionResponse",
    "IngredientAccountResponse",
    "HealthResponse",
    "ErrorResponse",
    # Use Cases
    "CompletionCoordinator",
    "PurchaseOrderWorkflow",
    "InventoryReportUseCase",
]
