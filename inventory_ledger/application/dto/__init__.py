"""Pydantic request and response models of the HTTP API."""

from inventory_ledger.application.dto.requests import (
    CreatePurchaseOrderRequest,
    LineItemRequest,
    RegisterIngredientRequest,
    ReplaceItemsRequest,
    StockAdjustmentRequest,
    StockCountRequest,
)
from inventory_ledger.application.dto.responses import (
    AccountListResponse,
    CompletionResponse,
    ComponentHealthResponse,
    ErrorResponse,
    HealthResponse,
    IngredientAccountResponse,
    LedgerEntryResponse,
    LedgerPageResponse,
    LineItemResponse,
    PaginatedResponse,
    PurchaseHistoryEntryResponse,
    PurchaseHistoryResponse,
    PurchaseOrderListResponse,
    PurchaseOrderResponse,
    ReconciliationResponse,
    RegisterIngredientResponse,
    StockAdjustmentLineResponse,
    StockAdjustmentResponse,
    SupplierLinkResponse,
    ValuationResponse,
)

__all__ = [
    # Requests
    "LineItemRequest",
    "CreatePurchaseOrderRequest",
    "ReplaceItemsRequest",
    "RegisterIngredientRequest",
    "StockCountRequest",
    "StockAdjustmentRequest",
    # Responses
    "PaginatedResponse",
    "LineItemResponse",
    "PurchaseOrderResponse",
    "PurchaseOrderListResponse",
    "CompletionResponse",
    "IngredientAccountResponse",
    "RegisterIngredientResponse",
    "AccountListResponse",
    "LedgerEntryResponse",
    "LedgerPageResponse",
    "ValuationResponse",
    "ReconciliationResponse",
    "PurchaseHistoryEntryResponse",
    "SupplierLinkResponse",
    "PurchaseHistoryResponse",
    "StockAdjustmentLineResponse",
    "StockAdjustmentResponse",
    "ComponentHealthResponse",
    "HealthResponse",
    "ErrorResponse",
]
