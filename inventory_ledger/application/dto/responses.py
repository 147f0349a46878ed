"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from inventory_ledger.core.entities.inventory import IngredientAccount, LedgerEntry
from inventory_ledger.core.entities.purchase_order import LineItem, PurchaseOrder
from inventory_ledger.core.entities.supplier_link import SupplierCatalogLink


class PaginatedResponse(BaseModel):
    """Base for paginated responses."""

    total: int
    limit: int
    offset: int
    has_more: bool


# --- Purchase Orders ---


class LineItemResponse(BaseModel):
    """Purchase order line in response."""

    line_no: int
    store_ingredient_id: str
    catalog_item_id: str
    qty: int
    price: int
    base_uom: str
    line_total: int

    @classmethod
    def from_entity(cls, item: LineItem) -> "LineItemResponse":
        return cls(
            line_no=item.line_no,
            store_ingredient_id=item.store_ingredient_id,
            catalog_item_id=item.catalog_item_id,
            qty=item.qty,
            price=item.price,
            base_uom=item.base_uom.value,
            line_total=item.line_total,
        )


class PurchaseOrderResponse(BaseModel):
    """Purchase order response DTO."""

    id: str
    supplier_id: str | None = None
    status: str
    items: list[LineItemResponse] = Field(default_factory=list)
    grand_total: int = Field(..., description="Sum of qty * price")
    issued_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, order: PurchaseOrder) -> "PurchaseOrderResponse":
        return cls(
            id=order.id,
            supplier_id=order.supplier_id,
            status=order.status.value,
            items=[LineItemResponse.from_entity(item) for item in order.items],
            grand_total=order.grand_total,
            issued_at=order.issued_at,
            completed_at=order.completed_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class PurchaseOrderListResponse(PaginatedResponse):
    """Paginated purchase order list."""

    orders: list[PurchaseOrderResponse]


class CompletionResponse(BaseModel):
    """Outcome of a completion call."""

    purchase_order: PurchaseOrderResponse
    applied_lines: list[int] = Field(
        default_factory=list, description="Lines applied by this call"
    )
    skipped_lines: list[int] = Field(
        default_factory=list, description="Lines already applied earlier"
    )
    already_complete: bool = Field(
        default=False, description="True when the order was complete before the call"
    )


# --- Inventory ---


class IngredientAccountResponse(BaseModel):
    """Ingredient account response DTO."""

    ingredient_id: str
    name: str | None = None
    base_uom: str
    min_stock: int
    current_stock: int
    avg_cost: int
    stock_value: int
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, account: IngredientAccount) -> "IngredientAccountResponse":
        return cls(
            ingredient_id=account.ingredient_id,
            name=account.name,
            base_uom=account.base_uom.value,
            min_stock=account.min_stock,
            current_stock=account.current_stock,
            avg_cost=account.avg_cost,
            stock_value=account.stock_value,
            is_low_stock=account.is_low_stock,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class RegisterIngredientResponse(BaseModel):
    account: IngredientAccountResponse
    created: bool = False  # False if the account already existed


class AccountListResponse(BaseModel):
    accounts: list[IngredientAccountResponse]
    limit: int
    offset: int


class LedgerEntryResponse(BaseModel):
    """Stock ledger entry response DTO."""

    id: int
    ingredient_id: str
    delta_qty: int
    uom: str
    reason: str
    ref_type: str | None = None
    ref_id: str | None = None
    ref_line: int | None = None
    occurred_at: datetime

    @classmethod
    def from_entity(cls, entry: LedgerEntry) -> "LedgerEntryResponse":
        return cls(
            id=entry.id,
            ingredient_id=entry.ingredient_id,
            delta_qty=entry.delta_qty,
            uom=entry.uom.value,
            reason=entry.reason.value,
            ref_type=entry.ref_type,
            ref_id=entry.ref_id,
            ref_line=entry.ref_line,
            occurred_at=entry.occurred_at,
        )


class LedgerPageResponse(BaseModel):
    """A page of ledger entries for one ingredient, newest first."""

    ingredient_id: str
    entries: list[LedgerEntryResponse]
    limit: int
    offset: int


class ValuationResponse(BaseModel):
    """Inventory valuation at weighted-average cost."""

    accounts: list[IngredientAccountResponse]
    account_count: int
    total_units: int
    total_value: int = Field(..., description="Sum of current_stock * avg_cost")


class ReconciliationResponse(BaseModel):
    """Account projection compared with the ledger sum."""

    ingredient_id: str
    account_stock: int
    ledger_stock: int
    difference: int
    balanced: bool
    checked_at: datetime


class PurchaseHistoryEntryResponse(BaseModel):
    """One purchase-order receipt of an ingredient."""

    purchase_order_id: str
    line_no: int | None = None
    qty: int
    unit_price: int | None = None
    received_at: datetime


class SupplierLinkResponse(BaseModel):
    catalog_item_id: str
    preferred: bool
    last_purchase_price: int | None = None
    last_purchased_at: datetime | None = None

    @classmethod
    def from_entity(cls, link: SupplierCatalogLink) -> "SupplierLinkResponse":
        return cls(
            catalog_item_id=link.catalog_item_id,
            preferred=link.preferred,
            last_purchase_price=link.last_purchase_price,
            last_purchased_at=link.last_purchased_at,
        )


class PurchaseHistoryResponse(BaseModel):
    """Receipts of an ingredient plus the catalog items that restock it."""

    ingredient_id: str
    receipts: list[PurchaseHistoryEntryResponse]
    supplier_links: list[SupplierLinkResponse]


class StockAdjustmentLineResponse(BaseModel):
    """One counted ingredient and the movement it produced."""

    line_no: int
    ingredient_id: str
    counted_qty: int
    previous_stock: int
    delta_qty: int = Field(..., description="counted_qty - previous_stock; 0 means no entry")
    ledger_entry_id: int | None = None
    account: IngredientAccountResponse


class StockAdjustmentResponse(BaseModel):
    """Outcome of a stock count."""

    adjustment_id: str
    lines: list[StockAdjustmentLineResponse]
    changed_lines: int
    occurred_at: datetime


# --- Health / Errors ---


class ComponentHealthResponse(BaseModel):
    """Health status of a backing component."""

    name: str
    available: bool
    latency_ms: float | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: ComponentHealthResponse | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. PURCHASE_ORDER_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    details: dict[str, Any] | None = Field(
        default=None, description="Offending entity ids and structured context"
    )
    retryable: bool = Field(default=False, description="Safe to repeat the same call")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
