"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from pydantic import BaseModel, Field

from inventory_ledger.core.entities.inventory import BaseUom
from inventory_ledger.core.entities.purchase_order import PurchaseOrderStatus


class LineItemRequest(BaseModel):
    """One line of a purchase order."""

    store_ingredient_id: str = Field(
        ...,
        min_length=1,
        description="Store ingredient receiving the stock",
        examples=["flour-t65"],
    )
    catalog_item_id: str = Field(
        ...,
        min_length=1,
        description="Supplier catalog item being bought",
        examples=["sup-42-flour-25kg"],
    )
    qty: int = Field(..., gt=0, description="Quantity in the ingredient's base unit")
    price: int = Field(
        ..., ge=0, description="Unit price in currency minor units per base unit"
    )
    base_uom: BaseUom = Field(default=BaseUom.PCS, description="gr, ml or pcs")


class CreatePurchaseOrderRequest(BaseModel):
    """Request to create a purchase order."""

    supplier_id: str | None = Field(default=None, description="Supplier ID")
    status: PurchaseOrderStatus = Field(
        default=PurchaseOrderStatus.DRAFT,
        description="Initial status: draft or issued",
    )
    items: list[LineItemRequest] = Field(..., min_length=1)


class ReplaceItemsRequest(BaseModel):
    """Replace all line items of a draft purchase order."""

    items: list[LineItemRequest] = Field(..., min_length=1)


class RegisterIngredientRequest(BaseModel):
    """Register an ingredient account before its first movement."""

    ingredient_id: str = Field(..., min_length=1, description="Store ingredient ID")
    name: str | None = Field(default=None, description="Display name")
    base_uom: BaseUom = Field(default=BaseUom.PCS)
    min_stock: int = Field(default=0, ge=0, description="Low-stock threshold")


class StockCountRequest(BaseModel):
    """Counted quantity of one ingredient."""

    ingredient_id: str = Field(..., min_length=1, description="Store ingredient ID")
    counted_qty: int = Field(..., ge=0, description="Physical count in the base unit")
    expected_version: int | None = Field(
        default=None,
        ge=0,
        description="Account version the count was taken against; stale counts are rejected",
    )


class StockAdjustmentRequest(BaseModel):
    """Stock count (opname) that sets each ingredient to its counted quantity."""

    items: list[StockCountRequest] = Field(..., min_length=1)
