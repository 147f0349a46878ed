"""Purchase order entities."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from inventory_ledger.core.entities.inventory import BaseUom, utc_now


# ref_type of ledger entries produced by purchase order receipts
PURCHASE_ORDER_REF = "purchase_order"


class PurchaseOrderStatus(str, Enum):
    """Purchase order lifecycle: draft -> issued -> complete, or cancelled."""

    DRAFT = "draft"
    ISSUED = "issued"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PurchaseOrderStatus.COMPLETE, PurchaseOrderStatus.CANCELLED)


class LineItem(BaseModel):
    """One received ingredient on a purchase order."""

    line_no: int = 0  # 1-based, assigned on save
    store_ingredient_id: str
    catalog_item_id: str
    qty: int  # in base_uom
    price: int  # minor units per base unit
    base_uom: BaseUom = BaseUom.PCS

    @property
    def line_total(self) -> int:
        return self.qty * self.price


class PurchaseOrder(BaseModel):
    """A purchase order and its typed line items."""

    id: str
    supplier_id: str | None = None
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    items: list[LineItem] = Field(default_factory=list)
    issued_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def grand_total(self) -> int:
        """Sum of qty * price across all lines."""
        return sum(item.line_total for item in self.items)

    @property
    def can_delete(self) -> bool:
        return self.status != PurchaseOrderStatus.COMPLETE

    @property
    def ingredient_ids(self) -> list[str]:
        """Distinct ingredient ids in line order."""
        return list(dict.fromkeys(item.store_ingredient_id for item in self.items))
