"""Core domain entities."""

from inventory_ledger.core.entities.inventory import (
    STOCK_ADJUSTMENT_REF,
    BaseUom,
    IngredientAccount,
    LedgerEntry,
    LedgerEntryDraft,
    LedgerReason,
    utc_now,
)
from inventory_ledger.core.entities.purchase_order import (
    PURCHASE_ORDER_REF,
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)
from inventory_ledger.core.entities.supplier_link import SupplierCatalogLink

__all__ = [
    # Inventory
    "STOCK_ADJUSTMENT_REF",
    "BaseUom",
    "IngredientAccount",
    "LedgerEntry",
    "LedgerEntryDraft",
    "LedgerReason",
    "utc_now",
    # Purchase orders
    "PURCHASE_ORDER_REF",
    "LineItem",
    "PurchaseOrder",
    "PurchaseOrderStatus",
    # Suppliers
    "SupplierCatalogLink",
]
