"""Core interfaces (ports) for dependency injection."""

from inventory_ledger.core.interfaces.inventory_store import IAccountStore, ILedgerStore
from inventory_ledger.core.interfaces.purchase_order_store import IPurchaseOrderStore
from inventory_ledger.core.interfaces.supplier_catalog import ISupplierCatalog

__all__ = [
    "IAccountStore",
    "ILedgerStore",
    "IPurchaseOrderStore",
    "ISupplierCatalog",
]
