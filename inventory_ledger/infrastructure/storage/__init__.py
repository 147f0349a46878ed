"""Storage infrastructure implementations."""

from inventory_ledger.infrastructure.storage.sqlite import (
    SQLiteAccountStore,
    SQLiteLedgerStore,
    SQLitePurchaseOrderStore,
    SQLiteSupplierLinkStore,
)

__all__ = [
    "SQLiteAccountStore",
    "SQLiteLedgerStore",
    "SQLitePurchaseOrderStore",
    "SQLiteSupplierLinkStore",
]
