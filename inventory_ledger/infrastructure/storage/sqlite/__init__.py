"""SQLite storage implementations."""

from inventory_ledger.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
    in_transaction,
)
from inventory_ledger.infrastructure.storage.sqlite.inventory_store import (
    SQLiteAccountStore,
    SQLiteLedgerStore,
)
from inventory_ledger.infrastructure.storage.sqlite.purchase_order_store import (
    SQLitePurchaseOrderStore,
)
from inventory_ledger.infrastructure.storage.sqlite.supplier_link_store import (
    SQLiteSupplierLinkStore,
)

# Aliases used by the application lifespan
get_connection_pool = get_pool
close_connection_pool = close_pool

# Singleton instances
_ledger_store: SQLiteLedgerStore | None = None
_account_store: SQLiteAccountStore | None = None
_purchase_order_store: SQLitePurchaseOrderStore | None = None
_supplier_link_store: SQLiteSupplierLinkStore | None = None


async def get_ledger_store() -> SQLiteLedgerStore:
    """Get singleton ledger store instance."""
    global _ledger_store
    if _ledger_store is None:
        _ledger_store = SQLiteLedgerStore()
    return _ledger_store


async def get_account_store() -> SQLiteAccountStore:
    """Get singleton ingredient account store instance."""
    global _account_store
    if _account_store is None:
        _account_store = SQLiteAccountStore()
    return _account_store


async def get_purchase_order_store() -> SQLitePurchaseOrderStore:
    """Get singleton purchase order store instance."""
    global _purchase_order_store
    if _purchase_order_store is None:
        _purchase_order_store = SQLitePurchaseOrderStore()
    return _purchase_order_store


async def get_supplier_link_store() -> SQLiteSupplierLinkStore:
    """Get singleton supplier link store instance."""
    global _supplier_link_store
    if _supplier_link_store is None:
        _supplier_link_store = SQLiteSupplierLinkStore()
    return _supplier_link_store


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    "in_transaction",
    "get_connection_pool",
    "close_connection_pool",
    # Store classes
    "SQLiteLedgerStore",
    "SQLiteAccountStore",
    "SQLitePurchaseOrderStore",
    "SQLiteSupplierLinkStore",
    # Factory functions
    "get_ledger_store",
    "get_account_store",
    "get_purchase_order_store",
    "get_supplier_link_store",
]
