"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

import inventory_ledger.infrastructure.storage.sqlite as sqlite_module
import inventory_ledger.infrastructure.storage.sqlite.connection as conn_module
from inventory_ledger.core.entities import (
    PURCHASE_ORDER_REF,
    BaseUom,
    LedgerEntry,
    LedgerReason,
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)
from inventory_ledger.infrastructure.locking import reset_lock_registry
from inventory_ledger.infrastructure.storage.sqlite.migrations.migrator import (
    initialize_database,
)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "ledger_test.db"


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock storage settings pointing at the temp database."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 3
    mock.storage.busy_timeout = 5000
    mock.storage.synchronous = "NORMAL"
    return mock


@pytest.fixture
async def ledger_db(temp_db_path: Path, mock_settings) -> AsyncGenerator[Path, None]:
    """Migrated temp database wired in as the global connection pool."""
    await initialize_database(temp_db_path, create_backup_before=False)

    conn_module._pool = None
    for name in (
        "_ledger_store",
        "_account_store",
        "_purchase_order_store",
        "_supplier_link_store",
    ):
        setattr(sqlite_module, name, None)
    reset_lock_registry()

    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            yield temp_db_path
        finally:
            await conn_module.close_pool()
            reset_lock_registry()


def make_order(
    order_id: str = "po-1",
    lines: list[tuple[str, int, int]] | None = None,
    status: PurchaseOrderStatus = PurchaseOrderStatus.ISSUED,
) -> PurchaseOrder:
    """Purchase order from (ingredient_id, qty, price) tuples."""
    lines = lines or [("flour", 10, 2000)]
    return PurchaseOrder(
        id=order_id,
        supplier_id="sup-1",
        status=status,
        items=[
            LineItem(
                line_no=index,
                store_ingredient_id=ingredient_id,
                catalog_item_id=f"cat-{ingredient_id}",
                qty=qty,
                price=price,
                base_uom=BaseUom.GR,
            )
            for index, (ingredient_id, qty, price) in enumerate(lines, start=1)
        ],
    )


@pytest.fixture
def order_factory():
    return make_order


def make_receipt(ingredient_id: str, line_no: int, order_id: str = "po-1") -> LedgerEntry:
    """Ledger entry recording a purchase order line as received."""
    return LedgerEntry(
        id=line_no,
        ingredient_id=ingredient_id,
        delta_qty=1,
        reason=LedgerReason.PO,
        ref_type=PURCHASE_ORDER_REF,
        ref_id=order_id,
        ref_line=line_no,
        occurred_at=datetime(2024, 1, 1, tzinfo=UTC),
    )
