"""SQLite implementation of supplier catalog links."""

from datetime import datetime

import aiosqlite

from inventory_ledger.config import get_logger
from inventory_ledger.core.entities.supplier_link import SupplierCatalogLink
from inventory_ledger.core.interfaces.supplier_catalog import ISupplierCatalog
from inventory_ledger.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
)
from inventory_ledger.infrastructure.storage.sqlite.inventory_store import (
    from_db_time,
    to_db_time,
)

logger = get_logger(__name__)


class SQLiteSupplierLinkStore(ISupplierCatalog):
    """Catalog item <-> store ingredient links with last purchase data."""

    async def record_last_purchase(
        self,
        catalog_item_id: str,
        store_ingredient_id: str,
        price: int,
        at: datetime,
    ) -> SupplierCatalogLink:
        """Upsert the link; an older purchase never overwrites a newer one."""
        stamp = to_db_time(at)
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO ingredient_supplier_links (
                    catalog_item_id, store_ingredient_id, preferred,
                    last_purchase_price, last_purchased_at
                ) VALUES (?, ?, 0, ?, ?)
                ON CONFLICT (catalog_item_id, store_ingredient_id) DO UPDATE SET
                    last_purchase_price = excluded.last_purchase_price,
                    last_purchased_at = excluded.last_purchased_at
                WHERE ingredient_supplier_links.last_purchased_at IS NULL
                   OR ingredient_supplier_links.last_purchased_at <= excluded.last_purchased_at
                """,
                (catalog_item_id, store_ingredient_id, price, stamp),
            )
            link = await self._fetch(conn, catalog_item_id, store_ingredient_id)
            logger.debug(
                "supplier_link_last_purchase_recorded",
                catalog_item_id=catalog_item_id,
                store_ingredient_id=store_ingredient_id,
                price=price,
            )
            return link  # type: ignore[return-value]

    async def list_links_for_ingredient(
        self, store_ingredient_id: str
    ) -> list[SupplierCatalogLink]:
        """Links for an ingredient, preferred first then most recently bought."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM ingredient_supplier_links
                WHERE store_ingredient_id = ?
                ORDER BY preferred DESC, last_purchased_at DESC, catalog_item_id
                """,
                (store_ingredient_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_link(row) for row in rows]

    async def ensure_link(
        self, catalog_item_id: str, store_ingredient_id: str
    ) -> SupplierCatalogLink:
        """Create the link if missing; the first link of an ingredient is preferred."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT OR IGNORE INTO ingredient_supplier_links (
                    catalog_item_id, store_ingredient_id, preferred
                ) VALUES (
                    ?, ?,
                    NOT EXISTS (
                        SELECT 1 FROM ingredient_supplier_links WHERE store_ingredient_id = ?
                    )
                )
                """,
                (catalog_item_id, store_ingredient_id, store_ingredient_id),
            )
            if cursor.rowcount == 1:
                logger.info(
                    "supplier_link_created",
                    catalog_item_id=catalog_item_id,
                    store_ingredient_id=store_ingredient_id,
                )
            return await self._fetch(conn, catalog_item_id, store_ingredient_id)  # type: ignore[return-value]

    async def _fetch(
        self, conn: aiosqlite.Connection, catalog_item_id: str, store_ingredient_id: str
    ) -> SupplierCatalogLink | None:
        cursor = await conn.execute(
            """
            SELECT * FROM ingredient_supplier_links
            WHERE catalog_item_id = ? AND store_ingredient_id = ?
            """,
            (catalog_item_id, store_ingredient_id),
        )
        row = await cursor.fetchone()
        return self._row_to_link(row) if row else None

    @staticmethod
    def _row_to_link(row: aiosqlite.Row) -> SupplierCatalogLink:
        return SupplierCatalogLink(
            catalog_item_id=row["catalog_item_id"],
            store_ingredient_id=row["store_ingredient_id"],
            preferred=bool(row["preferred"]),
            last_purchase_price=row["last_purchase_price"],
            last_purchased_at=from_db_time(row["last_purchased_at"]),
        )
