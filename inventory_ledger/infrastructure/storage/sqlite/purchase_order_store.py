"""SQLite implementation of purchase order storage."""

from datetime import datetime

import aiosqlite

from inventory_ledger.config import get_logger
from inventory_ledger.core.entities.inventory import BaseUom, utc_now
from inventory_ledger.core.entities.purchase_order import (
    LineItem,
    PurchaseOrder,
    PurchaseOrderStatus,
)
from inventory_ledger.core.exceptions import (
    InvalidStateError,
    PurchaseOrderNotFoundError,
)
from inventory_ledger.core.interfaces.purchase_order_store import IPurchaseOrderStore
from inventory_ledger.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
)
from inventory_ledger.infrastructure.storage.sqlite.inventory_store import (
    from_db_time,
    to_db_time,
)

logger = get_logger(__name__)

# Timestamp column stamped when an order enters a state
_STATUS_TIMESTAMP = {
    PurchaseOrderStatus.ISSUED: "issued_at",
    PurchaseOrderStatus.COMPLETE: "completed_at",
}


class SQLitePurchaseOrderStore(IPurchaseOrderStore):
    """SQLite implementation of purchase orders with typed line items."""

    async def create(self, order: PurchaseOrder) -> PurchaseOrder:
        """Insert order header and numbered line items."""
        now = utc_now()
        order.created_at = now
        order.updated_at = now
        order.items = [
            item.model_copy(update={"line_no": index})
            for index, item in enumerate(order.items, start=1)
        ]

        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO purchase_orders (
                    id, supplier_id, status, issued_at, completed_at,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order.id,
                    order.supplier_id,
                    order.status.value,
                    to_db_time(order.issued_at) if order.issued_at else None,
                    to_db_time(order.completed_at) if order.completed_at else None,
                    to_db_time(order.created_at),
                    to_db_time(order.updated_at),
                ),
            )
            await self._insert_items(conn, order.id, order.items)
            logger.info(
                "purchase_order_created",
                purchase_order_id=order.id,
                status=order.status.value,
                lines=len(order.items),
            )
            return order

    async def get(self, purchase_order_id: str) -> PurchaseOrder | None:
        """Get order with items."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM purchase_orders WHERE id = ?", (purchase_order_id,)
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            items = await self._fetch_items(conn, [purchase_order_id])
            return self._row_to_order(row, items.get(purchase_order_id, []))

    async def list_orders(
        self,
        status: PurchaseOrderStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[PurchaseOrder], int]:
        """List orders, newest issued first; unissued drafts last."""
        where = ""
        params: tuple = ()
        if status is not None:
            where = "WHERE status = ?"
            params = (status.value,)

        async with get_connection() as conn:
            cursor = await conn.execute(
                f"SELECT COUNT(*) FROM purchase_orders {where}", params
            )
            total = int((await cursor.fetchone())[0])

            cursor = await conn.execute(
                f"""
                SELECT * FROM purchase_orders {where}
                ORDER BY issued_at IS NULL, issued_at DESC, created_at DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            items = await self._fetch_items(conn, [row["id"] for row in rows])
            orders = [self._row_to_order(row, items.get(row["id"], [])) for row in rows]
            return orders, total

    async def transition(
        self,
        purchase_order_id: str,
        from_status: PurchaseOrderStatus,
        to_status: PurchaseOrderStatus,
        at: datetime | None = None,
    ) -> bool:
        """Conditional status change; only one concurrent caller wins."""
        at = at or utc_now()
        assignments = ["status = ?", "updated_at = ?"]
        params: list = [to_status.value, to_db_time(at)]
        column = _STATUS_TIMESTAMP.get(to_status)
        if column is not None:
            assignments.append(f"{column} = ?")
            params.append(to_db_time(at))

        async with get_transaction() as conn:
            cursor = await conn.execute(
                f"""
                UPDATE purchase_orders SET {", ".join(assignments)}
                WHERE id = ? AND status = ?
                """,
                (*params, purchase_order_id, from_status.value),
            )
            changed = cursor.rowcount == 1
            if changed:
                logger.info(
                    "purchase_order_transitioned",
                    purchase_order_id=purchase_order_id,
                    from_status=from_status.value,
                    to_status=to_status.value,
                )
            return changed

    async def replace_items(
        self, purchase_order_id: str, items: list[LineItem]
    ) -> PurchaseOrder:
        """Replace all line items and renumber them; draft orders only."""
        numbered = [
            item.model_copy(update={"line_no": index})
            for index, item in enumerate(items, start=1)
        ]
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "UPDATE purchase_orders SET updated_at = ? WHERE id = ? AND status = ?",
                (
                    to_db_time(utc_now()),
                    purchase_order_id,
                    PurchaseOrderStatus.DRAFT.value,
                ),
            )
            if cursor.rowcount != 1:
                cursor = await conn.execute(
                    "SELECT status FROM purchase_orders WHERE id = ?", (purchase_order_id,)
                )
                row = await cursor.fetchone()
                if row is None:
                    raise PurchaseOrderNotFoundError(purchase_order_id)
                raise InvalidStateError(purchase_order_id, row["status"], "modify items of")
            await conn.execute(
                "DELETE FROM purchase_order_items WHERE purchase_order_id = ?",
                (purchase_order_id,),
            )
            await self._insert_items(conn, purchase_order_id, numbered)
            order = await self.get(purchase_order_id)
            logger.info(
                "purchase_order_items_replaced",
                purchase_order_id=purchase_order_id,
                lines=len(numbered),
            )
            return order  # type: ignore[return-value]

    async def delete(self, purchase_order_id: str) -> bool:
        """Delete an order unless it is complete; items cascade."""
        async with get_transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM purchase_orders WHERE id = ? AND status != ?",
                (purchase_order_id, PurchaseOrderStatus.COMPLETE.value),
            )
            deleted = cursor.rowcount == 1
            if deleted:
                logger.info("purchase_order_deleted", purchase_order_id=purchase_order_id)
            return deleted

    @staticmethod
    async def _insert_items(
        conn: aiosqlite.Connection, purchase_order_id: str, items: list[LineItem]
    ) -> None:
        await conn.executemany(
            """
            INSERT INTO purchase_order_items (
                purchase_order_id, line_no, store_ingredient_id,
                catalog_item_id, qty, price, base_uom
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    purchase_order_id,
                    item.line_no,
                    item.store_ingredient_id,
                    item.catalog_item_id,
                    item.qty,
                    item.price,
                    item.base_uom.value,
                )
                for item in items
            ],
        )

    @staticmethod
    async def _fetch_items(
        conn: aiosqlite.Connection, order_ids: list[str]
    ) -> dict[str, list[LineItem]]:
        if not order_ids:
            return {}
        placeholders = ", ".join("?" for _ in order_ids)
        cursor = await conn.execute(
            f"""
            SELECT * FROM purchase_order_items
            WHERE purchase_order_id IN ({placeholders})
            ORDER BY purchase_order_id, line_no
            """,
            order_ids,
        )
        grouped: dict[str, list[LineItem]] = {}
        for row in await cursor.fetchall():
            grouped.setdefault(row["purchase_order_id"], []).append(
                LineItem(
                    line_no=row["line_no"],
                    store_ingredient_id=row["store_ingredient_id"],
                    catalog_item_id=row["catalog_item_id"],
                    qty=int(row["qty"]),
                    price=int(row["price"]),
                    base_uom=BaseUom(row["base_uom"]),
                )
            )
        return grouped

    @staticmethod
    def _row_to_order(row: aiosqlite.Row, items: list[LineItem]) -> PurchaseOrder:
        """Convert a database row plus its items to a PurchaseOrder."""
        return PurchaseOrder(
            id=row["id"],
            supplier_id=row["supplier_id"],
            status=PurchaseOrderStatus(row["status"]),
            items=items,
            issued_at=from_db_time(row["issued_at"]),
            completed_at=from_db_time(row["completed_at"]),
            created_at=from_db_time(row["created_at"]) or utc_now(),
            updated_at=from_db_time(row["updated_at"]) or utc_now(),
        )
