"""SQLite implementation of the stock ledger and ingredient accounts."""

from datetime import UTC, datetime

import aiosqlite

from inventory_ledger.config import get_logger
from inventory_ledger.core.entities.inventory import (
    BaseUom,
    IngredientAccount,
    LedgerEntry,
    LedgerEntryDraft,
    LedgerReason,
    utc_now,
)
from inventory_ledger.core.exceptions import (
    ConcurrentUpdateError,
    DuplicateLedgerEntryError,
    InvariantViolation,
    UnknownIngredientError,
    ValidationError,
)
from inventory_ledger.core.interfaces.inventory_store import IAccountStore, ILedgerStore
from inventory_ledger.core.services.valuation import Movement, StockPosition, ValuationEngine
from inventory_ledger.infrastructure.storage.sqlite.connection import (
    get_connection,
    get_transaction,
)

logger = get_logger(__name__)


def to_db_time(value: datetime) -> str:
    """Serialize as fixed-width UTC ISO text so string order is time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class SQLiteLedgerStore(ILedgerStore):
    """Append-only stock ledger. Rows are never updated or deleted."""

    async def append(self, entry: LedgerEntryDraft) -> LedgerEntry:
        """
        Validate and append a movement.

        Raises:
            ValidationError: zero delta or a sign the reason forbids
            UnknownIngredientError: no account for the ingredient
            DuplicateLedgerEntryError: the document line is already recorded
        """
        self._validate(entry)
        occurred_at = entry.occurred_at or utc_now()

        async with get_transaction() as conn:
            cursor = await conn.execute(
                "SELECT 1 FROM ingredient_accounts WHERE ingredient_id = ?",
                (entry.ingredient_id,),
            )
            if await cursor.fetchone() is None:
                raise UnknownIngredientError(entry.ingredient_id)

            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO stock_ledger (
                        ingredient_id, delta_qty, uom, reason,
                        ref_type, ref_id, ref_line, occurred_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.ingredient_id,
                        entry.delta_qty,
                        entry.uom.value,
                        entry.reason.value,
                        entry.ref_type,
                        entry.ref_id,
                        entry.ref_line,
                        to_db_time(occurred_at),
                    ),
                )
            except aiosqlite.IntegrityError as e:
                # uq_ledger_ref_line: one entry per document line
                if "UNIQUE" not in str(e):
                    raise
                raise DuplicateLedgerEntryError(
                    entry.ref_type, entry.ref_id, entry.ref_line
                ) from e
            stored = LedgerEntry(
                **entry.model_dump(exclude={"occurred_at"}),
                id=cursor.lastrowid,
                occurred_at=occurred_at,
            )
            logger.info(
                "ledger_entry_appended",
                entry_id=stored.id,
                ingredient_id=stored.ingredient_id,
                delta_qty=stored.delta_qty,
                reason=stored.reason.value,
                ref_id=stored.ref_id,
            )
            return stored

    async def list_by_ref(self, ref_type: str, ref_id: str) -> list[LedgerEntry]:
        """Entries for a source document in insertion order."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM stock_ledger
                WHERE ref_type = ? AND ref_id = ?
                ORDER BY id
                """,
                (ref_type, ref_id),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    async def list_by_ingredient(
        self, ingredient_id: str, limit: int = 100, offset: int = 0
    ) -> list[LedgerEntry]:
        """Entries for an ingredient, newest first."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM stock_ledger
                WHERE ingredient_id = ?
                ORDER BY occurred_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (ingredient_id, limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    async def stock_at(self, ingredient_id: str, at: datetime | None = None) -> int:
        """Reconstruct stock from the ledger as of ``at`` (default: now)."""
        async with get_connection() as conn:
            if at is None:
                cursor = await conn.execute(
                    "SELECT COALESCE(SUM(delta_qty), 0) FROM stock_ledger WHERE ingredient_id = ?",
                    (ingredient_id,),
                )
            else:
                cursor = await conn.execute(
                    """
                    SELECT COALESCE(SUM(delta_qty), 0) FROM stock_ledger
                    WHERE ingredient_id = ? AND occurred_at <= ?
                    """,
                    (ingredient_id, to_db_time(at)),
                )
            row = await cursor.fetchone()
            return int(row[0])

    @staticmethod
    def _validate(entry: LedgerEntryDraft) -> None:
        if entry.delta_qty == 0:
            raise ValidationError("delta_qty", "must not be zero", entry.delta_qty)
        sign = entry.reason.sign
        if sign > 0 and entry.delta_qty < 0:
            raise ValidationError(
                "delta_qty",
                f"must be positive for reason '{entry.reason.value}'",
                entry.delta_qty,
            )
        if sign < 0 and entry.delta_qty > 0:
            raise ValidationError(
                "delta_qty",
                f"must be negative for reason '{entry.reason.value}'",
                entry.delta_qty,
            )

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> LedgerEntry:
        """Convert a database row to a LedgerEntry."""
        return LedgerEntry(
            id=row["id"],
            ingredient_id=row["ingredient_id"],
            delta_qty=int(row["delta_qty"]),
            uom=BaseUom(row["uom"]),
            reason=LedgerReason(row["reason"]),
            ref_type=row["ref_type"],
            ref_id=row["ref_id"],
            ref_line=row["ref_line"],
            occurred_at=from_db_time(row["occurred_at"]) or utc_now(),
        )


class SQLiteAccountStore(IAccountStore):
    """SQLite projection of stock and weighted-average cost per ingredient."""

    def __init__(self, engine: ValuationEngine | None = None):
        self._engine = engine or ValuationEngine()

    async def get(self, ingredient_id: str) -> IngredientAccount | None:
        """Get account by ingredient ID."""
        async with get_connection() as conn:
            return await self._fetch(conn, ingredient_id)

    async def ensure(
        self,
        ingredient_id: str,
        base_uom: BaseUom = BaseUom.PCS,
        name: str | None = None,
        min_stock: int = 0,
    ) -> tuple[IngredientAccount, bool]:
        """Get the account, creating a zero-stock one on first use."""
        now = to_db_time(utc_now())
        async with get_transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT OR IGNORE INTO ingredient_accounts (
                    ingredient_id, name, base_uom, min_stock,
                    current_stock, avg_cost, version, created_at, updated_at
                ) VALUES (?, ?, ?, ?, 0, 0, 0, ?, ?)
                """,
                (ingredient_id, name, base_uom.value, min_stock, now, now),
            )
            created = cursor.rowcount == 1
            account = await self._fetch(conn, ingredient_id)
            if created:
                logger.info(
                    "ingredient_account_created",
                    ingredient_id=ingredient_id,
                    base_uom=base_uom.value,
                )
            return account, created  # type: ignore[return-value]

    async def apply_movement(
        self,
        ingredient_id: str,
        delta_qty: int,
        unit_cost: int,
        expected_version: int | None = None,
    ) -> IngredientAccount:
        """
        Value the movement and persist the next stock / average cost.

        The write is conditional on the account version: ``expected_version``
        when the caller valued its request against an earlier read, else the
        version read here. A row that moved on raises ConcurrentUpdateError
        and nothing is written.
        """
        async with get_transaction() as conn:
            account = await self._fetch(conn, ingredient_id)
            if account is None:
                raise UnknownIngredientError(ingredient_id)
            version = account.version if expected_version is None else expected_version

            valuation = self._engine.compute_next(
                StockPosition(account.current_stock, account.avg_cost),
                Movement(delta_qty, unit_cost),
            )
            if not valuation.ok:
                logger.warning(
                    "negative_stock_rejected",
                    ingredient_id=ingredient_id,
                    current_stock=account.current_stock,
                    delta_qty=delta_qty,
                )
                raise InvariantViolation(ingredient_id, account.current_stock, delta_qty)

            position = valuation.position
            now = utc_now()
            cursor = await conn.execute(
                """
                UPDATE ingredient_accounts SET
                    current_stock = ?,
                    avg_cost = ?,
                    version = version + 1,
                    updated_at = ?
                WHERE ingredient_id = ? AND version = ?
                """,
                (
                    position.stock,
                    position.avg_cost,
                    to_db_time(now),
                    ingredient_id,
                    version,
                ),
            )
            if cursor.rowcount != 1:
                logger.warning(
                    "ingredient_account_version_conflict",
                    ingredient_id=ingredient_id,
                    expected_version=version,
                    current_version=account.version,
                )
                raise ConcurrentUpdateError(ingredient_id, version)

            updated = account.model_copy(
                update={
                    "current_stock": position.stock,
                    "avg_cost": position.avg_cost,
                    "version": account.version + 1,
                    "updated_at": now,
                }
            )
            logger.info(
                "ingredient_account_updated",
                ingredient_id=ingredient_id,
                stock=updated.current_stock,
                avg_cost=updated.avg_cost,
            )
            return updated

    async def list_accounts(
        self, limit: int = 100, offset: int = 0
    ) -> list[IngredientAccount]:
        """List accounts with pagination."""
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM ingredient_accounts
                ORDER BY ingredient_id
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            )
            rows = await cursor.fetchall()
            return [self._row_to_account(row) for row in rows]

    async def list_low_stock(
        self, threshold: int | None = None, limit: int = 100, offset: int = 0
    ) -> list[IngredientAccount]:
        """Accounts whose stock is at or below a threshold or their own minimum."""
        async with get_connection() as conn:
            if threshold is None:
                cursor = await conn.execute(
                    """
                    SELECT * FROM ingredient_accounts
                    WHERE current_stock <= min_stock
                    ORDER BY current_stock, ingredient_id
                    LIMIT ? OFFSET ?
                    """,
                    (limit, offset),
                )
            else:
                cursor = await conn.execute(
                    """
                    SELECT * FROM ingredient_accounts
                    WHERE current_stock <= ?
                    ORDER BY current_stock, ingredient_id
                    LIMIT ? OFFSET ?
                    """,
                    (threshold, limit, offset),
                )
            rows = await cursor.fetchall()
            return [self._row_to_account(row) for row in rows]

    async def valuation_totals(self) -> tuple[int, int, int]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT COUNT(*),
                       COALESCE(SUM(current_stock), 0),
                       COALESCE(SUM(current_stock * avg_cost), 0)
                FROM ingredient_accounts
                """
            )
            row = await cursor.fetchone()
            return int(row[0]), int(row[1]), int(row[2])

    async def _fetch(
        self, conn: aiosqlite.Connection, ingredient_id: str
    ) -> IngredientAccount | None:
        cursor = await conn.execute(
            "SELECT * FROM ingredient_accounts WHERE ingredient_id = ?",
            (ingredient_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    @staticmethod
    def _row_to_account(row: aiosqlite.Row) -> IngredientAccount:
        """Convert a database row to an IngredientAccount."""
        return IngredientAccount(
            ingredient_id=row["ingredient_id"],
            name=row["name"],
            base_uom=BaseUom(row["base_uom"]),
            min_stock=int(row["min_stock"]),
            current_stock=int(row["current_stock"]),
            avg_cost=int(row["avg_cost"]),
            version=int(row["version"]),
            created_at=from_db_time(row["created_at"]) or utc_now(),
            updated_at=from_db_time(row["updated_at"]) or utc_now(),
        )
