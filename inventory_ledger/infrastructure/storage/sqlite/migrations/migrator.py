"""
Versioned schema migrations for the ledger database.

Migrations are ``vNNN_name.sql`` files in this package. Each one runs in a
single transaction together with its row in ``schema_migrations``, so a
failing script leaves no half-applied schema behind. The database file is
copied aside first and restored if the run crashes.
"""

import asyncio
import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from inventory_ledger.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILE = re.compile(r"^v(\d+)_(\w+)\.sql$")

REQUIRED_TABLES = [
    "schema_migrations",
    "ingredient_accounts",
    "stock_ledger",
    "purchase_orders",
    "purchase_order_items",
    "ingredient_supplier_links",
]


@dataclass
class MigrationInfo:
    """A migration file on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE.match(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        checksum = hashlib.sha256(path.read_bytes()).hexdigest()[:16]
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=checksum)

    def script(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files in version order; badly named files are skipped."""
    found = []
    for path in sorted(directory.glob("v*.sql")):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return found


async def _applied_checksums(conn: aiosqlite.Connection) -> dict[str, str]:
    try:
        cursor = await conn.execute(
            "SELECT version, checksum FROM schema_migrations ORDER BY version"
        )
    except aiosqlite.OperationalError:
        # Fresh database, table not created yet
        return {}
    return {row[0]: row[1] for row in await cursor.fetchall()}


async def _apply(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()

    def elapsed_ms() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        # Left open so the bookkeeping row commits with the script
        await conn.executescript(f"BEGIN;\n{migration.script()}\n")
        await conn.execute(
            """
            INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, elapsed_ms()),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(migration.version, migration.name, False, elapsed_ms(), str(e))

    logger.info(
        "migration_applied",
        version=migration.version,
        name=migration.name,
        execution_time_ms=elapsed_ms(),
    )
    return MigrationResult(migration.version, migration.name, True, elapsed_ms())


def create_backup(db_path: Path) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored_from_backup", backup_path=str(backup_path))


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool | None = None,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> list[MigrationResult]:
    """
    Apply pending migrations in order, stopping at the first failure.

    Args:
        db_path: database file (default from storage settings)
        create_backup_before: copy an existing file aside first
            (default from storage settings)
        migrations_dir: where to look for ``vNNN_*.sql`` files

    Returns:
        Results for the migrations that were attempted; empty when up to date
    """
    storage = get_settings().storage
    db_path = db_path or storage.db_path
    if create_backup_before is None:
        create_backup_before = storage.backup_before_migrate

    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = create_backup(db_path) if create_backup_before and db_path.exists() else None
    results: list[MigrationResult] = []

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")

            applied = await _applied_checksums(conn)
            for migration in discover_migrations(migrations_dir):
                if migration.version in applied:
                    if applied[migration.version] != migration.checksum:
                        # Applied files are never re-run, even if edited
                        logger.warning("migration_checksum_changed", version=migration.version)
                    continue

                result = await _apply(conn, migration)
                results.append(result)
                if not result.success:
                    break

                cursor = await conn.execute("PRAGMA foreign_key_check")
                if await cursor.fetchall():
                    logger.error("foreign_key_violations_after_migration", version=migration.version)
                    break
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path and all(r.success for r in results):
        backup_path.unlink()

    return results


# Name used by the application lifespan
run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict[str, Any]:
    """Applied and pending versions of a database file."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
            "total_migrations": len(discovered),
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await _applied_checksums(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": sorted(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict[str, Any]]:
    """
    Structural and ledger consistency checks.

    ``ledger_balance`` fails for any account whose current_stock differs
    from the sum of its ledger entries.
    """
    db_path = db_path or get_settings().storage.db_path
    checks: list[dict[str, Any]] = []

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA foreign_key_check")
        violations = await cursor.fetchall()
        checks.append({
            "check": "foreign_keys",
            "status": "FAIL" if violations else "PASS",
            "violations": len(violations),
        })

        cursor = await conn.execute("PRAGMA integrity_check")
        (integrity,) = await cursor.fetchone()
        checks.append({
            "check": "integrity",
            "status": "PASS" if integrity == "ok" else "FAIL",
            "result": integrity,
        })

        cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {row[0] for row in await cursor.fetchall()}
        missing = [name for name in REQUIRED_TABLES if name not in tables]
        checks.append({
            "check": "required_tables",
            "status": "FAIL" if missing else "PASS",
            "missing": missing,
        })

        drifted: list[str] = []
        if not missing:
            cursor = await conn.execute(
                """
                SELECT a.ingredient_id
                FROM ingredient_accounts a
                LEFT JOIN stock_ledger l ON l.ingredient_id = a.ingredient_id
                GROUP BY a.ingredient_id
                HAVING a.current_stock <> COALESCE(SUM(l.delta_qty), 0)
                """
            )
            drifted = [row[0] for row in await cursor.fetchall()]
        checks.append({
            "check": "ledger_balance",
            "status": "FAIL" if drifted or missing else "PASS",
            "drifted": drifted,
        })

    return checks


def print_results(results: list[MigrationResult]) -> None:
    if not results:
        print("Database is up to date.")
    for result in results:
        state = "SUCCESS" if result.success else "FAILED"
        print(f"[{state}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
        if result.error:
            print(f"         Error: {result.error}")


def print_checks(checks: list[dict[str, Any]]) -> bool:
    ok = True
    for check in checks:
        print(f"[{check['status']}] {check['check']}")
        if check["status"] != "PASS":
            ok = False
            for key, value in check.items():
                if key not in ("check", "status"):
                    print(f"       {key}: {value}")
    return ok


def main() -> None:
    """Entry point of ``inventory-ledger-migrate``."""
    import argparse

    parser = argparse.ArgumentParser(description="Inventory ledger database migrator")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument("--verify", action="store_true", help="Verify schema integrity")
    parser.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    args = parser.parse_args()

    if args.status:
        status = asyncio.run(get_migration_status(args.db_path))
        print(f"Database exists: {status['exists']}")
        print(f"Current version: {status['current_version'] or 'N/A'}")
        print(f"Applied migrations: {status['applied_migrations']}")
        print(f"Pending migrations: {status['pending_migrations']}")
    elif args.verify:
        if not print_checks(asyncio.run(verify_schema_integrity(args.db_path))):
            raise SystemExit(1)
    else:
        results = asyncio.run(
            initialize_database(args.db_path, create_backup_before=False if args.no_backup else None)
        )
        print_results(results)
        if not all(r.success for r in results):
            raise SystemExit(1)


if __name__ == "__main__":
    main()
