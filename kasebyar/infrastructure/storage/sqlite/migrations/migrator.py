"""
Versioned schema migrations for the POS database.

Migration files are named ``v<NNN>_<name>.sql`` and live beside this module.
Each one runs in its own transaction together with its ``schema_migrations``
row, so a failing script leaves the database at the previous version. A
file-level backup is taken first and restored if the run blows up.
"""

import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from kasebyar.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILE = re.compile(r"v(\d+)_(\w+)\.sql")
BACKUP_DIR_NAME = "backups"

REQUIRED_TABLES = [
    "products",
    "product_batches",
    "parties",
    "ledger_transactions",
    "sale_invoices",
    "purchase_invoices",
    "in_transit_invoices",
    "activity_log",
    "services",
    "expenses",
    "schema_migrations",
]

LEDGER_TRIGGERS = ("ledger_transactions_no_update", "ledger_transactions_no_delete")

SCHEMA_MIGRATIONS_DDL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now')),
    execution_time_ms INTEGER
)
"""


@dataclass
class MigrationInfo:
    """One ``v<NNN>_<name>.sql`` file."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=digest[:16])

    def read(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path | None = None) -> list[MigrationInfo]:
    """Migration files in version order; badly named files are skipped with a warning."""
    found = []
    for path in (directory or MIGRATIONS_DIR).glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return sorted(found, key=lambda m: int(m.version))


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to the checksum recorded when they ran."""
    try:
        cursor = await conn.execute("SELECT version, checksum FROM schema_migrations ORDER BY version")
    except aiosqlite.OperationalError:
        return {}
    return {version: checksum for version, checksum in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied, key=int) if applied else None


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one script and record it, all inside a single transaction."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()

    def elapsed() -> int:
        return int((time.perf_counter() - started) * 1000)

    try:
        # executescript commits anything pending, then leaves our BEGIN open
        await conn.executescript(f"BEGIN;\n{migration.read()}\n")
        await conn.execute(
            "INSERT INTO schema_migrations (version, name, checksum, execution_time_ms) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, elapsed()),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, name=migration.name, error=str(e))
        return MigrationResult(migration.version, migration.name, False, elapsed(), str(e))

    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed())
    return MigrationResult(migration.version, migration.name, True, elapsed())


def create_backup(db_path: Path, backup_dir: Path | None = None) -> Path:
    """Copy the database file into ``backup_dir`` (``<db dir>/backups`` by default)."""
    backup_dir = backup_dir or db_path.parent / BACKUP_DIR_NAME
    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = backup_dir / f"{db_path.stem}.backup_{stamp}{db_path.suffix}"
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored_from_backup", backup_path=str(backup_path))


async def _pending(conn: aiosqlite.Connection, migrations: list[MigrationInfo]) -> list[MigrationInfo]:
    """Migrations still to run; stops at the first applied file whose contents changed."""
    applied = await get_applied_migrations(conn)
    pending = []
    for migration in migrations:
        recorded = applied.get(migration.version)
        if recorded is None:
            pending.append(migration)
        elif recorded != migration.checksum:
            logger.error("migration_checksum_changed", version=migration.version, name=migration.name)
            break
    return pending


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the latest schema.

    Returns one result per migration attempted; an up-to-date database
    yields an empty list. Stops at the first failure. The pre-run backup
    is deleted when every attempted migration succeeded.
    """
    backup_dir = None
    if db_path is None:
        storage = get_settings().storage
        db_path, backup_dir = storage.db_path, storage.backup_dir
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = None
    if create_backup_before and db_path.exists():
        backup_path = create_backup(db_path, backup_dir)

    results: list[MigrationResult] = []
    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            await conn.execute(SCHEMA_MIGRATIONS_DDL)
            await conn.commit()

            for migration in await _pending(conn, discover_migrations()):
                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    break
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path is not None:
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()
    return results


run_migrations = initialize_database


async def get_migration_status(db_path: Path | None = None) -> dict:
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
        applied = await get_applied_migrations(conn)
        current = await get_current_version(conn)

    return {
        "exists": True,
        "current_version": current,
        "applied_migrations": sorted(applied, key=int),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


def _check(name: str, passed: bool, **details) -> dict:
    return {"check": name, "status": "PASS" if passed else "FAIL", **details}


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict]:
    """
    SQLite-level and POS-level sanity checks.

    Besides ``integrity_check`` and foreign keys this confirms every table
    exists, the ledger's append-only triggers are installed and no batch
    holds negative stock.
    """
    db_path = db_path or get_settings().storage.db_path
    checks = []

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA integrity_check")
        (integrity,) = await cursor.fetchone()
        checks.append(_check("integrity", integrity == "ok", result=integrity))

        cursor = await conn.execute("PRAGMA foreign_key_check")
        fk_violations = await cursor.fetchall()
        checks.append(_check("foreign_keys", not fk_violations, violations=len(fk_violations)))

        cursor = await conn.execute("SELECT type, name FROM sqlite_master WHERE type IN ('table', 'trigger')")
        objects = await cursor.fetchall()
        tables = {name for kind, name in objects if kind == "table"}
        triggers = {name for kind, name in objects if kind == "trigger"}

        missing = [t for t in REQUIRED_TABLES if t not in tables]
        checks.append(_check("required_tables", not missing, missing=missing))

        missing_triggers = [t for t in LEDGER_TRIGGERS if t not in triggers]
        checks.append(_check("ledger_append_only", not missing_triggers, missing=missing_triggers))

        if "product_batches" in tables:
            cursor = await conn.execute("SELECT id FROM product_batches WHERE stock < 0")
            negative = [row[0] for row in await cursor.fetchall()]
            checks.append(_check("non_negative_stock", not negative, batch_ids=negative))

    return checks
