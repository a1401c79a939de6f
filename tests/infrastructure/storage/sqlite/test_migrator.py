"""Unit tests for database migrator."""

from pathlib import Path

import aiosqlite
import pytest

from kasebyar.infrastructure.storage.sqlite.migrations.migrator import (
    REQUIRED_TABLES,
    SCHEMA_MIGRATIONS_DDL,
    MigrationInfo,
    apply_migration,
    create_backup,
    discover_migrations,
    get_applied_migrations,
    get_current_version,
    get_migration_status,
    initialize_database,
    restore_backup,
    verify_schema_integrity,
)


class TestMigrationInfo:
    """Tests for MigrationInfo dataclass."""

    def test_from_file_parses_filename(self, tmp_path: Path):
        migration_file = tmp_path / "v001_initial_schema.sql"
        migration_file.write_text("-- Test migration\nSELECT 1;")

        info = MigrationInfo.from_file(migration_file)

        assert info.version == "001"
        assert info.name == "initial_schema"
        assert len(info.checksum) == 16

    def test_different_content_different_checksum(self, tmp_path: Path):
        file1 = tmp_path / "v001_a.sql"
        file1.write_text("SELECT 1;")
        file2 = tmp_path / "v002_b.sql"
        file2.write_text("SELECT 2;")

        assert MigrationInfo.from_file(file1).checksum != MigrationInfo.from_file(file2).checksum

    def test_invalid_filename_raises(self, tmp_path: Path):
        bad = tmp_path / "initial.sql"
        bad.write_text("SELECT 1;")
        with pytest.raises(ValueError):
            MigrationInfo.from_file(bad)


class TestDiscoverMigrations:
    def test_bundled_migrations_in_order(self):
        versions = [m.version for m in discover_migrations()]
        assert versions == sorted(versions)
        assert versions[:3] == ["001", "002", "003"]

    def test_skips_invalid_filenames(self, tmp_path: Path):
        (tmp_path / "v001_ok.sql").write_text("SELECT 1;")
        (tmp_path / "vX_bad.sql").write_text("SELECT 1;")
        assert [m.name for m in discover_migrations(tmp_path)] == ["ok"]


class TestVersionQueries:
    async def test_empty_database(self, temp_db_path: Path):
        async with aiosqlite.connect(temp_db_path) as conn:
            assert await get_applied_migrations(conn) == {}
            assert await get_current_version(conn) is None

    async def test_migrated_database(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            applied = await get_applied_migrations(conn)
            assert {"001", "002", "003"} <= set(applied)
            assert await get_current_version(conn) == max(applied)


class TestApplyMigration:
    async def test_records_version_and_checksum(self, temp_db_path: Path, tmp_path: Path):
        script = tmp_path / "v007_widgets.sql"
        script.write_text("CREATE TABLE widgets (id TEXT PRIMARY KEY);")
        migration = MigrationInfo.from_file(script)

        async with aiosqlite.connect(temp_db_path) as conn:
            await conn.execute(SCHEMA_MIGRATIONS_DDL)
            await conn.commit()
            result = await apply_migration(conn, migration)

            assert result.success is True
            assert await get_applied_migrations(conn) == {"007": migration.checksum}

    async def test_failed_script_leaves_no_trace(self, temp_db_path: Path, tmp_path: Path):
        """A script that breaks halfway is rolled back along with its partial DDL."""
        script = tmp_path / "v009_broken.sql"
        script.write_text("CREATE TABLE widgets (id TEXT);\nINSERT INTO nowhere VALUES (1);")

        async with aiosqlite.connect(temp_db_path) as conn:
            await conn.execute(SCHEMA_MIGRATIONS_DDL)
            await conn.commit()
            result = await apply_migration(conn, MigrationInfo.from_file(script))

            assert result.success is False
            assert "nowhere" in result.error
            cursor = await conn.execute("SELECT name FROM sqlite_master WHERE name = 'widgets'")
            assert await cursor.fetchone() is None
            assert await get_applied_migrations(conn) == {}


class TestBackups:
    def test_backup_and_restore(self, tmp_path: Path):
        db_path = tmp_path / "pos.db"
        db_path.write_bytes(b"original")

        backup = create_backup(db_path)
        assert backup.exists()
        assert "backup_" in backup.name
        assert backup.parent == tmp_path / "backups"

        db_path.write_bytes(b"changed")
        restore_backup(db_path, backup)
        assert db_path.read_bytes() == b"original"


class TestInitializeDatabase:
    async def test_creates_schema(self, tmp_path: Path):
        db_path = tmp_path / "nested" / "pos.db"
        results = await initialize_database(db_path, create_backup_before=False)

        assert db_path.exists()
        assert [r.version for r in results] == [m.version for m in discover_migrations()]
        assert all(r.success for r in results)

    async def test_second_run_is_noop(self, migrated_db: Path):
        assert await initialize_database(migrated_db, create_backup_before=False) == []

    async def test_backup_removed_after_success(self, migrated_db: Path):
        await initialize_database(migrated_db, create_backup_before=True)
        assert list((migrated_db.parent / "backups").glob("*.backup_*")) == []

    async def test_ledger_rows_are_immutable(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute(
                "INSERT INTO parties (id, name, party_type) VALUES ('c1', 'Ahmad', 'customer')"
            )
            await conn.execute(
                """
                INSERT INTO ledger_transactions (
                    id, party_id, party_type, type, direction, amount, currency,
                    exchange_rate, base_amount, date
                ) VALUES ('t1', 'c1', 'customer', 'credit_sale', 1, 10, 'AFN', 1, 10, '2024-01-01')
                """
            )
            await conn.commit()
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute("DELETE FROM ledger_transactions WHERE id = 't1'")

    async def test_negative_stock_rejected(self, migrated_db: Path):
        async with aiosqlite.connect(migrated_db) as conn:
            await conn.execute("INSERT INTO products (id, name) VALUES ('rice', 'Rice')")
            with pytest.raises(aiosqlite.IntegrityError):
                await conn.execute(
                    """
                    INSERT INTO product_batches (id, product_id, lot_number, stock, purchase_date)
                    VALUES ('b1', 'rice', 'LOT-1', -1, '2024-01-01')
                    """
                )


class TestStatusAndIntegrity:
    async def test_status_without_database(self, tmp_path: Path):
        status = await get_migration_status(tmp_path / "missing.db")
        assert status["exists"] is False
        assert "001" in status["pending_migrations"]

    async def test_status_after_migration(self, migrated_db: Path):
        status = await get_migration_status(migrated_db)
        assert status["exists"] is True
        assert status["pending_migrations"] == []

    async def test_integrity_passes(self, migrated_db: Path):
        checks = {c["check"]: c for c in await verify_schema_integrity(migrated_db)}
        assert set(checks) == {
            "foreign_keys",
            "integrity",
            "required_tables",
            "ledger_append_only",
            "non_negative_stock",
        }
        assert all(c["status"] == "PASS" for c in checks.values())

    async def test_missing_tables_reported(self, temp_db_path: Path):
        async with aiosqlite.connect(temp_db_path) as conn:
            await conn.execute("CREATE TABLE products (id TEXT)")
            await conn.commit()
        checks = {c["check"]: c for c in await verify_schema_integrity(temp_db_path)}
        assert checks["required_tables"]["status"] == "FAIL"
        assert checks["ledger_append_only"]["status"] == "FAIL"
        assert len(checks["required_tables"]["missing"]) == len(REQUIRED_TABLES) - 1
