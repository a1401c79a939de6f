#!/usr/bin/env python3
"""
Kasebyar management CLI.

Usage:
    python manage.py migrate         Apply pending schema migrations
    python manage.py status          Show applied and pending migrations
    python manage.py verify          Run schema integrity checks
    python manage.py check-balances  Replay the ledger against stored balances
    python manage.py serve           Start the API server
"""

import argparse
import asyncio
import sys
from pathlib import Path

from kasebyar.config import configure_logging

ROOT_DIR = Path(__file__).resolve().parent


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply pending migrations."""
    from kasebyar.infrastructure.storage.sqlite.migrations.migrator import initialize_database

    results = asyncio.run(
        initialize_database(args.db_path, create_backup_before=not args.no_backup)
    )
    if not results:
        print("Database is up to date.")
    for result in results:
        state = "SUCCESS" if result.success else "FAILED"
        print(f"[{state}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
        if result.error:
            print(f"         Error: {result.error}")
    if any(not r.success for r in results):
        sys.exit(1)


def cmd_status(args: argparse.Namespace) -> None:
    """Show migration status."""
    from kasebyar.infrastructure.storage.sqlite.migrations.migrator import get_migration_status

    status = asyncio.run(get_migration_status(args.db_path))
    print(f"Database exists:    {status['exists']}")
    print(f"Current version:    {status.get('current_version') or 'N/A'}")
    print(f"Applied migrations: {', '.join(status.get('applied_migrations', [])) or '-'}")
    print(f"Pending migrations: {', '.join(status.get('pending_migrations', [])) or '-'}")


def cmd_verify(args: argparse.Namespace) -> None:
    """Run integrity checks; exits non-zero if any fail."""
    from kasebyar.infrastructure.storage.sqlite.migrations.migrator import verify_schema_integrity

    checks = asyncio.run(verify_schema_integrity(args.db_path))
    for check in checks:
        print(f"[{check['status']}] {check['check']}")
        if check["status"] != "PASS":
            for key, value in check.items():
                if key not in ("check", "status"):
                    print(f"       {key}: {value}")
    if any(c["status"] != "PASS" for c in checks):
        sys.exit(1)


def cmd_check_balances(args: argparse.Namespace) -> None:
    """Compare every party's stored balances with its transaction ledger."""
    from kasebyar.application.services import get_point_of_sale
    from kasebyar.infrastructure.storage.sqlite import close_pool

    async def run():
        pos = get_point_of_sale()
        try:
            await pos.refresh()
            return pos.verify_balances()
        finally:
            await close_pool()

    report = asyncio.run(run())
    if report.consistent:
        print("All party balances match the ledger.")
        return
    print(f"{len(report.mismatched_party_ids)} party balance(s) disagree with the ledger:")
    for party_id in report.mismatched_party_ids:
        print(f"  {party_id}")
    sys.exit(1)


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the API server in the foreground."""
    import uvicorn

    from kasebyar.config import get_settings

    settings = get_settings()
    host = args.host or settings.api.host
    port = args.port or settings.api.port

    print(f"Starting server on {host}:{port}...")
    # Single worker: the write lock and in-flight guard live in process memory
    uvicorn.run(
        "kasebyar.api.main:app",
        host=host,
        port=port,
        reload=args.reload,
        app_dir=str(ROOT_DIR),
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Kasebyar management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # migrate
    p_migrate = sub.add_parser("migrate", help="Apply pending schema migrations")
    p_migrate.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip backup before migrating")
    p_migrate.set_defaults(func=cmd_migrate)

    # status
    p_status = sub.add_parser("status", help="Show migration status")
    p_status.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    p_status.set_defaults(func=cmd_status)

    # verify
    p_verify = sub.add_parser("verify", help="Run schema integrity checks")
    p_verify.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    p_verify.set_defaults(func=cmd_verify)

    # check-balances
    p_balances = sub.add_parser("check-balances", help="Replay the ledger against stored balances")
    p_balances.set_defaults(func=cmd_check_balances)

    # serve
    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--host", help="Bind host (default from settings)")
    p_serve.add_argument("--port", type=int, help="Bind port (default from settings)")
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    configure_logging()
    args.func(args)


if __name__ == "__main__":
    main()
