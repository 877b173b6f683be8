"""Run database migrations using onair.shared.migrations.runner.

Usage:
    python -m onair.scripts.db_migrate          # Run all pending migrations
    python -m onair.scripts.db_migrate --dry    # Show pending migrations without applying
"""

import asyncio
import logging
import sys

from pydantic import ValidationError as SettingsError

from onair.api.core.config import get_settings
from onair.shared.database import DatabaseManager, PoolConfig
from onair.shared.migrations.runner import MigrationRunner

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def main(argv: list[str]) -> int:
    try:
        settings = get_settings()
    except SettingsError as e:
        print(f"ERROR: invalid configuration. Check .env or environment variables.\n{e}")
        return 1

    if settings.storage_backend != "postgres" or not settings.database_url:
        print("ERROR: DATABASE_URL not set or STORAGE_BACKEND is not 'postgres'.")
        return 1

    db_manager = DatabaseManager(
        settings.database_url,
        PoolConfig.for_service("migrate", ssl=settings.database_ssl),
    )
    await db_manager.connect()

    try:
        runner = MigrationRunner(db_manager.pool)

        if "--dry" in argv:
            await runner.ensure_table()
            applied = await runner.get_applied()
            pending = await runner.get_pending()

            print(f"Applied: {len(applied)} | Pending: {len(pending)}")
            for path in pending:
                print(f"  -> {path.stem}")
            if not pending:
                print("Database is up to date.")
        else:
            newly_applied = await runner.run_pending()
            if not newly_applied:
                print("No pending migrations.")
            else:
                print(f"Applied {len(newly_applied)} migration(s).")
    finally:
        await db_manager.disconnect()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
