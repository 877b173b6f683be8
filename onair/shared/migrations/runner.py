"""Lightweight migration runner with tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"


class MigrationRunner:
    """Execute and track database migrations.

    Migrations are plain SQL files stored in ``versions/`` named
    ``NNN_description.sql``. Applied versions are recorded in the
    ``schema_migrations`` table so they are never re-applied.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, migrations_dir: Path | None = None) -> None:
        self.pool = pool
        self.migrations_dir = migrations_dir or VERSIONS_DIR

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ensure_table(self) -> None:
        """Create the tracking table if it does not exist."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                    version    TEXT PRIMARY KEY,
                    name       TEXT NOT NULL,
                    applied_at TIMESTAMPTZ DEFAULT NOW()
                )
                """
            )

    async def get_applied(self) -> set[str]:
        """Return the set of already-applied migration versions."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT version FROM {self.TRACKING_TABLE}"  # noqa: S608
            )
            return {row["version"] for row in rows}

    async def get_pending(self) -> list[Path]:
        """Return migration files not yet applied, in filename order."""
        await self.ensure_table()
        applied = await self.get_applied()
        return [p for p in sorted(self.migrations_dir.glob("*.sql")) if p.stem not in applied]

    async def run_pending(self) -> list[str]:
        """Apply all pending migrations in order. Returns the applied versions."""
        pending = await self.get_pending()
        if not pending:
            logger.info("Database is up to date, no pending migrations")
            return []

        newly_applied: list[str] = []
        for sql_path in pending:
            await self._apply_one(sql_path.stem, sql_path.name, sql_path.read_text(encoding="utf-8"))
            newly_applied.append(sql_path.stem)

        logger.info(
            "Applied %d migration(s): %s",
            len(newly_applied),
            ", ".join(newly_applied),
        )
        return newly_applied

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _apply_one(self, version: str, name: str, sql: str) -> None:
        """Execute a single migration inside a transaction."""
        logger.info("Applying migration: %s", version)
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    f"INSERT INTO {self.TRACKING_TABLE} (version, name) VALUES ($1, $2)",
                    version,
                    name,
                )
        logger.info("Migration %s applied successfully", version)
