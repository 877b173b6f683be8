"""
tests.test_migrations
~~~~~~~~~~~~~~~~~~~~~

MigrationRunner against a mocked pool and a temporary versions directory.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from onair.shared.migrations.runner import VERSIONS_DIR, MigrationRunner


def test_initial_schema_ships_with_package() -> None:
    schema = (VERSIONS_DIR / "000_initial_schema.sql").read_text(encoding="utf-8")

    assert "UNIQUE (session_token, stream_type)" in schema
    for table in ("presence_sessions", "live_reactions", "live_comments", "song_requests"):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in schema


class TestMigrationRunner:
    @pytest.fixture()
    def versions(self, tmp_path):
        (tmp_path / "000_initial.sql").write_text("SELECT 1;", encoding="utf-8")
        (tmp_path / "001_more.sql").write_text("SELECT 2;", encoding="utf-8")
        return tmp_path

    @pytest.mark.asyncio
    async def test_pending_skips_applied(self, mock_pool, mock_conn, versions) -> None:
        mock_conn.fetch.return_value = [{"version": "000_initial"}]
        runner = MigrationRunner(mock_pool, migrations_dir=versions)

        pending = await runner.get_pending()

        assert [p.stem for p in pending] == ["001_more"]

    @pytest.mark.asyncio
    async def test_run_pending_applies_in_order(self, mock_pool, mock_conn, versions) -> None:
        mock_conn.fetch.return_value = []
        transaction = MagicMock()
        transaction.__aenter__ = AsyncMock(return_value=None)
        transaction.__aexit__ = AsyncMock(return_value=False)
        mock_conn.transaction = MagicMock(return_value=transaction)
        runner = MigrationRunner(mock_pool, migrations_dir=versions)

        applied = await runner.run_pending()

        assert applied == ["000_initial", "001_more"]
        executed = [call.args[0] for call in mock_conn.execute.call_args_list]
        assert "SELECT 1;" in executed
        assert executed.index("SELECT 1;") < executed.index("SELECT 2;")

    @pytest.mark.asyncio
    async def test_nothing_pending(self, mock_pool, mock_conn, versions) -> None:
        mock_conn.fetch.return_value = [{"version": "000_initial"}, {"version": "001_more"}]
        runner = MigrationRunner(mock_pool, migrations_dir=versions)

        assert await runner.run_pending() == []
