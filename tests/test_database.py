"""
tests.test_database
~~~~~~~~~~~~~~~~~~~

Pool configuration, bounded store calls and the not-yet-connected state.
"""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

from onair.shared.database import DatabaseManager, PoolConfig, run_bounded
from onair.shared.errors import StoreUnavailable
from onair.shared.storage import PostgresStorage


class TestPoolConfig:
    def test_api_preset(self) -> None:
        config = PoolConfig.for_service("api")
        assert (config.min_size, config.max_size) == (1, 10)

    def test_overrides_and_unknown_keys(self) -> None:
        config = PoolConfig.for_service("migrate", command_timeout=5.0, not_a_field=1)
        assert config.command_timeout == 5.0
        assert config.max_size == 2

    def test_unknown_service_uses_defaults(self) -> None:
        assert PoolConfig.for_service("nope") == PoolConfig()


class TestRunBounded:
    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        async def ok() -> int:
            return 1

        assert await run_bounded(ok(), 1.0, "op") == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_store_unavailable(self) -> None:
        with pytest.raises(StoreUnavailable) as exc_info:
            await run_bounded(asyncio.sleep(1), 0.01, "presence.count")

        assert exc_info.value.operation == "presence.count"
        assert isinstance(exc_info.value.cause, TimeoutError)

    @pytest.mark.asyncio
    async def test_driver_error_becomes_store_unavailable(self) -> None:
        failing = AsyncMock(side_effect=asyncpg.InterfaceError("pool is closed"))

        with pytest.raises(StoreUnavailable):
            await run_bounded(failing(), 1.0, "reactions.add")

    @pytest.mark.asyncio
    async def test_bugs_are_not_masked(self) -> None:
        failing = AsyncMock(side_effect=KeyError("missing column"))

        with pytest.raises(KeyError):
            await run_bounded(failing(), 1.0, "comments.recent")


class TestDatabaseManager:
    def test_pooler_mode_detection(self) -> None:
        assert DatabaseManager("postgresql://u:p@db:6543/x")._pooler_mode == "transaction"
        assert DatabaseManager("postgresql://u:p@db:5432/x")._pooler_mode == "session"

    def test_pool_before_connect(self) -> None:
        manager = DatabaseManager("postgresql://u:p@db:5432/x")

        assert manager.is_connected is False
        with pytest.raises(StoreUnavailable):
            _ = manager.pool

    def test_storage_unavailable_before_connect(self) -> None:
        storage = PostgresStorage(DatabaseManager("postgresql://u:p@db:5432/x"), timeout=0.5)

        with pytest.raises(StoreUnavailable):
            _ = storage.presence

    @pytest.mark.asyncio
    async def test_check_health_without_pool(self) -> None:
        assert await DatabaseManager("postgresql://u:p@db:5432/x").check_health() is False

    @pytest.mark.asyncio
    async def test_connect_retries_then_succeeds(self, mock_pool) -> None:
        manager = DatabaseManager(
            "postgresql://u:p@db:5432/x", PoolConfig(max_retries=3, retry_delay=0)
        )
        create_pool = AsyncMock(side_effect=[OSError("refused"), mock_pool])

        with (
            patch("onair.shared.database.asyncpg.create_pool", create_pool),
            patch.object(manager, "_diagnose_connection", MagicMock()),
        ):
            await manager.connect()

        assert create_pool.await_count == 2
        assert manager.pool is mock_pool

    @pytest.mark.asyncio
    async def test_connect_gives_up(self) -> None:
        manager = DatabaseManager(
            "postgresql://u:p@db:5432/x", PoolConfig(max_retries=2, retry_delay=0)
        )
        create_pool = AsyncMock(side_effect=OSError("refused"))

        with (
            patch("onair.shared.database.asyncpg.create_pool", create_pool),
            patch.object(manager, "_diagnose_connection", MagicMock()),
            pytest.raises(OSError),
        ):
            await manager.connect()

        assert manager.is_connected is False


class TestBackgroundMaintenance:
    def test_keepalive_interval_follows_idle_lifetime(self) -> None:
        assert PoolConfig().keepalive_interval == 15.0
        assert PoolConfig(max_inactive_connection_lifetime=10.0).keepalive_interval == 5.0

    @pytest.mark.asyncio
    async def test_ping_without_pool(self) -> None:
        with pytest.raises(StoreUnavailable):
            await DatabaseManager("postgresql://u:p@db:5432/x").ping()

    @pytest.mark.asyncio
    async def test_keep_alive_recovers_after_failures(self, mock_pool, mock_conn, caplog) -> None:
        caplog.set_level("INFO")
        manager = DatabaseManager(
            "postgresql://u:p@db:5432/x", PoolConfig(max_inactive_connection_lifetime=0)
        )
        manager._pool = mock_pool
        mock_conn.fetchval.side_effect = [
            OSError("reset"),
            OSError("reset"),
            1,
            asyncio.CancelledError(),
        ]

        with pytest.raises(asyncio.CancelledError):
            await manager.keep_alive()

        assert mock_conn.fetchval.await_count == 4
        mock_pool.acquire.assert_called_with(timeout=manager.config.timeout)
        assert "recovered after 2 failure(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_reconnect_until_connected(self, mock_pool) -> None:
        manager = DatabaseManager(
            "postgresql://u:p@db:5432/x",
            PoolConfig(max_retries=1, retry_delay=0, reconnect_delay=0),
        )
        create_pool = AsyncMock(side_effect=[OSError("refused"), OSError("refused"), mock_pool])

        with patch("onair.shared.database.asyncpg.create_pool", create_pool):
            await manager.reconnect()

        assert create_pool.await_count == 3
        assert manager.is_connected is True

    @pytest.mark.asyncio
    async def test_reconnect_noop_when_connected(self, mock_pool) -> None:
        manager = DatabaseManager("postgresql://u:p@db:5432/x")
        manager._pool = mock_pool
        create_pool = AsyncMock()

        with patch("onair.shared.database.asyncpg.create_pool", create_pool):
            await manager.reconnect()

        create_pool.assert_not_awaited()
