"""PostgreSQL connection management for the OnAir services.

Connection modes:
  - Direct / Session Pooler (port 5432) : persistent servers, prepared statements
  - Transaction Pooler      (port 6543) : PgBouncer transaction mode, no prepared statements
"""

from __future__ import annotations

import asyncio
import logging
import socket
from collections.abc import Awaitable
from dataclasses import dataclass, fields
from typing import Any, ClassVar, TypeVar
from urllib.parse import urlparse

import asyncpg

from onair.shared.errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "the store is not answering right now", as opposed to bugs.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    TimeoutError,
)


@dataclass
class PoolConfig:
    """Database pool configuration with sensible defaults."""

    min_size: int = 1
    max_size: int = 5
    timeout: float = 5.0
    command_timeout: float = 2.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 2.0
    ssl: str | None = None

    # Keep-alive settings (session mode only)
    tcp_keepalives_idle: int = 30
    tcp_keepalives_interval: int = 10
    tcp_keepalives_count: int = 3

    # Background loops run by the API process
    keepalive_max_interval: float = 120.0
    reconnect_delay: float = 5.0
    reconnect_max_delay: float = 60.0

    # - api: many short requests (presence writes, polled reads)
    # - migrate: one-shot maintenance scripts
    _SERVICE_PRESETS: ClassVar[dict[str, dict]] = {
        "api": {"min_size": 1, "max_size": 10},
        "migrate": {"min_size": 1, "max_size": 2, "command_timeout": 60.0},
    }

    @classmethod
    def for_service(cls, service: str, **overrides) -> PoolConfig:
        """Create a PoolConfig with service-specific presets.

        Unknown keys in *overrides* are ignored so callers can pass settings
        objects through without filtering.
        """
        valid_keys = {f.name for f in fields(cls) if not f.name.startswith("_")}
        preset = dict(cls._SERVICE_PRESETS.get(service, {}))
        preset.update(overrides)
        filtered = {k: v for k, v in preset.items() if k in valid_keys}
        return cls(**filtered)

    @property
    def keepalive_interval(self) -> float:
        """Ping at half the idle lifetime so pooled connections stay under it."""
        return self.max_inactive_connection_lifetime / 2


async def run_bounded(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """Await a store call with a hard deadline.

    Timeouts and driver errors are re-raised as ``StoreUnavailable`` so the
    service layer only has one failure type to handle.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.CancelledError:
        raise
    except TRANSIENT_ERRORS as exc:
        raise StoreUnavailable(operation, exc) from exc


class DatabaseManager:
    """Manages the asyncpg pool lifecycle.

    Handles pooler detection, connect retry with exponential backoff and
    health checks.
    """

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self._pooler_mode: str = "transaction" if ":6543" in database_url else "session"

    # ── Pool builders ────────────────────────────────────────────────

    async def _init_session_connection(self, conn: asyncpg.Connection) -> None:
        """Set a server-side statement timeout on every new session connection."""
        timeout_ms = int(self.config.command_timeout * 1000)
        await conn.execute(f"SET statement_timeout = {timeout_ms}")

    def _session_pool_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        return {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
            "statement_cache_size": 100,
            "max_inactive_connection_lifetime": cfg.max_inactive_connection_lifetime,
            "server_settings": {
                "tcp_keepalives_idle": str(cfg.tcp_keepalives_idle),
                "tcp_keepalives_interval": str(cfg.tcp_keepalives_interval),
                "tcp_keepalives_count": str(cfg.tcp_keepalives_count),
            },
            "init": self._init_session_connection,
        }

    def _transaction_pool_kwargs(self) -> dict[str, Any]:
        """PgBouncer transaction mode: no prepared statements, no session state."""
        cfg = self.config
        return {
            "dsn": self.database_url,
            "min_size": 0,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
            "statement_cache_size": 0,
            "max_inactive_connection_lifetime": 0,
        }

    # ── Diagnostics ──────────────────────────────────────────────────

    def _diagnose_connection(self) -> None:
        """Log DNS resolution for the database host after a failed connect."""
        parsed = urlparse(self.database_url)
        host = parsed.hostname or "unknown"
        port = parsed.port or 5432
        logger.info(f"[DB Diag] host={host}, port={port}, user={parsed.username or 'unknown'}")
        try:
            addrs = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
            logger.info(f"[DB Diag] DNS OK: {sorted({a[4][0] for a in addrs})}")
        except socket.gaierror as e:
            logger.error(f"[DB Diag] DNS FAILED: {e}")

    # ── Lifecycle ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Create the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        _builders = {
            "session": self._session_pool_kwargs,
            "transaction": self._transaction_pool_kwargs,
        }
        pool_kwargs = _builders[self._pooler_mode]()
        logger.info(f"Connecting with {self._pooler_mode} pooler mode")

        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**pool_kwargs)
                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                logger.info(
                    f"Database pool created and verified "
                    f"(mode={self._pooler_mode}, size={pool_kwargs['min_size']}-{cfg.max_size})"
                )
                return
            except Exception as e:
                if self._pool is not None:
                    await self._pool.close()
                    self._pool = None
                if attempt >= cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e or repr(e)}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e or repr(e)}, retrying in {delay}s..."
                )
                if attempt == 1:
                    self._diagnose_connection()
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        """Close the pool."""
        if self._pool is None:
            return

        try:
            await self._pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Error closing database pool: {e}")
        finally:
            self._pool = None

    async def ping(self) -> None:
        """One ``SELECT 1`` on a pooled connection, bounded by the pool timeouts."""

        async def _select_one() -> None:
            async with self.pool.acquire(timeout=self.config.timeout) as conn:
                await conn.fetchval("SELECT 1")

        await run_bounded(
            _select_one(), self.config.timeout + self.config.command_timeout, "ping"
        )

    async def check_health(self) -> bool:
        """Test if the pool can actually execute a query."""
        if self._pool is None:
            return False
        try:
            await self.ping()
            return True
        except Exception:
            return False

    # ── Background maintenance ───────────────────────────────────────

    async def keep_alive(self) -> None:
        """Ping the pool every ``keepalive_interval`` until cancelled.

        Failures double the interval up to ``keepalive_max_interval`` and are
        logged for the first three attempts only.
        """
        cfg = self.config
        interval = cfg.keepalive_interval
        failures = 0
        while True:
            await asyncio.sleep(interval)
            if not self.is_connected:
                continue
            try:
                await self.ping()
            except StoreUnavailable as e:
                failures += 1
                if failures <= 3:
                    logger.warning(f"Pool keep-alive failed ({failures}): {e}")
                elif failures == 4:
                    logger.warning("Pool keep-alive still failing, suppressing until recovery")
                interval = min(
                    cfg.keepalive_interval * 2 ** min(failures, 3), cfg.keepalive_max_interval
                )
                continue
            if failures:
                logger.info(f"Pool keep-alive recovered after {failures} failure(s)")
            failures = 0
            interval = cfg.keepalive_interval

    async def reconnect(self) -> None:
        """Retry ``connect()`` with a doubling delay until the pool exists."""
        cfg = self.config
        delay = cfg.reconnect_delay
        while not self.is_connected:
            await asyncio.sleep(delay)
            try:
                await self.connect()
            except Exception as e:
                delay = min(delay * 2, cfg.reconnect_max_delay)
                logger.warning(
                    f"Background reconnect failed: {type(e).__name__}, next attempt in {delay}s"
                )
            else:
                logger.info("Database connected (background retry)")

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the database connection pool.

        Raises ``StoreUnavailable`` until ``connect()`` has succeeded, so a
        request arriving during a slow startup degrades like any other outage.
        """
        if self._pool is None:
            raise StoreUnavailable("acquire")
        return self._pool
