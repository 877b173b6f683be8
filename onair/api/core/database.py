"""Storage lifecycle for the API process.

``postgres`` backend: one asyncpg pool per worker, created in the lifespan.
``memory`` backend: process-local repositories, reset on every startup.
"""

import logging

from onair.api.core.config import Settings
from onair.shared.database import DatabaseManager, PoolConfig
from onair.shared.storage import MemoryStorage, PostgresStorage, Storage

logger = logging.getLogger(__name__)

# Global instances, set by the lifespan
_db_manager: DatabaseManager | None = None
_storage: Storage | None = None


def get_database_manager() -> DatabaseManager | None:
    """Get the global database manager (None for the memory backend)"""
    return _db_manager


def init_storage(settings: Settings) -> Storage:
    """Create the storage for the configured backend. Does not connect."""
    global _db_manager, _storage

    if settings.storage_backend == "memory":
        _db_manager = None
        _storage = MemoryStorage()
        logger.warning("Using in-memory storage: presence and engagement are lost on restart")
        return _storage

    config = PoolConfig.for_service(
        "api",
        command_timeout=max(settings.store_timeout_seconds * 4, 2.0),
        ssl=settings.database_ssl,
    )
    _db_manager = DatabaseManager(settings.database_url, config)
    _storage = PostgresStorage(_db_manager, timeout=settings.store_timeout_seconds)
    return _storage


def get_storage() -> Storage:
    """Get the storage initialized at startup"""
    if _storage is None:
        raise RuntimeError("Storage not initialized")
    return _storage
