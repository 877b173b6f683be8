"""Dependency injection utilities for FastAPI"""

import logging
import secrets

from fastapi import Depends, Header, HTTPException

from onair.api.core.config import get_settings
from onair.api.core.database import get_storage
from onair.api.services import AggregationService, EngagementService, PresenceService
from onair.shared.cache import AsyncTTLCache
from onair.shared.clock import Clock, utcnow

logger = logging.getLogger(__name__)


# ============================================
# Clock & Cache
# ============================================


def get_clock() -> Clock:
    """Wall clock for services. Tests override this dependency."""
    return utcnow


_read_cache: AsyncTTLCache | None = None


def get_read_cache() -> AsyncTTLCache | None:
    """Shared read cache for this worker, or None when caching is disabled."""
    global _read_cache
    settings = get_settings()
    if settings.snapshot_cache_ttl_seconds <= 0:
        return None
    if _read_cache is None:
        _read_cache = AsyncTTLCache(maxsize=256, ttl=settings.snapshot_cache_ttl_seconds)
    return _read_cache


def reset_caches() -> None:
    """Drop the read cache. Called on startup so a new storage starts cold."""
    global _read_cache
    _read_cache = None


# ============================================
# Service Dependencies
# ============================================


def get_presence_service(clock: Clock = Depends(get_clock)) -> PresenceService:
    settings = get_settings()
    return PresenceService(
        get_storage(),
        cache=get_read_cache(),
        timeout=settings.store_timeout_seconds,
        clock=clock,
    )


def get_engagement_service(clock: Clock = Depends(get_clock)) -> EngagementService:
    settings = get_settings()
    return EngagementService(
        get_storage(),
        cache=get_read_cache(),
        timeout=settings.store_timeout_seconds,
        clock=clock,
    )


def get_aggregation_service(clock: Clock = Depends(get_clock)) -> AggregationService:
    settings = get_settings()
    return AggregationService(
        get_storage(),
        cache=get_read_cache(),
        liveness_timeout=settings.liveness_timeout_seconds,
        reaction_window=settings.reaction_window_seconds,
        snapshot_comment_limit=settings.snapshot_comment_limit,
        snapshot_song_request_limit=settings.snapshot_song_request_limit,
        timeout=settings.store_timeout_seconds,
        clock=clock,
    )


# ============================================
# Admin Dependencies
# ============================================


async def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    """Gate operator routes behind the configured admin token"""
    settings = get_settings()

    if not settings.admin_token:
        raise HTTPException(status_code=403, detail="Admin routes are disabled")

    if not x_admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        logger.warning("Rejected admin request with missing or invalid token")
        raise HTTPException(status_code=401, detail="Invalid admin token")
