"""Aggregation service: read side of presence and engagement.

All reads go through a short-lived shared cache so many polling widgets on
the same stream cost one store scan per TTL. Reads never fail because the
store is down: they return the last known value, or zero / empty, and log a
warning.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import TypeVar

from onair.api.services.validation import (
    validate_limit,
    validate_status,
    validate_stream_type,
    validate_window,
)
from onair.shared.cache import AsyncTTLCache
from onair.shared.clock import Clock, utcnow
from onair.shared.database import run_bounded
from onair.shared.errors import StoreUnavailable
from onair.shared.models import (
    STREAM_TYPES,
    EngagementMetrics,
    EngagementSnapshot,
    LiveComment,
    LiveReaction,
    RealtimeActivity,
    SongRequest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RECENT_LIMIT = 50

REALTIME_COMMENT_LIMIT = 10
REALTIME_REACTION_LIMIT = 10
REALTIME_SONG_REQUEST_LIMIT = 5


class AggregationService:
    def __init__(
        self,
        storage,
        *,
        cache: AsyncTTLCache | None = None,
        liveness_timeout: float = 90,
        reaction_window: float = 60,
        snapshot_comment_limit: int = 20,
        snapshot_song_request_limit: int = 10,
        top_reaction_limit: int = 5,
        timeout: float = 0.5,
        clock: Clock = utcnow,
    ) -> None:
        self.storage = storage
        self.cache = cache
        self.liveness_timeout = liveness_timeout
        self.reaction_window = reaction_window
        self.snapshot_comment_limit = snapshot_comment_limit
        self.snapshot_song_request_limit = snapshot_song_request_limit
        self.top_reaction_limit = top_reaction_limit
        self.timeout = timeout
        self.clock = clock

    async def _read(
        self,
        key: str,
        operation: str,
        fetch: Callable[[], Awaitable[T]],
        default: T,
    ) -> T:
        """Cached, bounded read that degrades to *default* when the store is down."""

        async def loader() -> T:
            return await run_bounded(fetch(), self.timeout, operation)

        try:
            if self.cache is None:
                return await loader()
            return await self.cache.load(key, loader)
        except StoreUnavailable as e:
            logger.warning(f"Degraded read {key}: {e}")
            return default

    # ============================================
    # Viewer counts
    # ============================================

    async def get_viewer_count(self, stream_type: str) -> int:
        stream_type = validate_stream_type(stream_type)

        def fetch():
            since = self.clock() - timedelta(seconds=self.liveness_timeout)
            return self.storage.presence.count_active(stream_type, since)

        return await self._read(f"count:{stream_type}", "presence.count", fetch, 0)

    async def get_viewer_counts(self) -> dict[str, int]:
        """Live viewers for every stream type, zero-filled."""

        def fetch():
            since = self.clock() - timedelta(seconds=self.liveness_timeout)
            return self.storage.presence.count_active_by_stream(since)

        return await self._read(
            "counts", "presence.count_all", fetch, {stream: 0 for stream in STREAM_TYPES}
        )

    # ============================================
    # Reactions
    # ============================================

    async def get_reaction_tally(
        self, stream_type: str, window_seconds: float | None = None
    ) -> dict[str, int]:
        """Emoji -> count over the trailing window ending now."""
        stream_type = validate_stream_type(stream_type)
        window = validate_window(window_seconds if window_seconds is not None else self.reaction_window)

        def fetch():
            now = self.clock()
            return self.storage.reactions.tally(stream_type, now - timedelta(seconds=window), now)

        return await self._read(f"reactions:{stream_type}:tally:{window:g}", "reactions.tally", fetch, {})

    async def get_recent_reactions(
        self, stream_type: str, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[LiveReaction]:
        stream_type = validate_stream_type(stream_type)
        limit = validate_limit(limit)
        return await self._read(
            f"reactions:{stream_type}:recent:{limit}",
            "reactions.recent",
            lambda: self.storage.reactions.recent(stream_type, limit),
            [],
        )

    # ============================================
    # Comments
    # ============================================

    async def get_recent_comments(
        self, stream_type: str, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[LiveComment]:
        stream_type = validate_stream_type(stream_type)
        limit = validate_limit(limit)
        return await self._read(
            f"comments:{stream_type}:recent:{limit}",
            "comments.recent",
            lambda: self.storage.comments.recent(stream_type, limit),
            [],
        )

    # ============================================
    # Song requests
    # ============================================

    async def get_song_requests(
        self,
        stream_type: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[SongRequest]:
        """Newest first, optionally filtered by stream and status."""
        if stream_type is not None:
            stream_type = validate_stream_type(stream_type)
        if status is not None:
            status = validate_status(status)
        if limit is not None:
            limit = validate_limit(limit)
        return await self._read(
            f"song_requests:{stream_type or 'all'}:list:{status or 'any'}:{limit or 'all'}",
            "song_requests.list",
            lambda: self.storage.song_requests.list_requests(stream_type, status, limit),
            [],
        )

    async def get_song_request_queue(self, stream_type: str | None = None) -> list[SongRequest]:
        """Open requests in play order: priority descending, then oldest first."""
        if stream_type is not None:
            stream_type = validate_stream_type(stream_type)
        return await self._read(
            f"song_requests:{stream_type or 'all'}:queue",
            "song_requests.queue",
            lambda: self.storage.song_requests.queue(stream_type),
            [],
        )

    # ============================================
    # Snapshot
    # ============================================

    async def get_engagement_snapshot(self, stream_type: str) -> EngagementSnapshot:
        """Viewer count, reaction tally and recent activity in one round-trip.

        Each part degrades on its own, so a slow comments query does not
        blank the viewer count.
        """
        stream_type = validate_stream_type(stream_type)
        viewer_count, tally, comments, song_requests = await asyncio.gather(
            self.get_viewer_count(stream_type),
            self.get_reaction_tally(stream_type),
            self.get_recent_comments(stream_type, self.snapshot_comment_limit),
            self.get_song_requests(stream_type, limit=self.snapshot_song_request_limit),
        )
        return EngagementSnapshot(
            stream_type=stream_type,
            viewer_count=viewer_count,
            reaction_tally=tally,
            recent_comments=comments,
            recent_song_requests=song_requests,
        )

    # ============================================
    # Operator metrics
    # ============================================

    async def get_engagement_metrics(self) -> EngagementMetrics:
        """Live audience per stream plus all-time interaction totals."""
        counts, total_reactions, total_comments, total_song_requests, top_reactions = (
            await asyncio.gather(
                self.get_viewer_counts(),
                self._read(
                    "metrics:reactions:total",
                    "reactions.total",
                    lambda: self.storage.reactions.total(),
                    0,
                ),
                self._read(
                    "metrics:comments:total",
                    "comments.total",
                    lambda: self.storage.comments.total(),
                    0,
                ),
                self._read(
                    "metrics:song_requests:total",
                    "song_requests.total",
                    lambda: self.storage.song_requests.total(),
                    0,
                ),
                self._read(
                    "metrics:reactions:top",
                    "reactions.top",
                    lambda: self.storage.reactions.top(self.top_reaction_limit),
                    [],
                ),
            )
        )
        return EngagementMetrics(
            total_viewers=counts.get("tv", 0),
            total_listeners=counts.get("radio", 0),
            total_reactions=total_reactions,
            total_comments=total_comments,
            total_song_requests=total_song_requests,
            top_reactions=top_reactions,
        )

    async def get_realtime_activity(self) -> RealtimeActivity:
        """Newest comments, reactions and song requests across both streams."""
        counts, comments, reactions, song_requests = await asyncio.gather(
            self.get_viewer_counts(),
            self._read(
                "metrics:comments:recent",
                "comments.recent",
                lambda: self.storage.comments.recent(None, REALTIME_COMMENT_LIMIT),
                [],
            ),
            self._read(
                "metrics:reactions:recent",
                "reactions.recent",
                lambda: self.storage.reactions.recent(None, REALTIME_REACTION_LIMIT),
                [],
            ),
            self._read(
                "metrics:song_requests:recent",
                "song_requests.list",
                lambda: self.storage.song_requests.list_requests(limit=REALTIME_SONG_REQUEST_LIMIT),
                [],
            ),
        )
        return RealtimeActivity(
            active_users=sum(counts.values()),
            generated_at=self.clock(),
            recent_comments=comments,
            recent_reactions=reactions,
            recent_song_requests=song_requests,
        )
