"""Repositories for live_reactions, live_comments and song_requests tables."""

from __future__ import annotations

import logging
from datetime import datetime

import asyncpg

from onair.shared.models import LiveComment, LiveReaction, SongRequest
from onair.shared.models.engagement import OPEN_SONG_REQUEST_STATUSES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column constants
# ---------------------------------------------------------------------------

_REACTION_COLUMNS = "id, stream_type, session_token, emoji, created_at"

_COMMENT_COLUMNS = "id, stream_type, session_token, username, message, created_at"

_SONG_REQUEST_COLUMNS = (
    "id, stream_type, session_token, song_title, artist_name, requester_name, "
    "status, priority, created_at, updated_at"
)

# Recency lists: newest first, ties by insertion order
_RECENT_ORDER = "ORDER BY created_at DESC, id ASC"


# ---------------------------------------------------------------------------
# ReactionRepository
# ---------------------------------------------------------------------------


class ReactionRepository:
    """Pure SQL operations for live_reactions."""

    def __init__(self, pool: asyncpg.Pool, timeout: float | None = None) -> None:
        self.pool = pool
        self.timeout = timeout

    async def add(
        self, stream_type: str, session_token: str, emoji: str, now: datetime
    ) -> LiveReaction:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO live_reactions (stream_type, session_token, emoji, created_at)
                VALUES ($1, $2, $3, $4)
                RETURNING {_REACTION_COLUMNS}
                """,
                stream_type,
                session_token,
                emoji,
                now,
                timeout=self.timeout,
            )
            return LiveReaction(**dict(row))

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveReaction]:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                f"SELECT {_REACTION_COLUMNS} FROM live_reactions "
                f"WHERE ($1::text IS NULL OR stream_type = $1) {_RECENT_ORDER} LIMIT $2",
                stream_type,
                limit,
                timeout=self.timeout,
            )
            return [LiveReaction(**dict(row)) for row in rows]

    async def tally(self, stream_type: str, since: datetime, until: datetime) -> dict[str, int]:
        """Count reactions per emoji inside [since, until], first-used emoji first."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                "SELECT emoji, COUNT(*) AS count FROM live_reactions "
                "WHERE stream_type = $1 AND created_at >= $2 AND created_at <= $3 "
                "GROUP BY emoji ORDER BY MIN(created_at) ASC, MIN(id) ASC",
                stream_type,
                since,
                until,
                timeout=self.timeout,
            )
            return {row["emoji"]: int(row["count"]) for row in rows}

    async def total(self) -> int:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            count = await conn.fetchval("SELECT COUNT(*) FROM live_reactions", timeout=self.timeout)
            return int(count or 0)

    async def top(self, limit: int) -> list[tuple[str, int]]:
        """Most used emoji overall; equal counts sort by emoji."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                "SELECT emoji, COUNT(*) AS count FROM live_reactions "
                "GROUP BY emoji ORDER BY count DESC, emoji ASC LIMIT $1",
                limit,
                timeout=self.timeout,
            )
            return [(row["emoji"], int(row["count"])) for row in rows]


# ---------------------------------------------------------------------------
# CommentRepository
# ---------------------------------------------------------------------------


class CommentRepository:
    """Pure SQL operations for live_comments."""

    def __init__(self, pool: asyncpg.Pool, timeout: float | None = None) -> None:
        self.pool = pool
        self.timeout = timeout

    async def add(
        self,
        stream_type: str,
        session_token: str,
        username: str,
        message: str,
        now: datetime,
    ) -> LiveComment:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO live_comments (stream_type, session_token, username, message, created_at)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_COMMENT_COLUMNS}
                """,
                stream_type,
                session_token,
                username,
                message,
                now,
                timeout=self.timeout,
            )
            return LiveComment(**dict(row))

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveComment]:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                f"SELECT {_COMMENT_COLUMNS} FROM live_comments "
                f"WHERE ($1::text IS NULL OR stream_type = $1) {_RECENT_ORDER} LIMIT $2",
                stream_type,
                limit,
                timeout=self.timeout,
            )
            return [LiveComment(**dict(row)) for row in rows]

    async def total(self) -> int:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            count = await conn.fetchval("SELECT COUNT(*) FROM live_comments", timeout=self.timeout)
            return int(count or 0)


# ---------------------------------------------------------------------------
# SongRequestRepository
# ---------------------------------------------------------------------------


class SongRequestRepository:
    """Pure SQL operations for song_requests."""

    def __init__(self, pool: asyncpg.Pool, timeout: float | None = None) -> None:
        self.pool = pool
        self.timeout = timeout

    async def add(
        self,
        stream_type: str,
        session_token: str,
        song_title: str,
        artist_name: str | None,
        requester_name: str,
        now: datetime,
    ) -> SongRequest:
        """Insert a new request with status='pending', priority=0."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO song_requests
                    (stream_type, session_token, song_title, artist_name, requester_name, created_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING {_SONG_REQUEST_COLUMNS}
                """,
                stream_type,
                session_token,
                song_title,
                artist_name,
                requester_name,
                now,
                timeout=self.timeout,
            )
            return SongRequest(**dict(row))

    async def get(self, request_id: int) -> SongRequest | None:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"SELECT {_SONG_REQUEST_COLUMNS} FROM song_requests WHERE id = $1",
                request_id,
                timeout=self.timeout,
            )
            return SongRequest(**dict(row)) if row else None

    async def list_requests(
        self,
        stream_type: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[SongRequest]:
        """Newest first. ``None`` filters match everything; ``LIMIT NULL`` means no limit."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                f"SELECT {_SONG_REQUEST_COLUMNS} FROM song_requests "
                "WHERE ($1::text IS NULL OR stream_type = $1) "
                "AND ($2::text IS NULL OR status = $2) "
                f"{_RECENT_ORDER} LIMIT $3",
                stream_type,
                status,
                limit,
                timeout=self.timeout,
            )
            return [SongRequest(**dict(row)) for row in rows]

    async def queue(self, stream_type: str | None = None) -> list[SongRequest]:
        """Open requests, highest priority first, then first come first served."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                f"SELECT {_SONG_REQUEST_COLUMNS} FROM song_requests "
                "WHERE ($1::text IS NULL OR stream_type = $1) AND status = ANY($2::text[]) "
                "ORDER BY priority DESC, created_at ASC, id ASC",
                stream_type,
                list(OPEN_SONG_REQUEST_STATUSES),
                timeout=self.timeout,
            )
            return [SongRequest(**dict(row)) for row in rows]

    async def update_status(
        self, request_id: int, status: str, priority: int | None, now: datetime
    ) -> SongRequest | None:
        """Set status (and priority when given). Returns None if no such id."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE song_requests
                SET status     = $2,
                    priority   = COALESCE($3, priority),
                    updated_at = $4
                WHERE id = $1
                RETURNING {_SONG_REQUEST_COLUMNS}
                """,
                request_id,
                status,
                priority,
                now,
                timeout=self.timeout,
            )
            return SongRequest(**dict(row)) if row else None

    async def total(self) -> int:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            count = await conn.fetchval("SELECT COUNT(*) FROM song_requests", timeout=self.timeout)
            return int(count or 0)
