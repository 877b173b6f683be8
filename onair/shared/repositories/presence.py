"""Repository for the presence_sessions table."""

from __future__ import annotations

import logging
from datetime import datetime

import asyncpg

from onair.shared.models import STREAM_TYPES, PresenceRecord

logger = logging.getLogger(__name__)

_COLUMNS = "id, session_token, stream_type, joined_at, last_seen_at, ip_address, user_agent"


class PresenceRepository:
    """Pure SQL operations for presence_sessions.

    Every statement touches at most the rows of one stream and runs outside
    an explicit transaction; the unique (session_token, stream_type)
    constraint is what keeps concurrent joins from creating duplicates.
    """

    def __init__(self, pool: asyncpg.Pool, timeout: float | None = None) -> None:
        self.pool = pool
        self.timeout = timeout

    async def upsert(
        self,
        session_token: str,
        stream_type: str,
        now: datetime,
        *,
        refresh_joined: bool,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PresenceRecord:
        """Insert or refresh the row for (session_token, stream_type).

        ``GREATEST`` makes racing heartbeats converge on the latest timestamp
        regardless of the order they commit in.
        """
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO presence_sessions
                    (session_token, stream_type, ip_address, user_agent, joined_at, last_seen_at)
                VALUES ($1, $2, $3, $4, $5, $5)
                ON CONFLICT (session_token, stream_type) DO UPDATE SET
                    joined_at    = CASE WHEN $6::boolean THEN EXCLUDED.joined_at
                                        ELSE presence_sessions.joined_at END,
                    last_seen_at = GREATEST(presence_sessions.last_seen_at, EXCLUDED.last_seen_at),
                    ip_address   = COALESCE(EXCLUDED.ip_address, presence_sessions.ip_address),
                    user_agent   = COALESCE(EXCLUDED.user_agent, presence_sessions.user_agent)
                RETURNING {_COLUMNS}
                """,
                session_token,
                stream_type,
                ip_address,
                user_agent,
                now,
                refresh_joined,
                timeout=self.timeout,
            )
            return PresenceRecord(**dict(row))

    async def get(self, session_token: str, stream_type: str) -> PresenceRecord | None:
        async with self.pool.acquire(timeout=self.timeout) as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM presence_sessions "
                "WHERE session_token = $1 AND stream_type = $2",
                session_token,
                stream_type,
                timeout=self.timeout,
            )
            return PresenceRecord(**dict(row)) if row else None

    async def delete(self, session_token: str, stream_type: str) -> bool:
        """Delete the row. Returns True if a row was removed."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            result = await conn.execute(
                "DELETE FROM presence_sessions WHERE session_token = $1 AND stream_type = $2",
                session_token,
                stream_type,
                timeout=self.timeout,
            )
            return result == "DELETE 1"

    async def count_active(self, stream_type: str, since: datetime) -> int:
        """Count rows seen at or after *since*."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            count = await conn.fetchval(
                "SELECT COUNT(*) FROM presence_sessions "
                "WHERE stream_type = $1 AND last_seen_at >= $2",
                stream_type,
                since,
                timeout=self.timeout,
            )
            return int(count or 0)

    async def count_active_by_stream(self, since: datetime) -> dict[str, int]:
        """Active counts for every stream type, zero-filled."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            rows = await conn.fetch(
                "SELECT stream_type, COUNT(*) AS count FROM presence_sessions "
                "WHERE last_seen_at >= $1 GROUP BY stream_type",
                since,
                timeout=self.timeout,
            )
        counts = dict.fromkeys(STREAM_TYPES, 0)
        counts.update({row["stream_type"]: int(row["count"]) for row in rows})
        return counts

    async def purge_stale(self, before: datetime) -> int:
        """Delete rows last seen before *before*. Returns count of deleted rows."""
        async with self.pool.acquire(timeout=self.timeout) as conn:
            result = await conn.execute(
                "DELETE FROM presence_sessions WHERE last_seen_at < $1",
                before,
                timeout=self.timeout,
            )
            # result is like "DELETE N"
            return int(result.split()[-1])
