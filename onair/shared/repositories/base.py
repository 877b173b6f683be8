"""Storage contracts implemented by the PostgreSQL and in-memory backends.

Repositories never read the clock: callers pass ``now`` (or a cutoff) so
expiry and tally windows are decided in one place, the service layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from onair.shared.models import LiveComment, LiveReaction, PresenceRecord, SongRequest


class PresenceStore(Protocol):
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
        """Create or refresh the (session, stream) row; last_seen_at never moves backwards."""
        ...

    async def get(self, session_token: str, stream_type: str) -> PresenceRecord | None: ...

    async def delete(self, session_token: str, stream_type: str) -> bool:
        """Remove the row. Returns False when there was nothing to remove."""
        ...

    async def count_active(self, stream_type: str, since: datetime) -> int:
        """Count rows for *stream_type* with last_seen_at >= *since*."""
        ...

    async def count_active_by_stream(self, since: datetime) -> dict[str, int]: ...

    async def purge_stale(self, before: datetime) -> int:
        """Delete rows with last_seen_at < *before*. Returns rows deleted."""
        ...


class ReactionStore(Protocol):
    async def add(
        self, stream_type: str, session_token: str, emoji: str, now: datetime
    ) -> LiveReaction: ...

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveReaction]:
        """Newest first; ``None`` spans every stream."""
        ...

    async def tally(self, stream_type: str, since: datetime, until: datetime) -> dict[str, int]:
        """Reaction counts per emoji with since <= created_at <= until."""
        ...

    async def total(self) -> int: ...

    async def top(self, limit: int) -> list[tuple[str, int]]:
        """Most used emoji across all streams and time, most used first."""
        ...


class CommentStore(Protocol):
    async def add(
        self,
        stream_type: str,
        session_token: str,
        username: str,
        message: str,
        now: datetime,
    ) -> LiveComment: ...

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveComment]: ...

    async def total(self) -> int: ...


class SongRequestStore(Protocol):
    async def add(
        self,
        stream_type: str,
        session_token: str,
        song_title: str,
        artist_name: str | None,
        requester_name: str,
        now: datetime,
    ) -> SongRequest: ...

    async def get(self, request_id: int) -> SongRequest | None: ...

    async def list_requests(
        self,
        stream_type: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[SongRequest]:
        """Newest first; ties broken by id ascending."""
        ...

    async def queue(self, stream_type: str | None = None) -> list[SongRequest]:
        """Open requests by priority descending, then oldest first."""
        ...

    async def update_status(
        self, request_id: int, status: str, priority: int | None, now: datetime
    ) -> SongRequest | None:
        """Returns None when *request_id* does not exist."""
        ...

    async def total(self) -> int: ...