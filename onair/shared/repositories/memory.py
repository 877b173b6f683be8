"""In-process implementations of the storage contracts.

Used when ``storage_backend=memory`` (local development, single-worker
demos, tests). State lives in the worker process and is lost on restart;
heartbeats recreate presence rows after a restart.

None of the methods await between reading and writing shared state, so each
call is atomic with respect to the event loop.
"""

from __future__ import annotations

import itertools
from collections import Counter
from dataclasses import replace
from datetime import datetime

from onair.shared.models import STREAM_TYPES, LiveComment, LiveReaction, PresenceRecord, SongRequest
from onair.shared.models.engagement import OPEN_SONG_REQUEST_STATUSES


def _newest_first(items):
    return sorted(items, key=lambda item: (-item.created_at.timestamp(), item.id))


class InMemoryPresenceRepository:
    """Presence rows keyed by (session_token, stream_type)."""

    def __init__(self) -> None:
        self._rows: dict[tuple[str, str], PresenceRecord] = {}
        self._ids = itertools.count(1)

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
        key = (session_token, stream_type)
        existing = self._rows.get(key)
        if existing is None:
            record = PresenceRecord(
                id=next(self._ids),
                session_token=session_token,
                stream_type=stream_type,
                joined_at=now,
                last_seen_at=now,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        else:
            record = replace(
                existing,
                joined_at=now if refresh_joined else existing.joined_at,
                last_seen_at=max(existing.last_seen_at, now),
                ip_address=ip_address or existing.ip_address,
                user_agent=user_agent or existing.user_agent,
            )
        self._rows[key] = record
        return record

    async def get(self, session_token: str, stream_type: str) -> PresenceRecord | None:
        return self._rows.get((session_token, stream_type))

    async def delete(self, session_token: str, stream_type: str) -> bool:
        return self._rows.pop((session_token, stream_type), None) is not None

    async def count_active(self, stream_type: str, since: datetime) -> int:
        return sum(
            1
            for record in self._rows.values()
            if record.stream_type == stream_type and record.last_seen_at >= since
        )

    async def count_active_by_stream(self, since: datetime) -> dict[str, int]:
        counts = dict.fromkeys(STREAM_TYPES, 0)
        for record in self._rows.values():
            if record.last_seen_at >= since:
                counts[record.stream_type] = counts.get(record.stream_type, 0) + 1
        return counts

    async def purge_stale(self, before: datetime) -> int:
        stale = [key for key, record in self._rows.items() if record.last_seen_at < before]
        for key in stale:
            del self._rows[key]
        return len(stale)


class InMemoryReactionRepository:
    def __init__(self) -> None:
        self._rows: list[LiveReaction] = []
        self._ids = itertools.count(1)

    async def add(
        self, stream_type: str, session_token: str, emoji: str, now: datetime
    ) -> LiveReaction:
        reaction = LiveReaction(
            id=next(self._ids),
            stream_type=stream_type,
            session_token=session_token,
            emoji=emoji,
            created_at=now,
        )
        self._rows.append(reaction)
        return reaction

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveReaction]:
        rows = [r for r in self._rows if stream_type is None or r.stream_type == stream_type]
        return _newest_first(rows)[:limit]

    async def tally(self, stream_type: str, since: datetime, until: datetime) -> dict[str, int]:
        # Insertion order is id order, so Counter keeps first-used emoji first
        in_window = sorted(
            (r for r in self._rows if r.stream_type == stream_type and since <= r.created_at <= until),
            key=lambda r: (r.created_at, r.id),
        )
        return dict(Counter(r.emoji for r in in_window))

    async def total(self) -> int:
        return len(self._rows)

    async def top(self, limit: int) -> list[tuple[str, int]]:
        counts = Counter(r.emoji for r in self._rows)
        return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]


class InMemoryCommentRepository:
    def __init__(self) -> None:
        self._rows: list[LiveComment] = []
        self._ids = itertools.count(1)

    async def add(
        self,
        stream_type: str,
        session_token: str,
        username: str,
        message: str,
        now: datetime,
    ) -> LiveComment:
        comment = LiveComment(
            id=next(self._ids),
            stream_type=stream_type,
            session_token=session_token,
            username=username,
            message=message,
            created_at=now,
        )
        self._rows.append(comment)
        return comment

    async def recent(self, stream_type: str | None, limit: int) -> list[LiveComment]:
        rows = [c for c in self._rows if stream_type is None or c.stream_type == stream_type]
        return _newest_first(rows)[:limit]

    async def total(self) -> int:
        return len(self._rows)


class InMemorySongRequestRepository:
    def __init__(self) -> None:
        self._rows: dict[int, SongRequest] = {}
        self._ids = itertools.count(1)

    async def add(
        self,
        stream_type: str,
        session_token: str,
        song_title: str,
        artist_name: str | None,
        requester_name: str,
        now: datetime,
    ) -> SongRequest:
        request = SongRequest(
            id=next(self._ids),
            stream_type=stream_type,
            session_token=session_token,
            song_title=song_title,
            artist_name=artist_name,
            requester_name=requester_name,
            created_at=now,
        )
        self._rows[request.id] = request
        return request

    async def get(self, request_id: int) -> SongRequest | None:
        return self._rows.get(request_id)

    async def list_requests(
        self,
        stream_type: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[SongRequest]:
        rows = [
            r
            for r in self._rows.values()
            if (stream_type is None or r.stream_type == stream_type)
            and (status is None or r.status == status)
        ]
        rows = _newest_first(rows)
        return rows if limit is None else rows[:limit]

    async def queue(self, stream_type: str | None = None) -> list[SongRequest]:
        rows = [
            r
            for r in self._rows.values()
            if (stream_type is None or r.stream_type == stream_type)
            and r.status in OPEN_SONG_REQUEST_STATUSES
        ]
        return sorted(rows, key=lambda r: (-r.priority, r.created_at, r.id))

    async def update_status(
        self, request_id: int, status: str, priority: int | None, now: datetime
    ) -> SongRequest | None:
        existing = self._rows.get(request_id)
        if existing is None:
            return None
        updated = replace(
            existing,
            status=status,
            priority=existing.priority if priority is None else priority,
            updated_at=now,
        )
        self._rows[request_id] = updated
        return updated

    async def total(self) -> int:
        return len(self._rows)
