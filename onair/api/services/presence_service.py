"""Presence service: join / heartbeat / leave and stale-row cleanup."""

from __future__ import annotations

import logging
from datetime import timedelta

from onair.api.services.validation import validate_stream_type
from onair.shared.cache import AsyncTTLCache
from onair.shared.clock import Clock, utcnow
from onair.shared.database import run_bounded
from onair.shared.models import PresenceRecord
from onair.shared.storage import Storage

logger = logging.getLogger(__name__)


class PresenceService:
    """Write side of viewer presence.

    Every call is an independent upsert or delete on one (session, stream)
    row; nothing here holds state between requests. Store failures surface
    as ``StoreUnavailable`` and the client simply retries on its next beat.
    """

    def __init__(
        self,
        storage: Storage,
        *,
        cache: AsyncTTLCache | None = None,
        timeout: float = 0.5,
        clock: Clock = utcnow,
    ) -> None:
        self.storage = storage
        self.cache = cache
        self.timeout = timeout
        self.clock = clock

    def _invalidate_counts(self) -> None:
        # Heartbeats do not invalidate; counts catch up within one TTL
        if self.cache is not None:
            self.cache.invalidate_prefix("count")

    async def join(
        self,
        session_token: str,
        stream_type: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PresenceRecord:
        """Start (or restart) watching. Repeated joins refresh both timestamps."""
        stream_type = validate_stream_type(stream_type)
        record = await run_bounded(
            self.storage.presence.upsert(
                session_token,
                stream_type,
                self.clock(),
                refresh_joined=True,
                ip_address=ip_address,
                user_agent=user_agent,
            ),
            self.timeout,
            "presence.join",
        )
        self._invalidate_counts()
        logger.debug(f"Presence join: {stream_type} session={session_token[:8]}…")
        return record

    async def heartbeat(
        self,
        session_token: str,
        stream_type: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PresenceRecord:
        """Refresh last_seen_at; recreates the row if it was purged or never joined."""
        stream_type = validate_stream_type(stream_type)
        return await run_bounded(
            self.storage.presence.upsert(
                session_token,
                stream_type,
                self.clock(),
                refresh_joined=False,
                ip_address=ip_address,
                user_agent=user_agent,
            ),
            self.timeout,
            "presence.heartbeat",
        )

    async def leave(self, session_token: str, stream_type: str) -> bool:
        """Stop watching. Leaving twice, or after expiry, is a no-op."""
        stream_type = validate_stream_type(stream_type)
        removed = await run_bounded(
            self.storage.presence.delete(session_token, stream_type),
            self.timeout,
            "presence.leave",
        )
        if removed:
            self._invalidate_counts()
        logger.debug(
            f"Presence leave: {stream_type} session={session_token[:8]}… removed={removed}"
        )
        return removed

    async def purge_stale(self, older_than_seconds: float) -> int:
        """Delete rows idle for longer than *older_than_seconds*. Space reclamation only."""
        before = self.clock() - timedelta(seconds=older_than_seconds)
        purged = await run_bounded(
            self.storage.presence.purge_stale(before),
            # A purge may scan the whole table; give it more room than a request
            max(self.timeout * 10, 5.0),
            "presence.purge",
        )
        if purged:
            logger.info(f"Purged {purged} stale presence row(s)")
        return purged
