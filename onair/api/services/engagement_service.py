"""Engagement service: validated writes to the reaction, comment and song request logs."""

from __future__ import annotations

import logging

from onair.api.services.validation import (
    optional_text,
    require_text,
    validate_emoji,
    validate_status,
    validate_stream_type,
)
from onair.shared.cache import AsyncTTLCache
from onair.shared.clock import Clock, utcnow
from onair.shared.database import run_bounded
from onair.shared.errors import NotFound, ValidationError
from onair.shared.models import LiveComment, LiveReaction, SongRequest
from onair.shared.models.engagement import (
    COMMENT_MAX_LENGTH,
    DISPLAY_NAME_MAX_LENGTH,
    REQUESTER_NAME_MAX_LENGTH,
    SONG_FIELD_MAX_LENGTH,
)
from onair.shared.storage import Storage

logger = logging.getLogger(__name__)


class EngagementService:
    """Append-side of live engagement.

    Events are immutable once written; the only mutation is the
    administrative song request status/priority transition. Each successful
    write drops the cached reads of its kind for that stream, plus the
    operator metrics, so the author sees the new item on their next poll.
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

    def _invalidate(self, prefix: str) -> None:
        if self.cache is not None:
            self.cache.invalidate_prefix(prefix)
            self.cache.invalidate_prefix("metrics:")

    async def submit_reaction(
        self, stream_type: str, session_token: str, emoji: str
    ) -> LiveReaction:
        stream_type = validate_stream_type(stream_type)
        emoji = validate_emoji(stream_type, emoji)
        reaction = await run_bounded(
            self.storage.reactions.add(stream_type, session_token, emoji, self.clock()),
            self.timeout,
            "reactions.add",
        )
        self._invalidate(f"reactions:{stream_type}:")
        return reaction

    async def submit_comment(
        self, stream_type: str, session_token: str, username: str, message: str
    ) -> LiveComment:
        stream_type = validate_stream_type(stream_type)
        username = require_text(username, "username", DISPLAY_NAME_MAX_LENGTH)
        message = require_text(message, "message", COMMENT_MAX_LENGTH)
        comment = await run_bounded(
            self.storage.comments.add(stream_type, session_token, username, message, self.clock()),
            self.timeout,
            "comments.add",
        )
        self._invalidate(f"comments:{stream_type}:")
        return comment

    async def submit_song_request(
        self,
        stream_type: str,
        session_token: str,
        song_title: str,
        requester_name: str,
        artist_name: str | None = None,
    ) -> SongRequest:
        """Queue a listener request as status='pending', priority 0."""
        stream_type = validate_stream_type(stream_type)
        song_title = require_text(song_title, "songTitle", SONG_FIELD_MAX_LENGTH)
        requester_name = require_text(requester_name, "requesterName", REQUESTER_NAME_MAX_LENGTH)
        artist_name = optional_text(artist_name, "artistName", SONG_FIELD_MAX_LENGTH)
        request = await run_bounded(
            self.storage.song_requests.add(
                stream_type, session_token, song_title, artist_name, requester_name, self.clock()
            ),
            self.timeout,
            "song_requests.add",
        )
        logger.info(f"Song request #{request.id} on {stream_type}: {song_title!r} by {requester_name!r}")
        self._invalidate("song_requests:")
        return request

    async def update_song_request_status(
        self, request_id: int, status: str, priority: int | None = None
    ) -> SongRequest:
        """Operator transition of status (and optionally priority)."""
        status = validate_status(status)
        if priority is not None and not isinstance(priority, int):
            raise ValidationError("priority must be an integer", field="priority")
        updated = await run_bounded(
            self.storage.song_requests.update_status(request_id, status, priority, self.clock()),
            self.timeout,
            "song_requests.update_status",
        )
        if updated is None:
            raise NotFound("Song request", request_id)
        logger.info(
            f"Song request #{request_id} -> status={updated.status}, priority={updated.priority}"
        )
        self._invalidate("song_requests:")
        return updated
