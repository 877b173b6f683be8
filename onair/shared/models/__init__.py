"""Data models for presence and engagement tables."""

from .engagement import (
    COMMENT_MAX_LENGTH,
    REACTION_EMOJIS,
    SONG_REQUEST_STATUSES,
    EngagementMetrics,
    EngagementSnapshot,
    LiveComment,
    LiveReaction,
    RealtimeActivity,
    SongRequest,
)
from .presence import STREAM_TYPES, PresenceRecord

__all__ = [
    "COMMENT_MAX_LENGTH",
    "REACTION_EMOJIS",
    "SONG_REQUEST_STATUSES",
    "STREAM_TYPES",
    "EngagementMetrics",
    "EngagementSnapshot",
    "LiveComment",
    "LiveReaction",
    "PresenceRecord",
    "RealtimeActivity",
    "SongRequest",
]
