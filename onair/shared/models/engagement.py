"""Data models for live_reactions, live_comments and song_requests tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Emoji vocabulary offered on each stream's reaction bar
REACTION_EMOJIS: dict[str, tuple[str, ...]] = {
    "tv": ("❤️", "👍", "👀", "👏", "🔥"),
    "radio": ("🎵", "🎧", "💃", "🎤", "🔊"),
}

SONG_REQUEST_STATUSES: tuple[str, ...] = ("pending", "queued", "played", "rejected")

# Statuses that still belong in the play queue
OPEN_SONG_REQUEST_STATUSES: tuple[str, ...] = ("pending", "queued")

COMMENT_MAX_LENGTH = 500
DISPLAY_NAME_MAX_LENGTH = 20
SONG_FIELD_MAX_LENGTH = 200
REQUESTER_NAME_MAX_LENGTH = 50


@dataclass
class LiveReaction:
    """Live reaction record."""

    id: int
    stream_type: str
    session_token: str
    emoji: str
    created_at: datetime


@dataclass
class LiveComment:
    """Live comment record."""

    id: int
    stream_type: str
    session_token: str
    username: str
    message: str
    created_at: datetime


@dataclass
class SongRequest:
    """Song request record. Only status and priority change after creation."""

    id: int
    stream_type: str
    session_token: str
    song_title: str
    requester_name: str
    created_at: datetime
    artist_name: str | None = None
    status: str = "pending"  # 'pending' | 'queued' | 'played' | 'rejected'
    priority: int = 0
    updated_at: datetime | None = None


@dataclass
class EngagementSnapshot:
    """Everything a live page needs for one poll round-trip."""

    stream_type: str
    viewer_count: int = 0
    reaction_tally: dict[str, int] = field(default_factory=dict)
    recent_comments: list[LiveComment] = field(default_factory=list)
    recent_song_requests: list[SongRequest] = field(default_factory=list)


@dataclass
class EngagementMetrics:
    """Station-wide totals for the operator dashboard."""

    total_viewers: int = 0
    total_listeners: int = 0
    total_reactions: int = 0
    total_comments: int = 0
    total_song_requests: int = 0
    top_reactions: list[tuple[str, int]] = field(default_factory=list)

    @property
    def active_users(self) -> int:
        return self.total_viewers + self.total_listeners

    @property
    def engagement_rate(self) -> float:
        """All-time interactions per live audience member, as a percentage."""
        interactions = self.total_reactions + self.total_comments + self.total_song_requests
        return round(interactions / max(self.active_users, 1) * 100, 2)


@dataclass
class RealtimeActivity:
    """Latest activity across both streams."""

    active_users: int
    generated_at: datetime
    recent_comments: list[LiveComment] = field(default_factory=list)
    recent_reactions: list[LiveReaction] = field(default_factory=list)
    recent_song_requests: list[SongRequest] = field(default_factory=list)
