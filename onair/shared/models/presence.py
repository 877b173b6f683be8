"""Data models for the presence_sessions table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

STREAM_TYPES: tuple[str, ...] = ("tv", "radio")


@dataclass
class PresenceRecord:
    """One session currently watching or listening to one stream."""

    id: int
    session_token: str
    stream_type: str  # 'tv' | 'radio'
    joined_at: datetime
    last_seen_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None
