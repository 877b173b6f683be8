"""Input checks shared by the presence and engagement services."""

from __future__ import annotations

from onair.shared.errors import ValidationError
from onair.shared.models import STREAM_TYPES, REACTION_EMOJIS, SONG_REQUEST_STATUSES


def validate_stream_type(stream_type: str | None) -> str:
    if stream_type not in STREAM_TYPES:
        raise ValidationError(f"Unknown stream type: {stream_type!r}", field="streamType")
    return stream_type


def validate_emoji(stream_type: str, emoji: str | None) -> str:
    if emoji not in REACTION_EMOJIS[stream_type]:
        raise ValidationError(f"Emoji not offered on {stream_type}: {emoji!r}", field="emoji")
    return emoji


def validate_status(status: str | None) -> str:
    if status not in SONG_REQUEST_STATUSES:
        raise ValidationError(f"Unknown song request status: {status!r}", field="status")
    return status


def require_text(value: str | None, field: str, max_length: int) -> str:
    """Return *value* unchanged if it has visible content and fits *max_length*."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    if len(value) > max_length:
        raise ValidationError(f"{field} exceeds {max_length} characters", field=field)
    return value


def optional_text(value: str | None, field: str, max_length: int) -> str | None:
    """Blank optional text is stored as NULL."""
    if value is None or not value.strip():
        return None
    return require_text(value, field, max_length)


def validate_limit(limit: int, maximum: int = 100) -> int:
    if not 1 <= limit <= maximum:
        raise ValidationError(f"limit must be between 1 and {maximum}", field="limit")
    return limit


def validate_window(window_seconds: float) -> float:
    if window_seconds <= 0:
        raise ValidationError("windowSeconds must be positive", field="windowSeconds")
    return window_seconds
