"""Repository layer: PostgreSQL implementations and in-memory equivalents."""

from .base import CommentStore, PresenceStore, ReactionStore, SongRequestStore
from .engagement import CommentRepository, ReactionRepository, SongRequestRepository
from .memory import (
    InMemoryCommentRepository,
    InMemoryPresenceRepository,
    InMemoryReactionRepository,
    InMemorySongRequestRepository,
)
from .presence import PresenceRepository

__all__ = [
    "CommentRepository",
    "CommentStore",
    "InMemoryCommentRepository",
    "InMemoryPresenceRepository",
    "InMemoryReactionRepository",
    "InMemorySongRequestRepository",
    "PresenceRepository",
    "PresenceStore",
    "ReactionRepository",
    "ReactionStore",
    "SongRequestRepository",
    "SongRequestStore",
]
