"""Repository bundles handed to the service layer."""

from __future__ import annotations

from dataclasses import dataclass, field

from onair.shared.database import DatabaseManager
from onair.shared.repositories import (
    CommentRepository,
    CommentStore,
    InMemoryCommentRepository,
    InMemoryPresenceRepository,
    InMemoryReactionRepository,
    InMemorySongRequestRepository,
    PresenceRepository,
    PresenceStore,
    ReactionRepository,
    ReactionStore,
    SongRequestRepository,
    SongRequestStore,
)


@dataclass
class MemoryStorage:
    """Process-local repositories; one instance per application."""

    presence: PresenceStore = field(default_factory=InMemoryPresenceRepository)
    reactions: ReactionStore = field(default_factory=InMemoryReactionRepository)
    comments: CommentStore = field(default_factory=InMemoryCommentRepository)
    song_requests: SongRequestStore = field(default_factory=InMemorySongRequestRepository)


class PostgresStorage:
    """Repositories bound to the shared asyncpg pool.

    Repositories are built on attribute access, so while the pool is still
    connecting every access raises ``StoreUnavailable``.
    """

    def __init__(self, db_manager: DatabaseManager, timeout: float | None = None) -> None:
        self.db_manager = db_manager
        self.timeout = timeout

    @property
    def presence(self) -> PresenceStore:
        return PresenceRepository(self.db_manager.pool, self.timeout)

    @property
    def reactions(self) -> ReactionStore:
        return ReactionRepository(self.db_manager.pool, self.timeout)

    @property
    def comments(self) -> CommentStore:
        return CommentRepository(self.db_manager.pool, self.timeout)

    @property
    def song_requests(self) -> SongRequestStore:
        return SongRequestRepository(self.db_manager.pool, self.timeout)


Storage = MemoryStorage | PostgresStorage
