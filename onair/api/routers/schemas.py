"""Request / response models shared by the live engagement routers.

JSON field names are camelCase on the wire; Python attributes stay
snake_case (``populate_by_name`` accepts either on input).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from onair.shared.models import (
    EngagementMetrics,
    EngagementSnapshot,
    LiveComment,
    LiveReaction,
    RealtimeActivity,
    SongRequest,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SuccessResponse(CamelModel):
    success: bool = True


# ============================================
# Presence
# ============================================


class PresenceRequest(CamelModel):
    stream_type: str


class ViewerCountResponse(CamelModel):
    count: int


class ViewerCountsResponse(CamelModel):
    tv: int = 0
    radio: int = 0


# ============================================
# Reactions
# ============================================


class ReactionCreate(CamelModel):
    emoji: str
    stream_type: str
    user_session: str | None = None


class ReactionResponse(CamelModel):
    id: int
    stream_type: str
    emoji: str
    created_at: datetime

    @classmethod
    def from_record(cls, reaction: LiveReaction) -> "ReactionResponse":
        return cls(
            id=reaction.id,
            stream_type=reaction.stream_type,
            emoji=reaction.emoji,
            created_at=reaction.created_at,
        )


# ============================================
# Comments
# ============================================


class CommentCreate(CamelModel):
    message: str
    username: str
    stream_type: str
    user_session: str | None = None


class CommentResponse(CamelModel):
    id: int
    stream_type: str
    username: str
    message: str
    created_at: datetime

    @classmethod
    def from_record(cls, comment: LiveComment) -> "CommentResponse":
        return cls(
            id=comment.id,
            stream_type=comment.stream_type,
            username=comment.username,
            message=comment.message,
            created_at=comment.created_at,
        )


# ============================================
# Song requests
# ============================================


class SongRequestCreate(CamelModel):
    # Older clients post "title" instead of "songTitle"
    song_title: str | None = None
    title: str | None = None
    artist_name: str | None = None
    requester_name: str
    stream_type: str
    user_session: str | None = None


class SongRequestStatusUpdate(CamelModel):
    status: str
    priority: int | None = Field(default=None, ge=-1000, le=1000)


class SongRequestResponse(CamelModel):
    id: int
    stream_type: str
    song_title: str
    artist_name: str | None = None
    requester_name: str
    status: str
    priority: int
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, request: SongRequest) -> "SongRequestResponse":
        return cls(
            id=request.id,
            stream_type=request.stream_type,
            song_title=request.song_title,
            artist_name=request.artist_name,
            requester_name=request.requester_name,
            status=request.status,
            priority=request.priority,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


# ============================================
# Snapshot
# ============================================


class EngagementSnapshotResponse(CamelModel):
    stream_type: str
    viewer_count: int
    reaction_tally: dict[str, int]
    recent_comments: list[CommentResponse]
    recent_song_requests: list[SongRequestResponse]

    @classmethod
    def from_snapshot(cls, snapshot: EngagementSnapshot) -> "EngagementSnapshotResponse":
        return cls(
            stream_type=snapshot.stream_type,
            viewer_count=snapshot.viewer_count,
            reaction_tally=snapshot.reaction_tally,
            recent_comments=[CommentResponse.from_record(c) for c in snapshot.recent_comments],
            recent_song_requests=[
                SongRequestResponse.from_record(r) for r in snapshot.recent_song_requests
            ],
        )


# ============================================
# Operator metrics
# ============================================


class TopReaction(CamelModel):
    emoji: str
    count: int


class EngagementMetricsResponse(CamelModel):
    total_viewers: int
    total_listeners: int
    active_users: int
    total_reactions: int
    total_comments: int
    total_song_requests: int
    top_reactions: list[TopReaction]
    engagement_rate: float

    @classmethod
    def from_metrics(cls, metrics: EngagementMetrics) -> "EngagementMetricsResponse":
        return cls(
            total_viewers=metrics.total_viewers,
            total_listeners=metrics.total_listeners,
            active_users=metrics.active_users,
            total_reactions=metrics.total_reactions,
            total_comments=metrics.total_comments,
            total_song_requests=metrics.total_song_requests,
            top_reactions=[TopReaction(emoji=e, count=c) for e, c in metrics.top_reactions],
            engagement_rate=metrics.engagement_rate,
        )


class RealtimeActivityResponse(CamelModel):
    active_users: int
    recent_comments: list[CommentResponse]
    recent_reactions: list[ReactionResponse]
    recent_song_requests: list[SongRequestResponse]
    timestamp: datetime

    @classmethod
    def from_activity(cls, activity: RealtimeActivity) -> "RealtimeActivityResponse":
        return cls(
            active_users=activity.active_users,
            recent_comments=[CommentResponse.from_record(c) for c in activity.recent_comments],
            recent_reactions=[ReactionResponse.from_record(r) for r in activity.recent_reactions],
            recent_song_requests=[
                SongRequestResponse.from_record(r) for r in activity.recent_song_requests
            ],
            timestamp=activity.generated_at,
        )
