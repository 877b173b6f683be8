"""
tests.test_engagement_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

EngagementService writes (validation, verbatim storage, status
transitions) read back through AggregationService.
"""
from __future__ import annotations

import pytest

from onair.api.services import AggregationService, EngagementService
from onair.shared.cache import AsyncTTLCache
from onair.shared.errors import NotFound, ValidationError


@pytest.fixture()
def engagement(storage, clock) -> EngagementService:
    return EngagementService(storage, clock=clock)


@pytest.fixture()
def aggregation(storage, clock) -> AggregationService:
    return AggregationService(storage, clock=clock)


# ── Reactions ─────────────────────────────────────────────────────────


class TestReactions:
    @pytest.mark.asyncio
    async def test_two_hearts_tally(self, engagement, aggregation) -> None:
        """Scenario C: two ❤️ on tv inside the window tally to 2."""
        await engagement.submit_reaction("tv", "session-aaaa", "❤️")
        await engagement.submit_reaction("tv", "session-bbbb", "❤️")

        assert await aggregation.get_reaction_tally("tv", 60) == {"❤️": 2}
        assert await aggregation.get_reaction_tally("radio", 60) == {}

    @pytest.mark.asyncio
    async def test_tally_only_counts_window(self, engagement, aggregation, clock) -> None:
        await engagement.submit_reaction("tv", "session-aaaa", "🔥")
        clock.advance(61)
        await engagement.submit_reaction("tv", "session-aaaa", "👏")

        assert await aggregation.get_reaction_tally("tv", 60) == {"👏": 1}
        assert await aggregation.get_reaction_tally("tv", 120) == {"🔥": 1, "👏": 1}

    @pytest.mark.asyncio
    async def test_tally_defaults_to_configured_window(self, storage, engagement, clock) -> None:
        aggregation = AggregationService(storage, clock=clock, reaction_window=30)
        await engagement.submit_reaction("radio", "session-aaaa", "🎵")
        clock.advance(31)

        assert await aggregation.get_reaction_tally("radio") == {}

    @pytest.mark.asyncio
    async def test_emoji_must_belong_to_stream(self, engagement) -> None:
        with pytest.raises(ValidationError):
            await engagement.submit_reaction("radio", "session-aaaa", "❤️")
        with pytest.raises(ValidationError):
            await engagement.submit_reaction("tv", "session-aaaa", "🎧")

    @pytest.mark.asyncio
    async def test_recent_newest_first(self, engagement, aggregation, clock) -> None:
        first = await engagement.submit_reaction("tv", "session-aaaa", "👍")
        clock.advance(1)
        second = await engagement.submit_reaction("tv", "session-aaaa", "👀")

        recent = await aggregation.get_recent_reactions("tv")
        assert [r.id for r in recent] == [second.id, first.id]


# ── Comments ──────────────────────────────────────────────────────────


class TestComments:
    @pytest.mark.asyncio
    async def test_round_trip_verbatim(self, engagement, aggregation) -> None:
        """Text is stored exactly as submitted, including surrounding whitespace."""
        message = "  hello from the studio audience!  <b>bold?</b> 🎉"
        await engagement.submit_comment("radio", "session-aaaa", "Listener", message)

        comments = await aggregation.get_recent_comments("radio")
        assert len(comments) == 1
        assert comments[0].message == message
        assert comments[0].username == "Listener"
        assert comments[0].session_token == "session-aaaa"

    @pytest.mark.asyncio
    async def test_same_timestamp_ties_by_id(self, engagement, aggregation) -> None:
        a = await engagement.submit_comment("tv", "session-aaaa", "A", "first")
        b = await engagement.submit_comment("tv", "session-bbbb", "B", "second")

        comments = await aggregation.get_recent_comments("tv")
        assert [c.id for c in comments] == [a.id, b.id]

    @pytest.mark.asyncio
    async def test_limit(self, engagement, aggregation, clock) -> None:
        for i in range(5):
            await engagement.submit_comment("tv", "session-aaaa", "A", f"msg {i}")
            clock.advance(1)

        comments = await aggregation.get_recent_comments("tv", limit=2)
        assert [c.message for c in comments] == ["msg 4", "msg 3"]

    @pytest.mark.parametrize(
        ("username", "message"),
        [
            ("", "hi"),
            ("   ", "hi"),
            ("Listener", ""),
            ("Listener", "\n\t "),
            ("x" * 21, "hi"),
            ("Listener", "m" * 501),
        ],
    )
    @pytest.mark.asyncio
    async def test_rejects_bad_text(self, engagement, username, message) -> None:
        with pytest.raises(ValidationError):
            await engagement.submit_comment("tv", "session-aaaa", username, message)

    @pytest.mark.asyncio
    async def test_accepts_max_lengths(self, engagement) -> None:
        comment = await engagement.submit_comment("tv", "session-aaaa", "x" * 20, "m" * 500)
        assert len(comment.message) == 500

    @pytest.mark.asyncio
    async def test_invalidates_cached_comments(self, storage, clock) -> None:
        cache = AsyncTTLCache(ttl=60)
        engagement = EngagementService(storage, cache=cache, clock=clock)
        aggregation = AggregationService(storage, cache=cache, clock=clock)

        assert await aggregation.get_recent_comments("tv") == []
        await engagement.submit_comment("tv", "session-aaaa", "A", "now visible")

        comments = await aggregation.get_recent_comments("tv")
        assert [c.message for c in comments] == ["now visible"]


# ── Song requests ─────────────────────────────────────────────────────


class TestSongRequests:
    @pytest.mark.asyncio
    async def test_new_request_is_pending(self, engagement, aggregation) -> None:
        """Scenario D: one submission lists as a single pending entry with priority 0."""
        await engagement.submit_song_request("radio", "session-aaaa", "X", "R", artist_name="Y")

        requests = await aggregation.get_song_requests("radio")
        assert len(requests) == 1
        request = requests[0]
        assert (request.song_title, request.artist_name, request.requester_name) == ("X", "Y", "R")
        assert request.status == "pending"
        assert request.priority == 0

    @pytest.mark.asyncio
    async def test_blank_artist_stored_as_none(self, engagement) -> None:
        request = await engagement.submit_song_request("radio", "session-aaaa", "X", "R", artist_name="  ")
        assert request.artist_name is None

    @pytest.mark.asyncio
    async def test_rejects_missing_title(self, engagement) -> None:
        with pytest.raises(ValidationError):
            await engagement.submit_song_request("radio", "session-aaaa", "", "R")
        with pytest.raises(ValidationError):
            await engagement.submit_song_request("radio", "session-aaaa", "X", "r" * 51)

    @pytest.mark.asyncio
    async def test_status_transition_and_priority(self, storage, engagement, clock) -> None:
        request = await engagement.submit_song_request("radio", "session-aaaa", "X", "R")
        updated_at = clock.advance(10)

        updated = await engagement.update_song_request_status(request.id, "queued", priority=5)

        assert updated.status == "queued"
        assert updated.priority == 5
        assert updated.updated_at == updated_at
        assert updated.song_title == "X"
        assert await storage.song_requests.get(request.id) == updated

        played = await engagement.update_song_request_status(request.id, "played")
        assert played.priority == 5

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, engagement) -> None:
        with pytest.raises(NotFound):
            await engagement.update_song_request_status(999, "queued")

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_status(self, engagement) -> None:
        request = await engagement.submit_song_request("radio", "session-aaaa", "X", "R")
        with pytest.raises(ValidationError):
            await engagement.update_song_request_status(request.id, "skipped")

    @pytest.mark.asyncio
    async def test_queue_order(self, engagement, aggregation, clock) -> None:
        old = await engagement.submit_song_request("radio", "session-aaaa", "Old", "R")
        clock.advance(1)
        new = await engagement.submit_song_request("radio", "session-aaaa", "New", "R")
        clock.advance(1)
        boosted = await engagement.submit_song_request("radio", "session-aaaa", "Boosted", "R")
        clock.advance(1)
        done = await engagement.submit_song_request("radio", "session-aaaa", "Done", "R")
        await engagement.update_song_request_status(boosted.id, "queued", priority=3)
        await engagement.update_song_request_status(done.id, "played")

        queue = await aggregation.get_song_request_queue("radio")
        assert [r.id for r in queue] == [boosted.id, old.id, new.id]

    @pytest.mark.asyncio
    async def test_list_filters(self, engagement, aggregation) -> None:
        await engagement.submit_song_request("radio", "session-aaaa", "A", "R")
        tv = await engagement.submit_song_request("tv", "session-aaaa", "B", "R")
        await engagement.update_song_request_status(tv.id, "rejected")

        assert len(await aggregation.get_song_requests()) == 2
        assert [r.song_title for r in await aggregation.get_song_requests("tv")] == ["B"]
        assert [r.song_title for r in await aggregation.get_song_requests(status="pending")] == ["A"]
