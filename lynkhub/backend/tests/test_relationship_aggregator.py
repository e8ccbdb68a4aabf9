"""Tests for the viewer-relative read projections."""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.errors import InvalidArgument, NotFound
from app.models.models import (
    LikeTargetKind, Playlist, PlaylistItem, PlaylistPrivacy, View, WatchHistoryEntry,
)
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from conftest import (
    add_comment, add_like, add_subscription, add_user, add_video, add_view, days_ago,
)


async def _view_rows(db, video_id, viewer_id=None) -> int:
    stmt = select(func.count(View.id)).where(View.video_id == video_id)
    if viewer_id is not None:
        stmt = stmt.where(View.viewer_id == viewer_id)
    return await db.scalar(stmt)


class TestVideoDetail:

    async def test_repeat_watch_counts_one_view(self, db):
        """Two detail calls by the same viewer add at most one view."""
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)

        first = await relationship_aggregator.video_detail(db, video.id, viewer.id)
        second = await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert first["views"] == 1
        assert second["views"] - first["views"] <= 1
        assert second["views"] == 1
        assert await _view_rows(db, video.id, viewer.id) == 1

    async def test_distinct_viewers_each_count(self, db):
        owner = await add_user(db)
        video = await add_video(db, owner)
        for _ in range(3):
            viewer = await add_user(db)
            await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert await _view_rows(db, video.id) == 3

    async def test_likes_and_viewer_flags(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        other = await add_user(db)
        video = await add_video(db, owner)
        await add_like(db, viewer, video.id, LikeTargetKind.VIDEO)
        await add_like(db, other, video.id, LikeTargetKind.VIDEO)
        # A comment like with the same target id must not be counted
        await add_like(db, other, video.id, LikeTargetKind.COMMENT)
        await add_subscription(db, viewer, owner)

        detail = await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert detail["likes"] == 2
        assert detail["is_liked"] is True
        assert detail["owner"]["id"] == owner.id
        assert detail["owner"]["subscribers_count"] == 1
        assert detail["owner"]["is_subscribed"] is True

    async def test_not_liked_not_subscribed(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)

        detail = await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert detail["is_liked"] is False
        assert detail["owner"]["is_subscribed"] is False
        assert detail["owner"]["subscribers_count"] == 0

    async def test_adds_to_watch_history_once(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)

        await relationship_aggregator.video_detail(db, video.id, viewer.id)
        await relationship_aggregator.video_detail(db, video.id, viewer.id)

        entries = await db.scalar(
            select(func.count(WatchHistoryEntry.id)).where(WatchHistoryEntry.user_id == viewer.id)
        )
        assert entries == 1

    async def test_missing_video_is_not_found(self, db):
        viewer = await add_user(db)
        with pytest.raises(NotFound):
            await relationship_aggregator.video_detail(db, uuid.uuid4(), viewer.id)


class TestChannelProfile:

    async def test_channel_without_videos(self, db):
        channel = await add_user(db, username="emptychannel")

        profile = await relationship_aggregator.channel_profile(db, "emptychannel", None)

        assert profile["total_videos"] == 0
        assert profile["subscribers_count"] == 0
        assert profile["channel_subscribed_to"] == 0
        assert profile["is_subscribed"] is False
        assert profile["id"] == channel.id

    async def test_counts_and_viewer_subscription(self, db):
        channel = await add_user(db, username="bigchannel")
        fan = await add_user(db)
        other = await add_user(db)
        await add_video(db, channel)
        await add_video(db, channel)
        await add_subscription(db, fan, channel)
        await add_subscription(db, other, channel)
        await add_subscription(db, channel, other)

        profile = await relationship_aggregator.channel_profile(db, "BigChannel", fan.id)

        assert profile["total_videos"] == 2
        assert profile["subscribers_count"] == 2
        assert profile["channel_subscribed_to"] == 1
        assert profile["is_subscribed"] is True

    async def test_unknown_username(self, db):
        with pytest.raises(NotFound):
            await relationship_aggregator.channel_profile(db, "nobody", None)

    async def test_blank_username(self, db):
        with pytest.raises(InvalidArgument):
            await relationship_aggregator.channel_profile(db, "  ", None)

    async def test_channel_videos(self, db):
        channel = await add_user(db, username="vidchannel")
        viewer = await add_user(db)
        video = await add_video(db, channel)
        await add_view(db, video, viewer)

        videos = await relationship_aggregator.channel_videos(db, "vidchannel")

        assert len(videos) == 1
        assert videos[0]["views"] == 1
        assert videos[0]["owner"]["username"] == "vidchannel"


class TestVideoListing:

    async def test_sort_is_required(self, db):
        with pytest.raises(InvalidArgument):
            await relationship_aggregator.list_videos(db, None, "desc", 1, 10)
        with pytest.raises(InvalidArgument):
            await relationship_aggregator.list_videos(db, "createdAt", None, 1, 10)

    async def test_unknown_sort_field(self, db):
        with pytest.raises(InvalidArgument):
            await relationship_aggregator.list_videos(db, "password", "desc", 1, 10)

    async def test_second_page_of_twenty_five(self, db):
        owner = await add_user(db)
        base = days_ago(1)
        videos = []
        for i in range(25):
            videos.append(await add_video(db, owner, title=f"clip {i:02d}", created_at=base + timedelta(minutes=i)))
        newest_first = list(reversed(videos))

        page = await relationship_aggregator.list_videos(db, "createdAt", "desc", page=2, limit=10)

        assert page["total_items"] == 25
        assert page["total_pages"] == 3
        assert page["current_page"] == 2
        assert [item["id"] for item in page["items"]] == [v.id for v in newest_first[10:20]]
        assert page["items"][0]["owner"]["username"] == owner.username

    async def test_unpublished_videos_hidden(self, db):
        owner = await add_user(db)
        await add_video(db, owner, is_published=True)
        await add_video(db, owner, is_published=False)

        page = await relationship_aggregator.list_videos(db, "createdAt", "asc")

        assert page["total_items"] == 1

    async def test_sort_by_views(self, db):
        owner = await add_user(db)
        quiet = await add_video(db, owner)
        popular = await add_video(db, owner)
        for _ in range(2):
            await add_view(db, popular, await add_user(db))

        page = await relationship_aggregator.list_videos(db, "views", "desc")

        assert page["items"][0]["id"] == popular.id
        assert page["items"][0]["views"] == 2
        assert page["items"][1]["id"] == quiet.id


class TestComments:

    async def test_comment_likes_and_flags(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)
        liked = await add_comment(db, video, owner, "first")
        await add_comment(db, video, viewer, "second")
        await add_like(db, viewer, liked.id, LikeTargetKind.COMMENT)

        page = await relationship_aggregator.video_comments(db, video.id, viewer.id, "likes", "desc")

        assert page["total_items"] == 2
        top = page["items"][0]
        assert top["id"] == liked.id
        assert top["likes"] == 1
        assert top["is_liked"] is True
        assert top["owner"]["username"] == owner.username
        assert page["items"][1]["is_liked"] is False

    async def test_no_comments_is_empty_page(self, db):
        owner = await add_user(db)
        video = await add_video(db, owner)

        page = await relationship_aggregator.video_comments(db, video.id, None)

        assert page["items"] == []
        assert page["total_items"] == 0
        assert page["total_pages"] == 0

    async def test_missing_video(self, db):
        with pytest.raises(NotFound):
            await relationship_aggregator.video_comments(db, uuid.uuid4(), None)


class TestUserCollections:

    async def test_liked_videos(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        a = await add_video(db, owner)
        b = await add_video(db, owner)
        await add_video(db, owner)
        await add_like(db, viewer, a.id, LikeTargetKind.VIDEO)
        await add_like(db, viewer, b.id, LikeTargetKind.VIDEO)

        result = await relationship_aggregator.liked_videos(db, viewer.id)

        assert result["total_liked_videos"] == 2
        assert {v["id"] for v in result["liked_videos"]} == {a.id, b.id}

    async def test_subscribed_channels(self, db):
        viewer = await add_user(db)
        c1 = await add_user(db)
        c2 = await add_user(db)
        await add_subscription(db, viewer, c1)
        await add_subscription(db, viewer, c2)

        result = await relationship_aggregator.subscribed_channels(db, viewer.id)

        assert result["subscribed_channels_count"] == 2
        assert {c["id"] for c in result["subscribed_channels"]} == {c1.id, c2.id}

    async def test_channel_subscribers(self, db):
        channel = await add_user(db)
        fan = await add_user(db)
        await add_subscription(db, fan, channel)

        result = await relationship_aggregator.channel_subscribers(db, channel.id)

        assert result["subscribers_count"] == 1
        assert result["subscribers"][0]["subscriber_id"] == fan.id

    async def test_watch_history_order(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        first = await add_video(db, owner)
        second = await add_video(db, owner)

        await relationship_aggregator.video_detail(db, first.id, viewer.id)
        await relationship_aggregator.video_detail(db, second.id, viewer.id)
        await relationship_aggregator.video_detail(db, first.id, viewer.id)

        history = await relationship_aggregator.watch_history(db, viewer.id)

        assert [v["id"] for v in history] == [first.id, second.id]
        assert history[0]["views"] == 1
        assert history[0]["owner"]["id"] == owner.id


class TestPlaylistDetail:

    async def test_private_playlist_hidden_from_others(self, db):
        owner = await add_user(db)
        stranger = await add_user(db)
        video = await add_video(db, owner)
        playlist = Playlist(name="Mine", owner_id=owner.id, privacy=PlaylistPrivacy.PRIVATE)
        db.add(playlist)
        await db.flush()
        db.add(PlaylistItem(playlist_id=playlist.id, video_id=video.id, position=1))
        await db.flush()

        with pytest.raises(NotFound):
            await relationship_aggregator.playlist_detail(db, playlist.id, stranger.id)

        detail = await relationship_aggregator.playlist_detail(db, playlist.id, owner.id)
        assert detail["total_videos"] == 1
        assert detail["videos"][0]["id"] == video.id
        assert detail["owner"]["id"] == owner.id
