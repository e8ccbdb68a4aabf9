"""Tests for the watch history tracker."""

from __future__ import annotations

from sqlalchemy import func, select

from app.models.models import View
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.history.watch_history import watch_history_service
from conftest import add_user, add_video


class TestWatchHistory:

    async def test_record_is_set_like(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        a = await add_video(db, owner)
        b = await add_video(db, owner)

        assert await watch_history_service.record_watch(db, a.id, viewer.id) is True
        assert await watch_history_service.record_watch(db, b.id, viewer.id) is True
        assert await watch_history_service.record_watch(db, a.id, viewer.id) is False

        assert await watch_history_service.history_ids(db, viewer.id) == [a.id, b.id]

    async def test_remove_absent_is_noop(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)

        assert await watch_history_service.remove_from_history(db, video.id, viewer.id) is False
        assert await watch_history_service.history_ids(db, viewer.id) == []

    async def test_remove_keeps_view(self, db):
        """Dropping a video from history never deletes its View row."""
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)
        await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert await watch_history_service.remove_from_history(db, video.id, viewer.id) is True
        assert await watch_history_service.remove_from_history(db, video.id, viewer.id) is False

        views = await db.scalar(
            select(func.count(View.id)).where(View.video_id == video.id, View.viewer_id == viewer.id)
        )
        assert views == 1
        assert await watch_history_service.history_ids(db, viewer.id) == []

    async def test_rewatch_after_removal_does_not_add_view(self, db):
        owner = await add_user(db)
        viewer = await add_user(db)
        video = await add_video(db, owner)

        await relationship_aggregator.video_detail(db, video.id, viewer.id)
        await watch_history_service.remove_from_history(db, video.id, viewer.id)
        detail = await relationship_aggregator.video_detail(db, video.id, viewer.id)

        assert detail["views"] == 1
        assert await watch_history_service.history_ids(db, viewer.id) == [video.id]
