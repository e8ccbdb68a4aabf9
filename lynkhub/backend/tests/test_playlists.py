"""Tests for playlist management."""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import Conflict, InvalidArgument, NotFound
from app.models.models import PlaylistPrivacy
from app.services.playlists.playlist_service import playlist_service, playlist_to_dict
from conftest import add_user, add_video


class TestPlaylists:

    async def test_duplicate_add_conflicts(self, db):
        owner = await add_user(db)
        video = await add_video(db, owner)
        playlist = await playlist_service.create_playlist(db, owner.id, "Watch later")
        await playlist_service.add_video_to_playlist(db, playlist.id, video.id, owner.id)

        with pytest.raises(Conflict):
            await playlist_service.add_video_to_playlist(db, playlist.id, video.id, owner.id)

        assert playlist_to_dict(playlist)["video_ids"] == [video.id]

    async def test_order_is_insertion_order(self, db):
        owner = await add_user(db)
        first = await add_video(db, owner)
        second = await add_video(db, owner)
        playlist = await playlist_service.create_playlist(db, owner.id, "Mix")

        await playlist_service.add_video_to_playlist(db, playlist.id, second.id, owner.id)
        await playlist_service.add_video_to_playlist(db, playlist.id, first.id, owner.id)

        assert [i.video_id for i in playlist.items] == [second.id, first.id]

    async def test_other_users_playlist_is_not_found(self, db):
        owner = await add_user(db)
        stranger = await add_user(db)
        video = await add_video(db, owner)
        playlist = await playlist_service.create_playlist(db, owner.id, "Mine")

        with pytest.raises(NotFound):
            await playlist_service.add_video_to_playlist(db, playlist.id, video.id, stranger.id)
        with pytest.raises(NotFound):
            await playlist_service.delete_playlist(db, playlist.id, stranger.id)

    async def test_missing_video(self, db):
        owner = await add_user(db)
        playlist = await playlist_service.create_playlist(db, owner.id, "Mine")
        with pytest.raises(NotFound):
            await playlist_service.add_video_to_playlist(db, playlist.id, uuid.uuid4(), owner.id)

    async def test_remove_absent_video_is_noop(self, db):
        owner = await add_user(db)
        video = await add_video(db, owner)
        playlist = await playlist_service.create_playlist(db, owner.id, "Mine")

        result = await playlist_service.remove_video_from_playlist(db, playlist.id, video.id, owner.id)

        assert result.items == []

    async def test_create_validation(self, db):
        owner = await add_user(db)
        with pytest.raises(InvalidArgument):
            await playlist_service.create_playlist(db, owner.id, "   ")
        with pytest.raises(InvalidArgument):
            await playlist_service.create_playlist(db, owner.id, "Secret", privacy="friends")

    async def test_list_hides_private_from_others(self, db):
        owner = await add_user(db)
        stranger = await add_user(db)
        video = await add_video(db, owner)
        public = await playlist_service.create_playlist(db, owner.id, "Public one")
        await playlist_service.create_playlist(db, owner.id, "Private one", privacy="private")
        await playlist_service.add_video_to_playlist(db, public.id, video.id, owner.id)

        mine = await playlist_service.list_user_playlists(db, owner.id, owner.id)
        theirs = await playlist_service.list_user_playlists(db, owner.id, stranger.id)

        assert len(mine) == 2
        assert [p["name"] for p in theirs] == ["Public one"]
        assert theirs[0]["total_videos"] == 1
        assert theirs[0]["privacy"] == "public"

    async def test_update_and_delete(self, db):
        owner = await add_user(db)
        playlist = await playlist_service.create_playlist(db, owner.id, "Old")

        updated = await playlist_service.update_playlist(
            db, playlist.id, owner.id, name="New", privacy="private"
        )
        assert updated.name == "New"
        assert updated.privacy == PlaylistPrivacy.PRIVATE

        assert (await playlist_service.delete_playlist(db, playlist.id, owner.id))["deleted"] is True
        with pytest.raises(NotFound):
            await playlist_service.update_playlist(db, playlist.id, owner.id, name="Gone")
