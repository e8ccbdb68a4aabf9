"""Tests for short-form posts."""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import InvalidArgument, NotFound
from app.services.engagement.toggle_service import engagement_toggle_service
from app.services.posts.post_service import extract_hashtags, extract_mentions, post_service
from conftest import add_user


class TestExtraction:

    def test_hashtags(self):
        assert extract_hashtags("Loving #Python and #python, not a#tag") == ["python"]

    def test_mentions(self):
        assert extract_mentions("hi @Alice and @bob. mail me at x@y.com") == ["alice", "bob"]


class TestPosts:

    async def test_create_resolves_mentions(self, db):
        author = await add_user(db)
        friend = await add_user(db, username="friend")

        post = await post_service.create_post(db, author.id, "Hey @friend and @ghost #launch")

        assert post.hashtags == ["launch"]
        assert post.mentions == [str(friend.id)]

    async def test_length_rules(self, db):
        author = await add_user(db)
        with pytest.raises(InvalidArgument):
            await post_service.create_post(db, author.id, "   ")
        with pytest.raises(InvalidArgument):
            await post_service.create_post(db, author.id, "x" * 281)

    async def test_reply_needs_parent(self, db):
        author = await add_user(db)
        with pytest.raises(NotFound):
            await post_service.create_post(db, author.id, "reply", parent_id=uuid.uuid4())

    async def test_thread_with_likes(self, db):
        author = await add_user(db)
        fan = await add_user(db)
        root = await post_service.create_post(db, author.id, "root post")
        reply = await post_service.create_post(db, fan.id, "a reply", parent_id=root.id)
        await engagement_toggle_service.toggle_like(db, fan.id, "post", root.id)

        thread = await post_service.get_post_thread(db, root.id, fan.id)

        assert thread["likes"] == 1
        assert thread["is_liked"] is True
        assert thread["author"]["id"] == author.id
        assert thread["replies_count"] == 1
        assert thread["replies"][0]["id"] == reply.id
        assert thread["replies"][0]["is_reply"] is True

    async def test_feed_excludes_replies(self, db):
        author = await add_user(db)
        root = await post_service.create_post(db, author.id, "root")
        await post_service.create_post(db, author.id, "reply", parent_id=root.id)

        feed = await post_service.list_feed(db, None)

        assert [p["id"] for p in feed["items"]] == [root.id]

    async def test_delete_detaches_replies(self, db):
        author = await add_user(db)
        fan = await add_user(db)
        root = await post_service.create_post(db, author.id, "root")
        reply = await post_service.create_post(db, fan.id, "reply", parent_id=root.id)
        await engagement_toggle_service.toggle_like(db, fan.id, "post", root.id)

        await post_service.delete_post(db, root.id, author.id)

        with pytest.raises(NotFound):
            await post_service.get_post_thread(db, root.id, None)
        orphan = await post_service.get_post_thread(db, reply.id, None)
        assert orphan["parent_id"] is None
        assert await engagement_toggle_service.relation_count(db, "post", fan.id, root.id) == 0

    async def test_user_posts(self, db):
        author = await add_user(db, username="poster")
        await post_service.create_post(db, author.id, "one")
        await post_service.create_post(db, author.id, "two")

        posts = await post_service.list_user_posts(db, "poster", None)

        assert len(posts) == 2
        with pytest.raises(NotFound):
            await post_service.list_user_posts(db, "nobody", None)
