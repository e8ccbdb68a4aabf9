"""Tests for the channel dashboard builder."""

from __future__ import annotations

import uuid

import pytest

from app.core.errors import NotFound
from app.models.models import AgeBracket, Gender, LikeTargetKind
from app.services.aggregation.query_builders import engagement_rate
import app.services.dashboard.dashboard_service as dashboard_module
from app.services.dashboard.dashboard_service import dashboard_service
from conftest import (
    add_comment, add_like, add_subscription, add_user, add_video, add_view, days_ago,
)


class TestEngagementRate:

    def test_zero_views_is_zero(self):
        assert engagement_rate(3, 2, 0) == 0.0

    def test_formula(self):
        assert engagement_rate(3, 2, 10) == 50.0
        assert engagement_rate(1, 0, 3) == 33.33


class TestBuildDashboard:

    async def test_zero_view_channel_with_engagement(self, db):
        """Likes and comments on never-viewed videos give a rate of exactly 0."""
        owner = await add_user(db)
        fan = await add_user(db)
        video = await add_video(db, owner)
        await add_like(db, fan, video.id, LikeTargetKind.VIDEO)
        await add_comment(db, video, fan)

        report = await dashboard_service.build_dashboard(db, owner.id)

        overview = report["overview"]
        assert overview["total_views"] == 0
        assert overview["total_likes"] == 1
        assert overview["total_comments"] == 1
        assert overview["engagement_rate"] == 0.0
        assert report["top_videos"][0]["engagement_rate"] == 0.0

    async def test_empty_channel(self, db):
        owner = await add_user(db)

        report = await dashboard_service.build_dashboard(db, owner.id)

        assert report["overview"] == {
            "total_videos": 0,
            "total_views": 0,
            "total_likes": 0,
            "total_comments": 0,
            "total_subscribers": 0,
            "engagement_rate": 0.0,
            "average_video_length": 0.0,
        }
        assert report["top_videos"] == []
        assert all(series == [] for series in report["trends"].values())

    async def test_overview_and_leaderboards(self, db):
        owner = await add_user(db)
        other_channel = await add_user(db)
        fans = [await add_user(db) for _ in range(3)]
        hit = await add_video(db, owner, duration=100.0)
        flop = await add_video(db, owner, duration=50.0)
        foreign = await add_video(db, other_channel)

        for fan in fans:
            await add_view(db, hit, fan)
            await add_subscription(db, fan, owner)
        await add_view(db, flop, fans[0])
        await add_view(db, foreign, fans[0])
        await add_like(db, fans[0], hit.id, LikeTargetKind.VIDEO)
        await add_comment(db, flop, fans[1])
        await add_comment(db, flop, fans[2])

        report = await dashboard_service.build_dashboard(db, owner.id)

        overview = report["overview"]
        assert overview["total_videos"] == 2
        assert overview["total_views"] == 4
        assert overview["total_likes"] == 1
        assert overview["total_comments"] == 2
        assert overview["total_subscribers"] == 3
        assert overview["engagement_rate"] == 75.0
        assert overview["average_video_length"] == 75.0

        assert [v["id"] for v in report["top_videos"]] == [hit.id, flop.id]
        assert report["leaderboards"]["most_liked"][0]["id"] == hit.id
        assert report["leaderboards"]["most_commented"][0]["id"] == flop.id
        assert report["leaderboards"]["most_commented"][0]["comments_count"] == 2

    async def test_daily_trends_oldest_first(self, db):
        owner = await add_user(db)
        video = await add_video(db, owner, created_at=days_ago(5))
        for offset in (3, 3, 1):
            await add_view(db, video, await add_user(db), created_at=days_ago(offset))

        report = await dashboard_service.build_dashboard(db, owner.id)

        views = report["trends"]["views"]
        assert [point["count"] for point in views] == [2, 1]
        assert views[0]["date"] == days_ago(3).strftime("%Y-%m-%d")
        assert views[1]["date"] == days_ago(1).strftime("%Y-%m-%d")
        assert report["trends"]["uploads"] == [{"date": days_ago(5).strftime("%Y-%m-%d"), "count": 1}]

    async def test_trend_keeps_most_recent_buckets(self, db, monkeypatch):
        monkeypatch.setattr(dashboard_module.settings, "dashboard_trend_buckets", 2)
        owner = await add_user(db)
        video = await add_video(db, owner)
        for offset in (4, 3, 2):
            await add_view(db, video, await add_user(db), created_at=days_ago(offset))

        report = await dashboard_service.build_dashboard(db, owner.id)

        dates = [p["date"] for p in report["trends"]["views"]]
        assert dates == [days_ago(3).strftime("%Y-%m-%d"), days_ago(2).strftime("%Y-%m-%d")]

    async def test_unknown_owner(self, db):
        with pytest.raises(NotFound):
            await dashboard_service.build_dashboard(db, uuid.uuid4())


class TestVideoListing:

    async def test_search_and_engagement(self, db):
        owner = await add_user(db)
        fan = await add_user(db)
        cats = await add_video(db, owner, title="Funny CATS compilation")
        await add_video(db, owner, title="Dogs at the park")
        await add_view(db, cats, fan)
        await add_like(db, fan, cats.id, LikeTargetKind.VIDEO)

        page = await dashboard_service.build_video_listing(db, owner.id, 1, 10, search="cats")

        assert page["total_items"] == 1
        row = page["items"][0]
        assert row["id"] == cats.id
        assert row["likes_count"] == 1
        assert row["comments_count"] == 0
        assert row["engagement_rate"] == 100.0

    @pytest.mark.parametrize(
        "search,expected",
        [("100%", "100% organic"), ("snake_case", "snake_case tips")],
    )
    async def test_search_treats_wildcards_literally(self, db, search, expected):
        owner = await add_user(db)
        for title in ("100% organic", "1000 subscribers special", "snake_case tips", "snakeXcase tips"):
            await add_video(db, owner, title=title)

        page = await dashboard_service.build_video_listing(db, owner.id, 1, 10, search=search)

        assert [row["title"] for row in page["items"]] == [expected]

    async def test_paging(self, db):
        owner = await add_user(db)
        for _ in range(7):
            await add_video(db, owner)

        page = await dashboard_service.build_video_listing(db, owner.id, 2, 5)

        assert page["total_pages"] == 2
        assert len(page["items"]) == 2


class TestAudienceInsights:

    async def test_breakdowns_and_growth(self, db):
        owner = await add_user(db)
        adults = [
            await add_user(db, age_bracket=AgeBracket.ADULT, gender=Gender.FEMALE, country="IN"),
            await add_user(db, age_bracket=AgeBracket.ADULT, gender=Gender.MALE, country="IN"),
            await add_user(db, age_bracket=AgeBracket.ADULT, gender=Gender.FEMALE),
        ]
        teen = await add_user(db, age_bracket=AgeBracket.TEEN, gender=Gender.MALE, country="US")
        for fan in adults:
            await add_subscription(db, fan, owner, created_at=days_ago(0))
        await add_subscription(db, teen, owner, created_at=days_ago(70))

        insights = await dashboard_service.build_audience_insights(db, owner.id)

        assert insights["total_subscribers"] == 4
        assert insights["age_brackets"][0] == {"age_bracket": "18+", "count": 3, "percentage": 75.0}
        assert {g["gender"]: g["count"] for g in insights["genders"]} == {"female": 2, "male": 2}
        assert insights["locations"][0] == {"country": "IN", "count": 2, "percentage": 50.0}
        growth = insights["growth"]
        assert [g["new_subscribers"] for g in growth] == [1, 3]
        assert growth[-1]["month"] == days_ago(0).strftime("%Y-%m")

    async def test_locations_omitted_without_countries(self, db):
        owner = await add_user(db)
        fan = await add_user(db)
        await add_subscription(db, fan, owner)

        insights = await dashboard_service.build_audience_insights(db, owner.id)

        assert "locations" not in insights
        assert insights["age_brackets"][0]["percentage"] == 100.0

    async def test_no_subscribers(self, db):
        owner = await add_user(db)

        insights = await dashboard_service.build_audience_insights(db, owner.id)

        assert insights["total_subscribers"] == 0
        assert insights["age_brackets"] == []
        assert insights["growth"] == []
