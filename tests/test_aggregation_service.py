"""
Tests for dashboard and chart rollups
"""
import uuid

import pytest

from app.core.exceptions import NotFoundException
from app.models.search import Platform, SearchRequest
from app.services.aggregation_service import aggregation_service, chart_label
from app.services.search_orchestrator import search_orchestrator

from conftest import create_user, make_post


class TestChartLabel:

    def test_long_caption_is_truncated(self):
        caption = "x" * 45
        assert chart_label(caption, "Page", 1) == "x" * 30 + "..."

    def test_short_caption_is_kept_whole(self):
        assert chart_label("short caption", "Page", 1) == "short caption"

    def test_falls_back_to_page_name_then_rank(self):
        assert chart_label(None, "ExamplePage", 2) == "ExamplePage"
        assert chart_label("", None, 3) == "Post 3"


class TestChartData:

    async def test_top_five_series_with_totals(self, db_session, fake_source):
        user = await create_user(db_session)
        user_id = user.id
        fake_source.items = [make_post(f"p{i}", likes=i * 10, comments=i, shares=1, videoViews=i * 100) for i in range(1, 8)]

        result = await search_orchestrator.search_sync(
            db_session, user_id, SearchRequest(keyword="ExamplePage", platform=Platform.FACEBOOK)
        )
        chart = await aggregation_service.get_chart_data(db_session, user_id, result.query_id)

        assert chart.posts_count == 5
        assert [item.name for item in chart.chart_data] == ["#1", "#2", "#3", "#4", "#5"]
        assert chart.chart_data[0].likes == 70
        assert chart.chart_data[0].total == 70 + 7 + 1
        assert chart.chart_data[0].label == "Caption for p7"
        assert chart.totals.likes == 70 + 60 + 50 + 40 + 30
        assert chart.totals.views == 700 + 600 + 500 + 400 + 300
        assert chart.totals.engagement == sum(item.total for item in chart.chart_data)

    async def test_chart_for_foreign_query_is_not_found(self, db_session, fake_source):
        owner = await create_user(db_session, external_id="owner")
        other = await create_user(db_session, external_id="other")
        owner_id, other_id = owner.id, other.id
        fake_source.items = [make_post("p1", likes=1)]

        result = await search_orchestrator.search_sync(
            db_session, owner_id, SearchRequest(keyword="ExamplePage", platform=Platform.FACEBOOK)
        )

        with pytest.raises(NotFoundException):
            await aggregation_service.get_chart_data(db_session, other_id, result.query_id)
        with pytest.raises(NotFoundException):
            await aggregation_service.get_chart_data(db_session, owner_id, uuid.uuid4())


class TestDashboardStats:

    async def test_dashboard_rollups_are_user_scoped(self, db_session, fake_source):
        user = await create_user(db_session, external_id="dash_user", search_quota=50)
        other = await create_user(db_session, external_id="someone_else")
        user_id, other_id = user.id, other.id

        fake_source.items = [make_post(f"fb{i}", likes=i) for i in range(1, 9)]
        await search_orchestrator.search_sync(db_session, user_id, SearchRequest(keyword="PageOne", platform=Platform.FACEBOOK))

        fake_source.items = [make_post(f"ig{i}", likes=100 + i) for i in range(1, 5)]
        await search_orchestrator.search_sync(db_session, user_id, SearchRequest(keyword="insta", platform=Platform.INSTAGRAM))

        fake_source.items = [make_post("theirs", likes=10000)]
        await search_orchestrator.search_sync(db_session, other_id, SearchRequest(keyword="Other", platform=Platform.FACEBOOK))

        stats = await aggregation_service.get_dashboard_stats(db_session, user_id)

        assert stats.total_searches == 2
        assert stats.total_posts == 12
        assert len(stats.top_contents) == 10
        assert "theirs" not in [c.external_id for c in stats.top_contents]
        assert stats.top_contents[0].external_id == "ig4"
        assert stats.total_engagement == sum(c.engagement_score for c in stats.top_contents)
        assert [q.keyword for q in stats.recent_queries] == ["insta", "PageOne"]
        assert {p.platform: p.count for p in stats.platform_breakdown} == {
            Platform.FACEBOOK: 1,
            Platform.INSTAGRAM: 1,
        }

    async def test_empty_dashboard(self, db_session):
        user = await create_user(db_session)
        stats = await aggregation_service.get_dashboard_stats(db_session, user.id)

        assert stats.total_searches == 0
        assert stats.total_posts == 0
        assert stats.total_engagement == 0
        assert stats.top_contents == []
        assert stats.platform_breakdown == []
