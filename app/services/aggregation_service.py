"""
Aggregation Service - Dashboard and chart rollups
Read-only, always scoped to the requesting user through SearchQuery ownership
"""
import logging
from typing import List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.exceptions import NotFoundException
from app.database.unified_models import SearchQuery, Content
from app.models.search import (
    ContentResult, SearchQuerySummary, DashboardStats, PlatformCount,
    ChartData, ChartDataItem, ChartTotals, Platform
)

logger = logging.getLogger(__name__)

TOP_CONTENTS_LIMIT = 10
RECENT_QUERIES_LIMIT = 5
CHART_SERIES_LIMIT = 5
LABEL_MAX_LENGTH = 30


def chart_label(caption: Optional[str], page_name: Optional[str], rank: int) -> str:
    """Caption cut to 30 characters, else page name, else 'Post N'"""
    if caption:
        if len(caption) > LABEL_MAX_LENGTH:
            return caption[:LABEL_MAX_LENGTH] + "..."
        return caption
    if page_name:
        return page_name
    return f"Post {rank}"


class AggregationService:

    async def get_dashboard_stats(self, db: AsyncSession, user_id: UUID) -> DashboardStats:
        """Totals, platform split, recent queries and the top posts across all of a user's searches"""
        total_searches = (await db.execute(
            select(func.count(SearchQuery.id)).where(SearchQuery.user_id == user_id)
        )).scalar_one()

        total_posts = (await db.execute(
            select(func.count(Content.id))
            .join(SearchQuery, Content.search_query_id == SearchQuery.id)
            .where(SearchQuery.user_id == user_id)
        )).scalar_one()

        top_result = await db.execute(
            select(Content)
            .join(SearchQuery, Content.search_query_id == SearchQuery.id)
            .where(SearchQuery.user_id == user_id)
            .order_by(Content.engagement_score.desc(), Content.created_at.asc())
            .limit(TOP_CONTENTS_LIMIT)
        )
        top_contents = [ContentResult.model_validate(c) for c in top_result.scalars().all()]

        recent_result = await db.execute(
            select(SearchQuery)
            .where(SearchQuery.user_id == user_id)
            .order_by(SearchQuery.created_at.desc())
            .limit(RECENT_QUERIES_LIMIT)
        )
        recent_queries = [SearchQuerySummary.model_validate(q) for q in recent_result.scalars().all()]

        platform_result = await db.execute(
            select(SearchQuery.platform, func.count(SearchQuery.id))
            .where(SearchQuery.user_id == user_id)
            .group_by(SearchQuery.platform)
            .order_by(SearchQuery.platform)
        )
        platform_breakdown = [
            PlatformCount(platform=Platform(platform), count=count)
            for platform, count in platform_result.all()
        ]

        return DashboardStats(
            total_searches=total_searches,
            total_posts=total_posts,
            total_engagement=sum(c.engagement_score for c in top_contents),
            platform_breakdown=platform_breakdown,
            recent_queries=recent_queries,
            top_contents=top_contents,
        )

    async def get_chart_data(self, db: AsyncSession, user_id: UUID, query_id: UUID) -> ChartData:
        """Top 5 posts of one query as chart series plus column totals"""
        owned = (await db.execute(
            select(SearchQuery.id).where(SearchQuery.id == query_id, SearchQuery.user_id == user_id)
        )).scalar_one_or_none()
        if owned is None:
            raise NotFoundException()

        result = await db.execute(
            select(Content)
            .where(Content.search_query_id == query_id)
            .order_by(Content.engagement_score.desc(), Content.created_at.asc())
            .limit(CHART_SERIES_LIMIT)
        )
        contents: List[Content] = list(result.scalars().all())

        chart_data = []
        totals = ChartTotals()
        for rank, content in enumerate(contents, start=1):
            chart_data.append(ChartDataItem(
                name=f"#{rank}",
                label=chart_label(content.caption, content.page_name, rank),
                likes=content.likes_count,
                comments=content.comments_count,
                shares=content.shares_count,
                views=content.views_count,
                total=content.engagement_score,
                reactions=content.reactions,
            ))
            totals.likes += content.likes_count
            totals.comments += content.comments_count
            totals.shares += content.shares_count
            totals.views += content.views_count
            totals.engagement += content.engagement_score

        return ChartData(chart_data=chart_data, totals=totals, posts_count=len(contents))


aggregation_service = AggregationService()
