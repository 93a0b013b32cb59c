"""
Search Orchestrator - Search query lifecycle
PENDING -> PROCESSING -> COMPLETED/FAILED, shared by background and synchronous searches
"""
import logging
from typing import Any, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func

from app.core.config import settings
from app.core.exceptions import NotFoundException, QuotaExceededException, SearchFailedException, ValidationException
from app.database.connection import get_session
from app.database.unified_models import SearchQuery, Content
from app.models.search import (
    Platform, SearchStatus, SearchRequest, SearchResult, ContentResult,
    SearchQuerySummary, SearchHistory, ContentsPage, Pagination
)
from app.scrapers.apify_content_source import apify_content_source, ContentSourceError
from app.services.content_normalizer import normalize
from app.services.quota_ledger_service import quota_ledger_service
from app.services.result_reconciler import result_reconciler

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Unable to fetch social media data at this time. Please try again later."

# Domain marker and canonical profile URL per platform
PROFILE_URL_TEMPLATES = {
    Platform.FACEBOOK: ("facebook.com", "https://www.facebook.com/{}"),
    Platform.INSTAGRAM: ("instagram.com", "https://www.instagram.com/{}/"),
    Platform.TIKTOK: ("tiktok.com", "https://www.tiktok.com/@{}"),
}

CONTENT_SORT_FIELDS = {
    "engagement_score": Content.engagement_score,
    "likes_count": Content.likes_count,
    "comments_count": Content.comments_count,
    "shares_count": Content.shares_count,
    "views_count": Content.views_count,
    "posted_at": Content.posted_at,
    "created_at": Content.created_at,
}


def resolve_target_urls(keyword: str, platform: Platform) -> List[str]:
    """Keyword carrying the platform's domain is used as-is, anything else becomes a profile URL"""
    keyword = keyword.strip()
    marker, template = PROFILE_URL_TEMPLATES[Platform(platform)]
    if marker in keyword.lower():
        return [keyword]
    return [template.format(keyword.lstrip("@"))]


def public_error_message(error_message: Optional[str]) -> Optional[str]:
    """Raw failure text only in debug mode"""
    if not error_message:
        return None
    return error_message if settings.DEBUG else GENERIC_FAILURE_MESSAGE


class SearchOrchestrator:
    """Drives one search query through its lifecycle"""

    def __init__(self, content_source: Any = None):
        self.content_source = content_source or apify_content_source

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    async def create_search_query(self, db: AsyncSession, user_id: UUID, request: SearchRequest) -> UUID:
        """
        Create a PENDING query after the quota check

        Raises:
            QuotaExceededException: monthly allowance used up; nothing is created
        """
        if not await quota_ledger_service.check_quota(db, user_id):
            logger.info(f"Search refused for user {user_id}: quota exceeded")
            raise QuotaExceededException()

        search_query = SearchQuery(
            user_id=user_id,
            keyword=request.keyword,
            platform=request.platform.value,
            status=SearchStatus.PENDING.value,
        )
        db.add(search_query)
        await db.commit()

        logger.info(f"Created search query {search_query.id} ({request.platform.value}: {request.keyword}) for user {user_id}")
        return search_query.id

    async def _transition(self, db: AsyncSession, query_id: UUID, expected: SearchStatus, **values) -> bool:
        """Move a query forward only from the expected status"""
        result = await db.execute(
            update(SearchQuery)
            .where(SearchQuery.id == query_id, SearchQuery.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute_search(self, db: AsyncSession, query_id: UUID, max_posts: Optional[int] = None) -> SearchResult:
        """
        Run a PENDING query to COMPLETED or FAILED

        Content source and reconciliation failures end in FAILED and are returned,
        not raised; error_message on the result carries the raw failure text.
        """
        max_posts = min(max_posts or settings.DEFAULT_MAX_POSTS, settings.MAX_POSTS_LIMIT)

        result = await db.execute(
            select(SearchQuery.user_id, SearchQuery.keyword, SearchQuery.platform).where(SearchQuery.id == query_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundException()

        platform = Platform(row.platform)

        if not await self._transition(db, query_id, SearchStatus.PENDING, status=SearchStatus.PROCESSING.value):
            logger.warning(f"Search query {query_id} is not PENDING - skipping execution")
            return await self.get_search_results(db, row.user_id, query_id)

        run_id = None
        try:
            target_urls = resolve_target_urls(row.keyword, platform)
            run = await self.content_source.fetch_posts(platform, target_urls, max_posts)
            run_id = run.run_id

            drafts = []
            for item in run.items:
                try:
                    draft = normalize(item, query_id, platform)
                except Exception as e:
                    logger.warning(f"Query {query_id}: skipping record that failed normalization: {e}")
                    continue
                if draft is None:
                    logger.debug(f"Query {query_id}: skipping record without post id or url")
                    continue
                drafts.append(draft)

            contents = await result_reconciler.reconcile(db, query_id, platform, drafts)

        except Exception as e:
            await db.rollback()
            if isinstance(e, ContentSourceError) and e.run_id:
                run_id = e.run_id
            error_message = str(e) or type(e).__name__
            logger.error(f"Search query {query_id} failed: {error_message}")

            await self._transition(
                db, query_id, SearchStatus.PROCESSING,
                status=SearchStatus.FAILED.value,
                error_message=error_message,
                apify_run_id=run_id,
            )
            return SearchResult(
                query_id=query_id,
                status=SearchStatus.FAILED,
                result_count=0,
                contents=[],
                error_message=error_message,
            )

        completed = await self._transition(
            db, query_id, SearchStatus.PROCESSING,
            status=SearchStatus.COMPLETED.value,
            result_count=len(contents),
            apify_run_id=run_id,
        )
        if completed:
            await quota_ledger_service.consume_quota(db, row.user_id)
        else:
            logger.warning(f"Search query {query_id} left PROCESSING before completion - quota not consumed")

        logger.info(f"Search query {query_id} completed with {len(contents)} results")
        return SearchResult(
            query_id=query_id,
            status=SearchStatus.COMPLETED,
            result_count=len(contents),
            contents=contents,
        )

    async def run_in_background(self, query_id: UUID, max_posts: Optional[int] = None) -> None:
        """Fire-and-forget entry point; owns its session and only logs failures"""
        try:
            async with get_session() as db:
                result = await self.execute_search(db, query_id, max_posts)
            logger.info(f"Background search {query_id} finished as {result.status.value}")
        except Exception as e:
            logger.error(f"Background search {query_id} crashed: {str(e)}", exc_info=True)

    async def search_sync(self, db: AsyncSession, user_id: UUID, request: SearchRequest) -> SearchResult:
        """
        Submit and execute in one call

        Raises:
            QuotaExceededException: before any query is created
            SearchFailedException: query ended FAILED; carries the query id
        """
        query_id = await self.create_search_query(db, user_id, request)
        result = await self.execute_search(db, query_id, request.max_posts)

        if result.status == SearchStatus.FAILED:
            raise SearchFailedException(query_id, diagnostic=result.error_message if settings.DEBUG else None)

        return result

    # =========================================================================
    # READ PATH
    # =========================================================================

    async def _get_owned_query(self, db: AsyncSession, user_id: UUID, query_id: UUID) -> SearchQuery:
        result = await db.execute(
            select(SearchQuery).where(SearchQuery.id == query_id, SearchQuery.user_id == user_id)
        )
        search_query = result.scalar_one_or_none()
        if search_query is None:
            raise NotFoundException()
        return search_query

    async def get_search_results(self, db: AsyncSession, user_id: UUID, query_id: UUID) -> SearchResult:
        search_query = await self._get_owned_query(db, user_id, query_id)

        result = await db.execute(
            select(Content)
            .where(Content.search_query_id == query_id)
            .order_by(Content.engagement_score.desc(), Content.created_at.asc())
        )
        contents = [ContentResult.model_validate(c) for c in result.scalars().all()]

        return SearchResult(
            query_id=search_query.id,
            status=SearchStatus(search_query.status),
            result_count=search_query.result_count,
            contents=contents,
            error_message=public_error_message(search_query.error_message),
        )

    async def get_search_history(self, db: AsyncSession, user_id: UUID, limit: int = 20, offset: int = 0) -> SearchHistory:
        limit = max(1, min(limit, 100))
        offset = max(0, offset)

        total = (await db.execute(
            select(func.count(SearchQuery.id)).where(SearchQuery.user_id == user_id)
        )).scalar_one()

        result = await db.execute(
            select(SearchQuery)
            .where(SearchQuery.user_id == user_id)
            .order_by(SearchQuery.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        queries = []
        for search_query in result.scalars().all():
            summary = SearchQuerySummary.model_validate(search_query)
            summary.error_message = public_error_message(search_query.error_message)
            queries.append(summary)

        return SearchHistory(queries=queries, total=total, limit=limit, offset=offset)

    async def get_query_contents(
        self,
        db: AsyncSession,
        user_id: UUID,
        query_id: UUID,
        limit: int = 20,
        offset: int = 0,
        sort_by: str = "engagement_score",
        sort_order: str = "desc"
    ) -> ContentsPage:
        """One page of a query's contents with a whitelisted sort column"""
        if sort_by not in CONTENT_SORT_FIELDS:
            raise ValidationException(f"sort_by must be one of: {', '.join(CONTENT_SORT_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise ValidationException("sort_order must be 'asc' or 'desc'")

        limit = max(1, min(limit, 100))
        offset = max(0, offset)
        search_query = await self._get_owned_query(db, user_id, query_id)

        column = CONTENT_SORT_FIELDS[sort_by]
        ordering = column.desc() if sort_order == "desc" else column.asc()

        total = (await db.execute(
            select(func.count(Content.id)).where(Content.search_query_id == query_id)
        )).scalar_one()

        result = await db.execute(
            select(Content)
            .where(Content.search_query_id == query_id)
            .order_by(ordering, Content.created_at.asc())
            .limit(limit)
            .offset(offset)
        )
        contents = [ContentResult.model_validate(c) for c in result.scalars().all()]

        return ContentsPage(
            query_id=search_query.id,
            keyword=search_query.keyword,
            platform=Platform(search_query.platform),
            status=SearchStatus(search_query.status),
            contents=contents,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(contents) < total,
            ),
        )


search_orchestrator = SearchOrchestrator()
