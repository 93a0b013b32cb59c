"""
Page Monitor Service - Followed Facebook pages and their newly discovered posts
Manual and scheduled checks store only posts not seen before on the page
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func, case
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import BadRequestException, NotFoundException, PageCheckFailedException, ValidationException
from app.database.unified_models import MonitoredPage, MonitoredPost
from app.models.monitoring import (
    MonitoredPageCreate, MonitoredPageUpdate, MonitoredPageResponse, MonitoredPagesList,
    MonitoredPostResponse, MonitoredPostsPage, MarkReadRequest, MarkReadResponse,
    PageCheckResult, ScheduledCheckSummary
)
from app.models.search import Platform
from app.models.subscription import SubscriptionPlan, get_plan_features
from app.scrapers.apify_content_source import apify_content_source
from app.services.content_normalizer import normalize
from app.services.quota_ledger_service import as_utc
from app.services.search_orchestrator import public_error_message

logger = logging.getLogger(__name__)

FACEBOOK_DOMAIN = "facebook.com"
NEW_POSTS_PREVIEW = 5


def is_due(last_checked_at: Optional[datetime], check_interval: int, now: datetime) -> bool:
    """Never-checked pages are always due"""
    if last_checked_at is None:
        return True
    return now - as_utc(last_checked_at) >= timedelta(minutes=check_interval)


class PageMonitorService:
    """Follows pages per user and records the posts each check discovers"""

    def __init__(self, content_source: Any = None):
        self.content_source = content_source or apify_content_source

    # =========================================================================
    # PAGES
    # =========================================================================

    async def _get_owned_page(self, db: AsyncSession, user_id: UUID, page_id: UUID) -> MonitoredPage:
        result = await db.execute(
            select(MonitoredPage).where(MonitoredPage.id == page_id, MonitoredPage.user_id == user_id)
        )
        page = result.scalar_one_or_none()
        if page is None:
            raise NotFoundException("Monitored page not found or access denied")
        return page

    async def _post_counts(self, db: AsyncSession, page_ids: List[UUID]) -> Dict[UUID, Tuple[int, int]]:
        """(total, unread) per page"""
        if not page_ids:
            return {}

        result = await db.execute(
            select(
                MonitoredPost.page_id,
                func.count(MonitoredPost.id),
                func.coalesce(func.sum(case((MonitoredPost.is_new.is_(True), 1), else_=0)), 0),
            )
            .where(MonitoredPost.page_id.in_(page_ids))
            .group_by(MonitoredPost.page_id)
        )
        return {row[0]: (int(row[1]), int(row[2])) for row in result.all()}

    def _page_response(self, page: MonitoredPage, counts: Tuple[int, int]) -> MonitoredPageResponse:
        response = MonitoredPageResponse.model_validate(page)
        response.total_posts, response.new_posts = counts
        return response

    async def list_pages(self, db: AsyncSession, user_id: UUID, plan: SubscriptionPlan) -> MonitoredPagesList:
        result = await db.execute(
            select(MonitoredPage)
            .where(MonitoredPage.user_id == user_id)
            .order_by(MonitoredPage.created_at.desc())
        )
        pages = result.scalars().all()
        counts = await self._post_counts(db, [page.id for page in pages])

        responses = [self._page_response(page, counts.get(page.id, (0, 0))) for page in pages]
        return MonitoredPagesList(
            pages=responses,
            total_posts=sum(p.total_posts for p in responses),
            new_posts=sum(p.new_posts for p in responses),
            count=len(responses),
            limit=get_plan_features(plan).monitored_pages_limit,
        )

    async def add_page(
        self,
        db: AsyncSession,
        user_id: UUID,
        plan: SubscriptionPlan,
        request: MonitoredPageCreate
    ) -> MonitoredPageResponse:
        """
        Start following a page

        Raises:
            ValidationException: not a Facebook page URL
            BadRequestException: already followed, or the plan's page limit is reached
        """
        page_url = request.page_url.strip()
        if FACEBOOK_DOMAIN not in page_url.lower():
            raise ValidationException("page_url must be a Facebook page URL")

        existing = await db.execute(
            select(MonitoredPage.id).where(MonitoredPage.user_id == user_id, MonitoredPage.page_url == page_url)
        )
        if existing.scalar_one_or_none() is not None:
            raise BadRequestException("You are already monitoring this page")

        plan = SubscriptionPlan(plan)
        limit = get_plan_features(plan).monitored_pages_limit
        page_count = (await db.execute(
            select(func.count(MonitoredPage.id)).where(MonitoredPage.user_id == user_id)
        )).scalar_one()
        if page_count >= limit:
            raise BadRequestException(f"You can monitor up to {limit} pages on the {plan.value} plan")

        page = MonitoredPage(
            user_id=user_id,
            page_url=page_url,
            page_name=(request.page_name or "").strip() or None,
            check_interval=request.check_interval,
            is_active=True,
        )
        db.add(page)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise BadRequestException("You are already monitoring this page")

        logger.info(f"User {user_id} now monitors {page_url}")
        return self._page_response(page, (0, 0))

    async def update_page(
        self,
        db: AsyncSession,
        user_id: UUID,
        page_id: UUID,
        request: MonitoredPageUpdate
    ) -> MonitoredPageResponse:
        page = await self._get_owned_page(db, user_id, page_id)

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if "page_name" in changes:
            changes["page_name"] = changes["page_name"].strip() or None
        for field, value in changes.items():
            setattr(page, field, value)
        await db.commit()

        counts = await self._post_counts(db, [page_id])
        return self._page_response(page, counts.get(page_id, (0, 0)))

    async def delete_page(self, db: AsyncSession, user_id: UUID, page_id: UUID) -> None:
        """Remove a page and every post discovered on it"""
        await self._get_owned_page(db, user_id, page_id)

        await db.execute(delete(MonitoredPost).where(MonitoredPost.page_id == page_id))
        await db.execute(
            delete(MonitoredPage).where(MonitoredPage.id == page_id, MonitoredPage.user_id == user_id)
        )
        await db.commit()
        logger.info(f"User {user_id} stopped monitoring page {page_id}")

    # =========================================================================
    # CHECKS
    # =========================================================================

    async def _check(
        self,
        db: AsyncSession,
        page_id: UUID,
        page_url: str,
        page_name: Optional[str],
        max_posts: int
    ) -> PageCheckResult:
        """Scrape the page and store posts whose external id is not yet recorded for it"""
        run = await self.content_source.fetch_posts(Platform.FACEBOOK, [page_url], max_posts)

        existing = await db.execute(
            select(MonitoredPost.external_id).where(MonitoredPost.page_id == page_id)
        )
        seen = set(existing.scalars().all())

        new_posts: List[MonitoredPostResponse] = []
        scraped_name = None

        for item in run.items:
            try:
                draft = normalize(item, None, Platform.FACEBOOK)
            except Exception as e:
                logger.warning(f"Page {page_id}: skipping record that failed normalization: {e}")
                continue
            if draft is None:
                continue

            scraped_name = scraped_name or draft.page_name
            if draft.external_id in seen:
                continue
            seen.add(draft.external_id)

            try:
                post = MonitoredPost(
                    page_id=page_id,
                    external_id=draft.external_id,
                    url=draft.url,
                    caption=draft.caption,
                    image_url=draft.image_url,
                    video_url=draft.video_url,
                    author_name=draft.page_name or page_name,
                    posted_at=draft.posted_at,
                    likes_count=draft.likes_count,
                    comments_count=draft.comments_count,
                    shares_count=draft.shares_count,
                    views_count=draft.views_count,
                    engagement_score=draft.engagement_score,
                    raw_data=draft.raw_data,
                    is_new=True,
                    discovered_at=datetime.now(timezone.utc),
                )
                db.add(post)
                await db.commit()
                new_posts.append(MonitoredPostResponse.model_validate(post))
            except Exception as e:
                await db.rollback()
                logger.error(f"Failed to store post {draft.external_id} for page {page_id}: {str(e)}")

        values = {"last_checked_at": datetime.now(timezone.utc)}
        if not page_name and scraped_name:
            values["page_name"] = page_name = scraped_name
        await db.execute(
            update(MonitoredPage)
            .where(MonitoredPage.id == page_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        for post in new_posts:
            post.page_url = page_url
            post.page_name = page_name

        logger.info(f"Page {page_id}: {len(new_posts)} new of {len(run.items)} scraped")
        preview = sorted(new_posts, key=lambda p: p.engagement_score, reverse=True)[:NEW_POSTS_PREVIEW]
        return PageCheckResult(
            page_id=page_id,
            page_url=page_url,
            total_scraped=len(run.items),
            new_posts_count=len(new_posts),
            new_posts=preview,
        )

    async def check_page(self, db: AsyncSession, user_id: UUID, page_id: UUID) -> PageCheckResult:
        """
        Manual check of one owned page; does not consume search quota

        Raises:
            NotFoundException: page missing or not the caller's
            PageCheckFailedException: content source failure
        """
        page = await self._get_owned_page(db, user_id, page_id)
        page_url, page_name = page.page_url, page.page_name

        try:
            return await self._check(db, page_id, page_url, page_name, settings.MONITOR_CHECK_MAX_POSTS)
        except Exception as e:
            await db.rollback()
            error_message = str(e) or type(e).__name__
            logger.error(f"Check of page {page_id} failed: {error_message}")
            raise PageCheckFailedException(page_id, diagnostic=error_message if settings.DEBUG else None)

    async def check_due_pages(self, db: AsyncSession) -> ScheduledCheckSummary:
        """Check active pages whose interval has elapsed, least recently checked first"""
        now = datetime.now(timezone.utc)
        result = await db.execute(
            select(MonitoredPage.id, MonitoredPage.page_url, MonitoredPage.page_name,
                   MonitoredPage.last_checked_at, MonitoredPage.check_interval)
            .where(MonitoredPage.is_active.is_(True))
            .order_by(MonitoredPage.last_checked_at.is_not(None), MonitoredPage.last_checked_at.asc())
        )
        due = [row for row in result.all() if is_due(row.last_checked_at, row.check_interval, now)]
        due = due[:settings.MONITOR_SCHEDULED_BATCH_SIZE]
        logger.info(f"Scheduled check: {len(due)} page(s) due")

        results = []
        for row in due:
            try:
                results.append(
                    await self._check(db, row.id, row.page_url, row.page_name, settings.MONITOR_SCHEDULED_MAX_POSTS)
                )
            except Exception as e:
                await db.rollback()
                error_message = str(e) or type(e).__name__
                logger.error(f"Scheduled check of page {row.id} failed: {error_message}")
                results.append(PageCheckResult(
                    page_id=row.id,
                    page_url=row.page_url,
                    error_message=public_error_message(error_message),
                ))

        return ScheduledCheckSummary(
            pages_checked=len(results),
            total_new_posts=sum(r.new_posts_count for r in results),
            results=results,
        )

    # =========================================================================
    # POSTS
    # =========================================================================

    async def list_posts(
        self,
        db: AsyncSession,
        user_id: UUID,
        page_id: Optional[UUID] = None,
        only_new: bool = False,
        limit: int = 50,
        offset: int = 0
    ) -> MonitoredPostsPage:
        """Discovered posts across the user's pages (or one page), unread first"""
        limit = max(1, min(limit, 100))
        offset = max(0, offset)

        if page_id is not None:
            await self._get_owned_page(db, user_id, page_id)
            scope = MonitoredPost.page_id == page_id
        else:
            scope = MonitoredPost.page_id.in_(
                select(MonitoredPage.id).where(MonitoredPage.user_id == user_id)
            )

        filters = [scope]
        if only_new:
            filters.append(MonitoredPost.is_new.is_(True))

        total = (await db.execute(select(func.count(MonitoredPost.id)).where(*filters))).scalar_one()
        new_count = (await db.execute(
            select(func.count(MonitoredPost.id)).where(scope, MonitoredPost.is_new.is_(True))
        )).scalar_one()

        result = await db.execute(
            select(MonitoredPost, MonitoredPage.page_url, MonitoredPage.page_name)
            .join(MonitoredPage, MonitoredPost.page_id == MonitoredPage.id)
            .where(*filters)
            .order_by(
                MonitoredPost.is_new.desc(),
                MonitoredPost.discovered_at.desc(),
                MonitoredPost.engagement_score.desc(),
            )
            .limit(limit)
            .offset(offset)
        )
        posts = []
        for post, page_url, page_name in result.all():
            response = MonitoredPostResponse.model_validate(post)
            response.page_url = page_url
            response.page_name = page_name
            posts.append(response)

        return MonitoredPostsPage(
            posts=posts,
            total=total,
            new_count=new_count,
            limit=limit,
            offset=offset,
            has_more=offset + len(posts) < total,
        )

    async def mark_read(self, db: AsyncSession, user_id: UUID, request: MarkReadRequest) -> MarkReadResponse:
        """Clear the unread flag on the caller's posts only"""
        owned_pages = select(MonitoredPage.id).where(MonitoredPage.user_id == user_id)

        if request.mark_all:
            if request.page_id is not None:
                await self._get_owned_page(db, user_id, request.page_id)
                scope = MonitoredPost.page_id == request.page_id
            else:
                scope = MonitoredPost.page_id.in_(owned_pages)
            statement = update(MonitoredPost).where(scope, MonitoredPost.is_new.is_(True))
        else:
            if not request.post_ids:
                raise BadRequestException("post_ids is required unless mark_all is set")
            statement = update(MonitoredPost).where(
                MonitoredPost.id.in_(request.post_ids),
                MonitoredPost.page_id.in_(owned_pages),
                MonitoredPost.is_new.is_(True),
            )

        result = await db.execute(
            statement.values(is_new=False).execution_options(synchronize_session=False)
        )
        await db.commit()

        logger.info(f"Marked {result.rowcount} monitored post(s) read for user {user_id}")
        return MarkReadResponse(updated_count=result.rowcount)


page_monitor_service = PageMonitorService()
