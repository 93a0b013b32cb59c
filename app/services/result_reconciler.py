"""
Result Reconciler - Idempotent content upsert and ranking
Merges normalized drafts into stored content for one search query
"""
import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.database.unified_models import Content
from app.models.search import ContentResult, Platform
from app.services.content_normalizer import ContentDraft

logger = logging.getLogger(__name__)

# Counters refreshed when a post is ingested again
MUTABLE_FIELDS = (
    "likes_count",
    "comments_count",
    "shares_count",
    "views_count",
    "engagement_score",
    "reactions",
    "raw_data",
)


class ResultReconciler:
    """Upserts drafts on (search_query_id, external_id) and ranks what was accepted"""

    async def _upsert(self, db: AsyncSession, search_query_id: UUID, platform: Platform, draft: ContentDraft) -> ContentResult:
        result = await db.execute(
            select(Content).where(
                Content.search_query_id == search_query_id,
                Content.external_id == draft.external_id
            )
        )
        content: Optional[Content] = result.scalar_one_or_none()

        if content is not None:
            for field in MUTABLE_FIELDS:
                setattr(content, field, getattr(draft, field))
        else:
            content = Content(
                search_query_id=search_query_id,
                platform=Platform(platform).value,
                **draft.model_dump(exclude={"search_query_id", "platform"})
            )
            db.add(content)

        await db.commit()
        return ContentResult.model_validate(content)

    async def reconcile(
        self,
        db: AsyncSession,
        search_query_id: UUID,
        platform: Platform,
        drafts: Iterable[ContentDraft]
    ) -> List[ContentResult]:
        """
        Store each draft and return the accepted ones ranked by engagement score

        Args:
            db: Database session
            search_query_id: Query that owns the content
            platform: Platform the drafts came from
            drafts: Normalized drafts in arrival order

        Returns:
            Accepted content sorted by engagement_score descending; ties keep arrival order
        """
        # keyed by content id so a post repeated within one batch is counted once
        accepted: Dict[UUID, ContentResult] = {}
        failed = 0

        for draft in drafts:
            try:
                stored = await self._upsert(db, search_query_id, platform, draft)
                accepted[stored.id] = stored
            except Exception as e:
                await db.rollback()
                failed += 1
                logger.error(f"Failed to store content {draft.external_id} for query {search_query_id}: {str(e)}")

        if failed:
            logger.warning(f"Query {search_query_id}: {failed} item(s) skipped, {len(accepted)} stored")

        return sorted(accepted.values(), key=lambda item: item.engagement_score, reverse=True)


result_reconciler = ResultReconciler()
