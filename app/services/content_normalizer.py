"""
Content Normalizer - Raw scraper records to canonical content drafts
Accepts the field spellings emitted by the supported actors and computes the engagement score
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, ValidationError

from app.models.search import Platform

logger = logging.getLogger(__name__)


class RawPost(BaseModel):
    """One dataset item as returned by the content source; every field optional"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    post_id: Optional[Any] = Field(None, validation_alias=AliasChoices("postId", "post_id", "shortCode", "id"))
    url: Optional[Any] = Field(None, validation_alias=AliasChoices("url", "postUrl", "link", "webVideoUrl"))
    text: Optional[Any] = Field(None, validation_alias=AliasChoices("text", "message", "caption"))
    timestamp: Optional[Any] = Field(None, validation_alias=AliasChoices("timestamp", "createTime"))
    likes: Optional[Any] = Field(None, validation_alias=AliasChoices("likes", "likesCount", "diggCount"))
    comments: Optional[Any] = Field(None, validation_alias=AliasChoices("comments", "commentsCount", "commentCount"))
    shares: Optional[Any] = Field(None, validation_alias=AliasChoices("shares", "sharesCount", "shareCount"))
    video_views: Optional[Any] = Field(None, validation_alias=AliasChoices("videoViews", "videoViewCount", "playCount"))
    image_url: Optional[Any] = Field(None, validation_alias=AliasChoices("imageUrl", "displayUrl"))
    video_url: Optional[Any] = Field(None, validation_alias=AliasChoices("videoUrl",))
    post_type: Optional[Any] = Field(None, validation_alias=AliasChoices("postType", "type"))
    page_name: Optional[Any] = Field(None, validation_alias=AliasChoices("pageName", "ownerUsername"))
    page_url: Optional[Any] = Field(None, validation_alias=AliasChoices("pageUrl", "inputUrl"))
    reactions: Optional[Any] = None


class ContentDraft(BaseModel):
    """Canonical content ready for reconciliation or monitoring storage"""
    search_query_id: Optional[UUID] = None
    platform: Platform
    external_id: str
    url: str
    caption: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    post_type: Optional[str] = None
    page_name: Optional[str] = None
    page_url: Optional[str] = None
    posted_at: Optional[datetime] = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    views_count: int = 0
    engagement_score: int = 0
    reactions: Optional[Dict[str, Any]] = None
    raw_data: Dict[str, Any] = {}


def calculate_engagement_score(likes: int, comments: int, shares: int) -> int:
    """Unweighted interaction volume; views do not count"""
    return likes + comments + shares


def _to_count(value: Any) -> int:
    """Counter value as int; absent, unparseable or non-finite becomes 0"""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip().replace(",", ""))
        except ValueError:
            return 0
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    return 0


def _to_datetime(value: Any) -> Optional[datetime]:
    """Unix seconds to aware UTC datetime"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize(raw: Dict[str, Any], search_query_id: Optional[UUID], platform: Platform) -> Optional[ContentDraft]:
    """
    Normalize one raw record into a ContentDraft

    Returns None when the record has neither a post identifier nor a URL.
    """
    if not isinstance(raw, dict):
        logger.warning(f"Skipping non-object record of type {type(raw).__name__}")
        return None

    try:
        post = RawPost.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Skipping malformed record: {e.error_count()} invalid fields")
        return None

    post_id = _clean(post.post_id)
    url = _clean(post.url)
    if not post_id and not url:
        return None

    likes = _to_count(post.likes)
    comments = _to_count(post.comments)
    shares = _to_count(post.shares)

    return ContentDraft(
        search_query_id=search_query_id,
        platform=Platform(platform),
        external_id=post_id or url,
        url=url or "",
        caption=str(post.text) if post.text is not None else None,
        image_url=_clean(post.image_url),
        video_url=_clean(post.video_url),
        post_type=_clean(post.post_type),
        page_name=_clean(post.page_name),
        page_url=_clean(post.page_url),
        posted_at=_to_datetime(post.timestamp),
        likes_count=likes,
        comments_count=comments,
        shares_count=shares,
        views_count=_to_count(post.video_views),
        engagement_score=calculate_engagement_score(likes, comments, shares),
        reactions=post.reactions if isinstance(post.reactions, dict) else None,
        raw_data=raw,
    )
