"""
Search & Content Models - Pydantic models for API requests/responses
Covers search submission, ranked results, quota status and dashboard rollups
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from uuid import UUID

from app.models.subscription import SubscriptionPlan


class Platform(str, Enum):
    """Social platforms a search can target"""
    FACEBOOK = "FACEBOOK"
    INSTAGRAM = "INSTAGRAM"
    TIKTOK = "TIKTOK"


class SearchStatus(str, Enum):
    """Search query lifecycle; transitions only move forward"""
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# =============================================================================
# SEARCH SUBMISSION
# =============================================================================

class SearchRequest(BaseModel):
    keyword: str = Field(..., min_length=1, max_length=500, description="Page name, keyword or page URL")
    platform: Platform
    max_posts: int = Field(20, ge=1, le=100, description="Maximum posts requested from the content source")


class SearchAccepted(BaseModel):
    message: str = "Search started"
    query_id: UUID
    status: SearchStatus = SearchStatus.PENDING


# =============================================================================
# CONTENT & RESULTS
# =============================================================================

class ContentResult(BaseModel):
    id: UUID
    external_id: str
    url: str
    caption: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    page_name: Optional[str] = None
    page_url: Optional[str] = None
    post_type: Optional[str] = None
    posted_at: Optional[datetime] = None
    platform: Platform
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    views_count: int = 0
    engagement_score: int = 0
    reactions: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class SearchResult(BaseModel):
    query_id: UUID
    status: SearchStatus
    result_count: int
    contents: List[ContentResult] = []
    error_message: Optional[str] = None


class QuotaStatus(BaseModel):
    quota: int
    used: int
    remaining: int
    reset_date: datetime
    plan: SubscriptionPlan


class SearchQuerySummary(BaseModel):
    id: UUID
    keyword: str
    platform: Platform
    status: SearchStatus
    result_count: int = 0
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SearchHistory(BaseModel):
    queries: List[SearchQuerySummary]
    total: int
    limit: int
    offset: int


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class ContentsPage(BaseModel):
    query_id: UUID
    keyword: str
    platform: Platform
    status: SearchStatus
    contents: List[ContentResult]
    pagination: Pagination


# =============================================================================
# DASHBOARD & CHARTS
# =============================================================================

class PlatformCount(BaseModel):
    platform: Platform
    count: int


class DashboardStats(BaseModel):
    total_searches: int
    total_posts: int
    total_engagement: int
    platform_breakdown: List[PlatformCount]
    recent_queries: List[SearchQuerySummary]
    top_contents: List[ContentResult]


class ChartDataItem(BaseModel):
    name: str
    label: str
    likes: int
    comments: int
    shares: int
    views: int
    total: int
    reactions: Optional[Dict[str, Any]] = None


class ChartTotals(BaseModel):
    likes: int = 0
    comments: int = 0
    shares: int = 0
    views: int = 0
    engagement: int = 0


class ChartData(BaseModel):
    chart_data: List[ChartDataItem]
    totals: ChartTotals
    posts_count: int
