"""
Page Monitoring Models - Pydantic models for API requests/responses
Followed pages, discovered posts, read state and check summaries
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID


# =============================================================================
# MONITORED PAGES
# =============================================================================

class MonitoredPageCreate(BaseModel):
    page_url: str = Field(..., min_length=1, max_length=2000, description="Facebook page URL")
    page_name: Optional[str] = Field(None, max_length=255)
    check_interval: int = Field(60, ge=5, le=10080, description="Minutes between scheduled checks")


class MonitoredPageUpdate(BaseModel):
    is_active: Optional[bool] = None
    check_interval: Optional[int] = Field(None, ge=5, le=10080)
    page_name: Optional[str] = Field(None, max_length=255)


class MonitoredPageResponse(BaseModel):
    id: UUID
    page_url: str
    page_name: Optional[str] = None
    page_avatar: Optional[str] = None
    is_active: bool
    check_interval: int
    last_checked_at: Optional[datetime] = None
    total_posts: int = 0
    new_posts: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class MonitoredPagesList(BaseModel):
    pages: List[MonitoredPageResponse]
    total_posts: int = 0
    new_posts: int = 0
    count: int = 0
    limit: int


# =============================================================================
# MONITORED POSTS
# =============================================================================

class MonitoredPostResponse(BaseModel):
    id: UUID
    page_id: UUID
    external_id: str
    url: str
    caption: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    author_name: Optional[str] = None
    posted_at: Optional[datetime] = None
    likes_count: int = 0
    comments_count: int = 0
    shares_count: int = 0
    views_count: int = 0
    engagement_score: int = 0
    is_new: bool = True
    discovered_at: datetime
    page_url: Optional[str] = None
    page_name: Optional[str] = None

    class Config:
        from_attributes = True


class MonitoredPostsPage(BaseModel):
    posts: List[MonitoredPostResponse]
    total: int
    new_count: int
    limit: int
    offset: int
    has_more: bool


class MarkReadRequest(BaseModel):
    """Either explicit post ids or mark_all (optionally narrowed to one page)"""
    post_ids: List[UUID] = []
    mark_all: bool = False
    page_id: Optional[UUID] = None


class MarkReadResponse(BaseModel):
    updated_count: int


# =============================================================================
# CHECKS
# =============================================================================

class PageCheckResult(BaseModel):
    page_id: UUID
    page_url: str
    total_scraped: int = 0
    new_posts_count: int = 0
    new_posts: List[MonitoredPostResponse] = []
    error_message: Optional[str] = None


class ScheduledCheckSummary(BaseModel):
    pages_checked: int
    total_new_posts: int
    results: List[PageCheckResult] = []
