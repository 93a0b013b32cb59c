"""
UNIFIED DATABASE MODELS - Content Discovery Platform
Users, their search queries and the normalized posts each search produced
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, BigInteger, Boolean, DateTime, Text, ForeignKey, Index, CheckConstraint, UniqueConstraint, JSON, Uuid
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
import uuid as uuid_lib

Base = declarative_base()

# JSONB on Postgres, plain JSON elsewhere (sqlite test runs)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# USER MANAGEMENT
# =============================================================================

class User(Base):
    """Local account linked to an identity provider user"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    external_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, index=True)
    full_name = Column(Text)
    avatar_url = Column(Text)

    # Subscription & monthly quota
    subscription_plan = Column(String(20), nullable=False, default="FREE")
    search_quota = Column(Integer, nullable=False, default=10)
    searches_used = Column(Integer, nullable=False, default=0)
    quota_reset_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    search_queries = relationship("SearchQuery", back_populates="user", cascade="all, delete-orphan")
    monitored_pages = relationship("MonitoredPage", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("subscription_plan IN ('FREE', 'STARTER', 'PRO', 'ENTERPRISE')", name="valid_subscription_plan"),
        CheckConstraint("searches_used >= 0", name="non_negative_searches_used"),
        CheckConstraint("search_quota >= 0", name="non_negative_search_quota"),
    )


# =============================================================================
# SEARCH TRACKING
# =============================================================================

class SearchQuery(Base):
    """One user-initiated search and its lifecycle status"""
    __tablename__ = "search_queries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    keyword = Column(String(500), nullable=False)
    platform = Column(String(20), nullable=False, default="FACEBOOK")
    status = Column(String(20), nullable=False, default="PENDING", index=True)

    # Content source run tracking
    apify_run_id = Column(String(255))
    result_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="search_queries")
    contents = relationship("Content", back_populates="search_query", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("platform IN ('FACEBOOK', 'INSTAGRAM', 'TIKTOK')", name="valid_search_platform"),
        CheckConstraint("status IN ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED')", name="valid_search_status"),
        Index("idx_search_queries_user_created", "user_id", "created_at"),
    )


# =============================================================================
# CONTENT
# =============================================================================

class Content(Base):
    """Normalized post returned by a search, unique per (search query, external id)"""
    __tablename__ = "contents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    search_query_id = Column(Uuid(as_uuid=True), ForeignKey("search_queries.id", ondelete="CASCADE"), nullable=False, index=True)
    external_id = Column(Text, nullable=False)

    # Post data
    url = Column(Text, nullable=False)
    caption = Column(Text)
    image_url = Column(Text)
    video_url = Column(Text)
    post_type = Column(String(50))
    page_name = Column(Text)
    page_url = Column(Text)
    posted_at = Column(DateTime(timezone=True))
    platform = Column(String(20), nullable=False, default="FACEBOOK")

    # Engagement metrics
    likes_count = Column(BigInteger, nullable=False, default=0)
    comments_count = Column(BigInteger, nullable=False, default=0)
    shares_count = Column(BigInteger, nullable=False, default=0)
    views_count = Column(BigInteger, nullable=False, default=0)
    engagement_score = Column(BigInteger, nullable=False, default=0, index=True)

    # Opaque payloads
    reactions = Column(JSONType)
    raw_data = Column(JSONType)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    search_query = relationship("SearchQuery", back_populates="contents")

    __table_args__ = (
        UniqueConstraint("search_query_id", "external_id", name="uq_content_query_external_id"),
        CheckConstraint("likes_count >= 0", name="non_negative_likes"),
        CheckConstraint("comments_count >= 0", name="non_negative_comments"),
        CheckConstraint("shares_count >= 0", name="non_negative_shares"),
        CheckConstraint("views_count >= 0", name="non_negative_views"),
        Index("idx_contents_query_engagement", "search_query_id", "engagement_score"),
    )


# =============================================================================
# PAGE MONITORING
# =============================================================================

class MonitoredPage(Base):
    """Facebook page a user follows for new posts"""
    __tablename__ = "monitored_pages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    page_url = Column(Text, nullable=False)
    page_name = Column(Text)
    page_avatar = Column(Text)

    # Check schedule
    is_active = Column(Boolean, nullable=False, default=True)
    check_interval = Column(Integer, nullable=False, default=60)  # minutes
    last_checked_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    user = relationship("User", back_populates="monitored_pages")
    posts = relationship("MonitoredPost", back_populates="page", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "page_url", name="uq_monitored_page_user_url"),
        CheckConstraint("check_interval > 0", name="positive_check_interval"),
        Index("idx_monitored_pages_active_checked", "is_active", "last_checked_at"),
    )


class MonitoredPost(Base):
    """Post discovered on a monitored page, stored once per (page, external id)"""
    __tablename__ = "monitored_posts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid_lib.uuid4)
    page_id = Column(Uuid(as_uuid=True), ForeignKey("monitored_pages.id", ondelete="CASCADE"), nullable=False, index=True)
    external_id = Column(Text, nullable=False)

    # Post data
    url = Column(Text, nullable=False)
    caption = Column(Text)
    image_url = Column(Text)
    video_url = Column(Text)
    author_name = Column(Text)
    posted_at = Column(DateTime(timezone=True))

    # Engagement metrics
    likes_count = Column(BigInteger, nullable=False, default=0)
    comments_count = Column(BigInteger, nullable=False, default=0)
    shares_count = Column(BigInteger, nullable=False, default=0)
    views_count = Column(BigInteger, nullable=False, default=0)
    engagement_score = Column(BigInteger, nullable=False, default=0)

    raw_data = Column(JSONType)

    # Unread flag
    is_new = Column(Boolean, nullable=False, default=True)
    discovered_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    page = relationship("MonitoredPage", back_populates="posts")

    __table_args__ = (
        UniqueConstraint("page_id", "external_id", name="uq_monitored_post_page_external_id"),
        CheckConstraint("likes_count >= 0", name="non_negative_monitored_likes"),
        CheckConstraint("comments_count >= 0", name="non_negative_monitored_comments"),
        CheckConstraint("shares_count >= 0", name="non_negative_monitored_shares"),
        CheckConstraint("views_count >= 0", name="non_negative_monitored_views"),
        Index("idx_monitored_posts_page_new", "page_id", "is_new", "discovered_at"),
    )
