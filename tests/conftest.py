"""
Shared fixtures: in-memory database per test, fake content source, authenticated client
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ.setdefault("APIFY_API_TOKEN", "test-apify-token")
os.environ["USER_SYNC_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from main import app
from app.database import connection
from app.database.connection import init_database, close_database, create_tables, drop_tables
from app.database.unified_models import User
from app.middleware.auth_middleware import get_authenticated_identity
from app.models.auth import ExternalIdentity
from app.scrapers.apify_content_source import ContentSourceRun
from app.services.page_monitor_service import page_monitor_service
from app.services.search_orchestrator import search_orchestrator


class FakeContentSource:
    """Stands in for the Apify adapter; returns canned items or raises"""

    def __init__(self, items: Optional[List[Any]] = None, error: Optional[Exception] = None, run_id: str = "run_test_1"):
        self.items = items or []
        self.error = error
        self.run_id = run_id
        self.calls: List[Dict[str, Any]] = []

    async def fetch_posts(self, platform, target_urls, max_posts):
        self.calls.append({"platform": platform, "target_urls": target_urls, "max_posts": max_posts})
        if self.error is not None:
            raise self.error
        return ContentSourceRun(run_id=self.run_id, status="SUCCEEDED", items=self.items)


def make_post(post_id: str, likes: Any = 0, comments: Any = 0, shares: Any = 0, **extra) -> Dict[str, Any]:
    post = {
        "postId": post_id,
        "url": f"https://www.facebook.com/ExamplePage/posts/{post_id}",
        "text": f"Caption for {post_id}",
        "timestamp": 1700000000,
        "likes": likes,
        "comments": comments,
        "shares": shares,
        "pageName": "ExamplePage",
    }
    post.update(extra)
    return post


async def create_user(
    db,
    external_id: str = "ext_user_1",
    search_quota: int = 10,
    searches_used: int = 0,
    quota_reset_date: Optional[datetime] = None,
    subscription_plan: str = "FREE",
) -> User:
    user = User(
        external_id=external_id,
        email=f"{external_id}@example.com",
        full_name="Test User",
        subscription_plan=subscription_plan,
        search_quota=search_quota,
        searches_used=searches_used,
        quota_reset_date=quota_reset_date or datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Create a fresh database for each test"""
    await init_database()
    await create_tables()
    yield
    await drop_tables()
    await close_database()


@pytest_asyncio.fixture
async def db_session():
    """Get a database session"""
    async with connection.SessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session):
    return await create_user(db_session)


@pytest.fixture
def fake_source(monkeypatch):
    """Fake content source wired into the orchestrator and page monitor singletons"""
    source = FakeContentSource()
    monkeypatch.setattr(search_orchestrator, "content_source", source)
    monkeypatch.setattr(page_monitor_service, "content_source", source)
    return source


@pytest.fixture
def identity():
    """Identity the client authenticates as; tests may swap external_id"""
    return ExternalIdentity(external_id="ext_api_user", email="api_user@example.com", full_name="API User")


@pytest_asyncio.fixture
async def client(identity):
    """Async test client with the identity provider bypassed"""
    app.dependency_overrides[get_authenticated_identity] = lambda: identity
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anonymous_client():
    """Client without identity override"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
