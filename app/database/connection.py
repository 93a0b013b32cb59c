from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from app.core.config import settings
from .unified_models import Base

logger = logging.getLogger(__name__)

# Database instances
async_engine = None
SessionLocal = None


def _engine_options(url: str) -> dict:
    """Pool configuration per backend; sqlite runs share one in-process connection"""
    if url.startswith("sqlite"):
        return {
            "echo": False,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 5,
        "max_overflow": 3,
        "pool_timeout": 30,
        "connect_args": {
            "command_timeout": 60,
            "server_settings": {
                "application_name": "content_discovery_backend",
                "statement_timeout": "60s",
            }
        }
    }


async def init_database():
    """Initialize the async engine and session factory"""
    global async_engine, SessionLocal

    if async_engine is not None and SessionLocal is not None:
        logger.info("Database already initialized - reusing existing connection pool")
        return

    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not configured. Application cannot start without database.")

    url = settings.async_database_url
    logger.info("Initializing database connections...")

    try:
        async_engine = create_async_engine(url, **_engine_options(url))
        SessionLocal = sessionmaker(
            bind=async_engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with async_engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("SUCCESS: Database connection test passed")

    except Exception as e:
        logger.error(f"ERROR: Database initialization failed: {str(e)}")
        async_engine = None
        SessionLocal = None
        raise


async def close_database():
    """Close database connections and reset global state"""
    global async_engine, SessionLocal

    if async_engine:
        await async_engine.dispose()
        logger.info("Database connection pool closed")

    async_engine = None
    SessionLocal = None


async def create_tables():
    """Create all tables from the declarative models"""
    if async_engine is None:
        raise RuntimeError("Database not initialized")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def drop_tables():
    if async_engine is None:
        raise RuntimeError("Database not initialized")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Standalone session for work outside a request (background tasks)"""
    if SessionLocal is None:
        await init_database()

    async with SessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session"""
    async with get_session() as session:
        yield session
