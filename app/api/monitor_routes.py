"""
Page Monitoring API Routes
Followed pages, manual and scheduled checks, discovered posts and read state
"""
import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, HTTPException, Query, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.middleware.auth_middleware import get_current_user, verify_cron_secret
from app.models.auth import UserInDB
from app.models.monitoring import (
    MonitoredPageCreate, MonitoredPageUpdate, MonitoredPageResponse, MonitoredPagesList,
    MonitoredPostsPage, MarkReadRequest, MarkReadResponse, PageCheckResult, ScheduledCheckSummary
)
from app.services.page_monitor_service import page_monitor_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/monitor", tags=["Page Monitoring"])


# =============================================================================
# PAGES
# =============================================================================

@router.get("/pages", response_model=MonitoredPagesList)
async def list_pages(
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Followed pages with total and unread post counts"""
    try:
        return await page_monitor_service.list_pages(db, current_user.id, current_user.subscription_plan)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing monitored pages for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving monitored pages")


@router.post("/pages", response_model=MonitoredPageResponse, status_code=201)
async def add_page(
    request: MonitoredPageCreate,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await page_monitor_service.add_page(db, current_user.id, current_user.subscription_plan, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding monitored page for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error adding monitored page")


@router.patch("/pages/{page_id}", response_model=MonitoredPageResponse)
async def update_page(
    page_id: UUID,
    request: MonitoredPageUpdate,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await page_monitor_service.update_page(db, current_user.id, page_id, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating monitored page {page_id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating monitored page")


@router.delete("/pages/{page_id}")
async def delete_page(
    page_id: UUID,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        await page_monitor_service.delete_page(db, current_user.id, page_id)
        return {"message": "Page removed", "page_id": str(page_id)}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting monitored page {page_id}: {e}")
        raise HTTPException(status_code=500, detail="Error deleting monitored page")


# =============================================================================
# CHECKS
# =============================================================================

@router.post("/pages/{page_id}/check", response_model=PageCheckResult, response_model_exclude_none=True)
async def check_page(
    page_id: UUID,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Scrape the page now and store posts not seen before"""
    try:
        return await page_monitor_service.check_page(db, current_user.id, page_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error checking monitored page {page_id}: {e}")
        raise HTTPException(status_code=500, detail="Error checking page")


@router.post("/check-due", response_model=ScheduledCheckSummary, dependencies=[Depends(verify_cron_secret)])
async def check_due_pages(db: AsyncSession = Depends(get_db)):
    """Scheduler entry point; requires X-Cron-Secret"""
    try:
        return await page_monitor_service.check_due_pages(db)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Scheduled page check failed: {e}")
        raise HTTPException(status_code=500, detail="Scheduled check failed")


# =============================================================================
# POSTS
# =============================================================================

@router.get("/posts", response_model=MonitoredPostsPage)
async def list_posts(
    page_id: Optional[UUID] = Query(None),
    only_new: bool = Query(False),
    limit: int = Query(50, ge=1, description="Page size, capped at 100"),
    offset: int = Query(0, ge=0),
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await page_monitor_service.list_posts(db, current_user.id, page_id, only_new, limit, offset)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing monitored posts for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving monitored posts")


@router.patch("/posts/read", response_model=MarkReadResponse)
async def mark_posts_read(
    request: MarkReadRequest,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await page_monitor_service.mark_read(db, current_user.id, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error marking monitored posts read for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating posts")
