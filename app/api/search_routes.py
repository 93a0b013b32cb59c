"""
Search API Routes
Search submission (background and synchronous) and quota status
"""
import logging
from fastapi import APIRouter, HTTPException, Depends, BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.middleware.auth_middleware import get_current_user
from app.models.auth import UserInDB
from app.models.search import SearchRequest, SearchAccepted, SearchResult, SearchStatus, QuotaStatus
from app.services.quota_ledger_service import quota_ledger_service
from app.services.search_orchestrator import search_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/search", tags=["Search"])


@router.post("", response_model=SearchAccepted, status_code=202)
async def start_search(
    request: SearchRequest,
    background_tasks: BackgroundTasks,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Queue a search; poll GET /results/{query_id} for the outcome"""
    try:
        query_id = await search_orchestrator.create_search_query(db, current_user.id, request)
        background_tasks.add_task(search_orchestrator.run_in_background, query_id, request.max_posts)

        return SearchAccepted(query_id=query_id, status=SearchStatus.PENDING)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error starting search for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error starting search")


@router.post("/sync", response_model=SearchResult, response_model_exclude_none=True)
async def search_sync(
    request: SearchRequest,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Run a search and wait for the ranked results"""
    try:
        return await search_orchestrator.search_sync(db, current_user.id, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error running synchronous search for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error running search")


@router.get("/quota", response_model=QuotaStatus)
async def get_quota(
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current month's search allowance"""
    try:
        quota = await quota_ledger_service.get_quota_status(db, current_user.id)
        if quota is None:
            raise HTTPException(status_code=404, detail="User not found")
        return quota
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting quota for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving quota")
