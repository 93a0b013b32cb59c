"""
Results API Routes
Search history, ranked results, paged contents, dashboard and chart data
"""
import logging
from uuid import UUID
from fastapi import APIRouter, HTTPException, Query, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.middleware.auth_middleware import get_current_user
from app.models.auth import UserInDB
from app.models.search import SearchHistory, SearchResult, ContentsPage, DashboardStats, ChartData
from app.services.aggregation_service import aggregation_service
from app.services.search_orchestrator import search_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/results", tags=["Results"])


# =============================================================================
# HISTORY & DASHBOARD
# =============================================================================

@router.get("", response_model=SearchHistory)
async def get_search_history(
    limit: int = Query(20, ge=1, description="Page size, capped at 100"),
    offset: int = Query(0, ge=0),
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """User's searches, newest first"""
    try:
        return await search_orchestrator.get_search_history(db, current_user.id, limit, offset)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting search history for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving search history")


@router.get("/dashboard/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await aggregation_service.get_dashboard_stats(db, current_user.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting dashboard stats for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving dashboard stats")


# =============================================================================
# PER-QUERY RESULTS
# =============================================================================

@router.get("/{query_id}", response_model=SearchResult)
async def get_search_results(
    query_id: UUID,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Status and ranked contents of one search"""
    try:
        return await search_orchestrator.get_search_results(db, current_user.id, query_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting results for query {query_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving search results")


@router.get("/{query_id}/contents", response_model=ContentsPage)
async def get_query_contents(
    query_id: UUID,
    limit: int = Query(20, ge=1, description="Page size, capped at 100"),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("engagement_score"),
    sort_order: str = Query("desc"),
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await search_orchestrator.get_query_contents(
            db, current_user.id, query_id,
            limit=limit, offset=offset, sort_by=sort_by, sort_order=sort_order
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting contents for query {query_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving contents")


@router.get("/{query_id}/chart-data", response_model=ChartData)
async def get_chart_data(
    query_id: UUID,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Top 5 posts of a search for comparison charts"""
    try:
        return await aggregation_service.get_chart_data(db, current_user.id, query_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting chart data for query {query_id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving chart data")
