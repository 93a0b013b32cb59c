"""
User API Routes
Profile, subscription details and identity sync
"""
import logging
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database.connection import get_db
from app.middleware.auth_middleware import get_current_user, verify_user_sync_secret
from app.models.auth import UserInDB, UserProfileUpdate, UserSyncRequest, UserProfileResponse, SubscriptionResponse
from app.services.user_service import user_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/user", tags=["User"])


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await user_service.get_profile(db, current_user.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting profile for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving profile")


@router.put("/profile", response_model=UserInDB)
async def update_profile(
    update: UserProfileUpdate,
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        return await user_service.update_profile(db, current_user.id, update)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating profile for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error updating profile")


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(
    current_user: UserInDB = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Plan, usage and the full plan catalogue"""
    try:
        return await user_service.get_subscription(db, current_user.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting subscription for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail="Error retrieving subscription")


@router.post("/sync", response_model=UserInDB, dependencies=[Depends(verify_user_sync_secret)])
async def sync_user(
    request: UserSyncRequest,
    db: AsyncSession = Depends(get_db)
):
    """Upsert a local user from identity provider fields; called by the identity provider webhook with X-Webhook-Secret"""
    try:
        return await user_service.sync_user(db, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error syncing user {request.external_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to sync user")
