"""
User Service - Local accounts for identity provider users
Find-or-create on first authenticated contact, profile and subscription views
"""
import logging
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import BadRequestException, NotFoundException
from app.database.unified_models import User, SearchQuery
from app.models.auth import (
    ExternalIdentity, UserInDB, UserProfileUpdate, UserSyncRequest,
    UserProfileResponse, SubscriptionResponse
)
from app.models.subscription import SubscriptionPlan, PLAN_FEATURES, get_plan_features
from app.services.quota_ledger_service import quota_ledger_service

logger = logging.getLogger(__name__)


def placeholder_email(external_id: str) -> str:
    return f"{external_id}@placeholder.local"


class UserService:

    async def _get_by_external_id(self, db: AsyncSession, external_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()

    async def _get(self, db: AsyncSession, user_id: UUID) -> User:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundException("User not found")
        return user

    async def find_or_create_user(self, db: AsyncSession, identity: ExternalIdentity) -> UserInDB:
        """Local user for an identity, created on FREE with a full monthly allowance if absent"""
        user = await self._get_by_external_id(db, identity.external_id)
        if user is not None:
            return UserInDB.model_validate(user)

        plan = get_plan_features(SubscriptionPlan.FREE)
        user = User(
            external_id=identity.external_id,
            email=identity.email or placeholder_email(identity.external_id),
            full_name=identity.full_name,
            avatar_url=identity.avatar_url,
            subscription_plan=SubscriptionPlan.FREE.value,
            search_quota=plan.search_quota,
            searches_used=0,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            # Another request created the same user first
            await db.rollback()
            user = await self._get_by_external_id(db, identity.external_id)
            if user is None:
                raise
            return UserInDB.model_validate(user)

        logger.info(f"Created local user {user.id} for identity {identity.external_id}")
        return UserInDB.model_validate(user)

    async def sync_user(self, db: AsyncSession, request: UserSyncRequest) -> UserInDB:
        """Upsert a user from identity provider fields"""
        if not request.external_id or not request.email:
            raise BadRequestException("Missing required fields: external_id and email")

        user = await self._get_by_external_id(db, request.external_id)
        if user is None:
            return await self.find_or_create_user(db, ExternalIdentity(**request.model_dump()))

        user.email = request.email
        if request.full_name:
            user.full_name = request.full_name
        if request.avatar_url:
            user.avatar_url = request.avatar_url
        await db.commit()
        await db.refresh(user)

        logger.info(f"Synced user {user.id} from identity {request.external_id}")
        return UserInDB.model_validate(user)

    async def get_profile(self, db: AsyncSession, user_id: UUID) -> UserProfileResponse:
        # apply any pending month rollover before reporting usage
        await quota_ledger_service.get_quota_status(db, user_id)
        user = await self._get(db, user_id)
        await db.refresh(user)

        total_searches = (await db.execute(
            select(func.count(SearchQuery.id)).where(SearchQuery.user_id == user_id)
        )).scalar_one()

        return UserProfileResponse(
            **UserInDB.model_validate(user).model_dump(),
            total_searches=total_searches,
            quota_remaining=max(0, user.search_quota - user.searches_used),
        )

    async def update_profile(self, db: AsyncSession, user_id: UUID, update: UserProfileUpdate) -> UserInDB:
        user = await self._get(db, user_id)
        if update.full_name:
            user.full_name = update.full_name
            await db.commit()
            await db.refresh(user)
        return UserInDB.model_validate(user)

    async def get_subscription(self, db: AsyncSession, user_id: UUID) -> SubscriptionResponse:
        quota = await quota_ledger_service.get_quota_status(db, user_id)
        if quota is None:
            raise NotFoundException("User not found")

        plan = get_plan_features(quota.plan)
        return SubscriptionResponse(
            plan=quota.plan,
            plan_name=plan.name,
            quota=quota.quota,
            used=quota.used,
            remaining=quota.remaining,
            reset_date=quota.reset_date,
            features=plan.features,
            all_plans=PLAN_FEATURES,
        )


user_service = UserService()
