"""
Authentication and user models
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import datetime
from uuid import UUID

from app.models.subscription import SubscriptionPlan, PlanFeatures


class ExternalIdentity(BaseModel):
    """Identity as reported by the identity provider for one request"""
    external_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserInDB(BaseModel):
    """User model as stored in database"""
    id: UUID
    external_id: str
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    search_quota: int
    searches_used: int
    quota_reset_date: datetime
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfileUpdate(BaseModel):
    """Profile fields a user may change"""
    full_name: Optional[str] = Field(None, max_length=200)


class UserSyncRequest(BaseModel):
    """Identity provider payload used to upsert a local user"""
    external_id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None


class UserProfileResponse(UserInDB):
    total_searches: int = 0
    quota_remaining: int = 0


class SubscriptionResponse(BaseModel):
    plan: SubscriptionPlan
    plan_name: str
    quota: int
    used: int
    remaining: int
    reset_date: datetime
    features: List[str]
    all_plans: Dict[SubscriptionPlan, PlanFeatures]
