"""
Subscription Plan Models
Defines the plan tiers and the monthly search allowance attached to each
"""
from enum import Enum
from typing import Dict, List
from pydantic import BaseModel


class SubscriptionPlan(str, Enum):
    """Subscription tiers"""
    FREE = "FREE"               # 10 searches/month
    STARTER = "STARTER"         # 50 searches/month
    PRO = "PRO"                 # 200 searches/month
    ENTERPRISE = "ENTERPRISE"   # 1000 searches/month


class PlanFeatures(BaseModel):
    """Display data and allowance for one plan"""
    name: str
    search_quota: int
    monitored_pages_limit: int
    features: List[str]


PLAN_FEATURES: Dict[SubscriptionPlan, PlanFeatures] = {
    SubscriptionPlan.FREE: PlanFeatures(
        name="Free",
        search_quota=10,
        monitored_pages_limit=3,
        features=["10 searches/month", "Basic analytics", "Facebook only"]
    ),
    SubscriptionPlan.STARTER: PlanFeatures(
        name="Starter",
        search_quota=50,
        monitored_pages_limit=10,
        features=["50 searches/month", "Advanced analytics", "Facebook & Instagram"]
    ),
    SubscriptionPlan.PRO: PlanFeatures(
        name="Pro",
        search_quota=200,
        monitored_pages_limit=100,
        features=["200 searches/month", "Full analytics", "All platforms", "Priority support"]
    ),
    SubscriptionPlan.ENTERPRISE: PlanFeatures(
        name="Enterprise",
        search_quota=1000,
        monitored_pages_limit=100,
        features=["1000 searches/month", "Full analytics", "All platforms", "Dedicated support", "API access"]
    ),
}


def get_plan_features(plan: SubscriptionPlan) -> PlanFeatures:
    """Plan lookup that falls back to FREE for unknown tiers"""
    try:
        return PLAN_FEATURES[SubscriptionPlan(plan)]
    except ValueError:
        return PLAN_FEATURES[SubscriptionPlan.FREE]
