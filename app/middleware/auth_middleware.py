"""
Authentication dependencies for FastAPI
Bearer token -> identity provider identity -> local user
"""
from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import hmac
import logging

from app.core.config import settings
from app.core.exceptions import AuthenticationException, ServiceUnavailableException
from app.database.connection import get_db
from app.models.auth import ExternalIdentity, UserInDB
from app.services.supabase_auth_service import supabase_auth_service as auth_service
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_authenticated_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> ExternalIdentity:
    """
    Dependency resolving the caller's identity from the bearer token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()

    try:
        return await auth_service.verify_token(credentials.credentials)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Authentication failed: {e}")
        raise AuthenticationException()


async def get_current_user(
    identity: ExternalIdentity = Depends(get_authenticated_identity),
    db: AsyncSession = Depends(get_db)
) -> UserInDB:
    """
    Dependency to get the current local user, created on first contact
    """
    return await user_service.find_or_create_user(db, identity)


def _require_shared_secret(expected: str, provided: Optional[str], endpoint: str) -> None:
    """Constant-time check of a machine-to-machine secret; unconfigured endpoints stay closed"""
    if not expected:
        logger.error(f"{endpoint} called but no shared secret is configured")
        raise ServiceUnavailableException(f"{endpoint} is not configured")

    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning(f"{endpoint} called with an invalid shared secret")
        raise AuthenticationException("Invalid shared secret")


async def verify_user_sync_secret(
    x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret")
) -> None:
    """
    Dependency guarding the identity provider's user sync webhook
    """
    _require_shared_secret(settings.USER_SYNC_WEBHOOK_SECRET, x_webhook_secret, "User sync webhook")


async def verify_cron_secret(
    x_cron_secret: Optional[str] = Header(None, alias="X-Cron-Secret")
) -> None:
    """
    Dependency guarding the scheduled monitoring trigger
    """
    _require_shared_secret(settings.CRON_SECRET, x_cron_secret, "Scheduled page check")
