"""
Supabase Auth Service - Bearer token validation against Supabase Auth
Maps a valid access token to the identity provider's user id and profile fields
"""
import asyncio
import logging
from fastapi import HTTPException, status
from supabase import create_client, Client

from app.core.config import settings
from app.core.exceptions import AuthenticationException
from app.models.auth import ExternalIdentity

logger = logging.getLogger(__name__)


class SupabaseAuthService:
    """Identity provider adapter"""

    def __init__(self):
        self.supabase: Client = None
        self.initialized = False
        self.initialization_error = None

    def initialize(self) -> bool:
        """Create the Supabase client from settings"""
        if self.initialized and self.supabase:
            return True

        if not settings.SUPABASE_URL:
            self.initialization_error = "SUPABASE_URL environment variable not set"
            logger.error(f"ERROR: {self.initialization_error}")
            return False

        if not settings.SUPABASE_KEY:
            self.initialization_error = "SUPABASE_KEY environment variable not set"
            logger.error(f"ERROR: {self.initialization_error}")
            return False

        try:
            self.supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
        except Exception as e:
            self.initialization_error = f"Failed to create Supabase client: {e}"
            logger.error(f"ERROR: {self.initialization_error}")
            return False

        self.initialized = True
        self.initialization_error = None
        logger.info("SUCCESS: Supabase Auth Service initialized")
        return True

    def ensure_initialized(self):
        if not self.initialized and not self.initialize():
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Authentication service unavailable: {self.initialization_error}"
            )

    async def verify_token(self, token: str) -> ExternalIdentity:
        """
        Validate an access token and return the identity behind it

        Raises:
            AuthenticationException: token rejected or no user attached
        """
        self.ensure_initialized()

        try:
            user_response = await asyncio.to_thread(self.supabase.auth.get_user, token)
        except Exception as e:
            logger.warning(f"TOKEN: Supabase rejected token: {e}")
            raise AuthenticationException("Invalid or expired token")

        if not user_response or not user_response.user:
            logger.warning("TOKEN: Validation returned no user")
            raise AuthenticationException("Invalid or expired token")

        user = user_response.user
        metadata = user.user_metadata or {}
        return ExternalIdentity(
            external_id=str(user.id),
            email=user.email,
            full_name=metadata.get("full_name") or metadata.get("name"),
            avatar_url=metadata.get("avatar_url") or metadata.get("picture"),
        )


supabase_auth_service = SupabaseAuthService()
