from pydantic_settings import BaseSettings
from typing import Optional
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # API Configuration
    APP_NAME: str = "GoViral Content Discovery API"
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("PORT", os.getenv("API_PORT", "3001")))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    # Supabase (identity provider)
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")

    # Apify (content source)
    APIFY_API_TOKEN: Optional[str] = os.getenv("APIFY_API_TOKEN", None)
    APIFY_FACEBOOK_ACTOR_ID: str = os.getenv("APIFY_ACTOR_ID", "apify~facebook-pages-scraper")
    APIFY_INSTAGRAM_ACTOR_ID: str = os.getenv("APIFY_INSTAGRAM_ACTOR_ID", "apify/instagram-scraper")
    APIFY_TIKTOK_ACTOR_ID: str = os.getenv("APIFY_TIKTOK_ACTOR_ID", "clockworks/tiktok-scraper")
    CONTENT_SOURCE_TIMEOUT_SECONDS: int = int(os.getenv("CONTENT_SOURCE_TIMEOUT_SECONDS", "300"))
    CONTENT_SOURCE_MAX_RETRIES: int = int(os.getenv("CONTENT_SOURCE_MAX_RETRIES", "2"))

    # Search limits
    DEFAULT_MAX_POSTS: int = int(os.getenv("DEFAULT_MAX_POSTS", "20"))
    MAX_POSTS_LIMIT: int = int(os.getenv("MAX_POSTS_LIMIT", "100"))

    # Page monitoring
    MONITOR_CHECK_MAX_POSTS: int = int(os.getenv("MONITOR_CHECK_MAX_POSTS", "20"))
    MONITOR_SCHEDULED_MAX_POSTS: int = int(os.getenv("MONITOR_SCHEDULED_MAX_POSTS", "10"))
    MONITOR_SCHEDULED_BATCH_SIZE: int = int(os.getenv("MONITOR_SCHEDULED_BATCH_SIZE", "10"))
    MONITOR_DEFAULT_CHECK_INTERVAL: int = int(os.getenv("MONITOR_DEFAULT_CHECK_INTERVAL", "60"))

    # Shared secrets for machine-to-machine endpoints
    USER_SYNC_WEBHOOK_SECRET: str = os.getenv("USER_SYNC_WEBHOOK_SECRET", "")
    CRON_SECRET: str = os.getenv("CRON_SECRET", "")

    @property
    def async_database_url(self) -> str:
        """DATABASE_URL with the async driver filled in for bare postgres URLs"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL

    class Config:
        case_sensitive = True


settings = Settings()
