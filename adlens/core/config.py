"""
AdLens Configuration
Load settings from environment variables
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


DEFAULT_META_SCOPES = (
    "ads_read,ads_management,business_management,instagram_basic,"
    "instagram_manage_insights,pages_read_engagement,pages_show_list,read_insights"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ============================================
    # Application Settings
    # ============================================
    APP_NAME: str = "AdLens"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production
    LOG_LEVEL: str = "INFO"

    # ============================================
    # CORS / Frontend Settings
    # ============================================
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    DASHBOARD_URL: str = "http://localhost:3000/dashboard"

    # ============================================
    # Facebook/Meta OAuth Settings
    # ============================================
    META_APP_ID: Optional[str] = None
    META_APP_SECRET: Optional[str] = None
    META_REDIRECT_URI: str = "http://localhost:8000/api/v1/auth/meta/callback"
    META_SCOPES: str = DEFAULT_META_SCOPES

    # ============================================
    # Facebook/Meta Graph API Settings
    # ============================================
    FACEBOOK_API_VERSION: str = "v19.0"
    FACEBOOK_API_BASE_URL: str = "https://graph.facebook.com"
    FACEBOOK_OAUTH_DIALOG_URL: str = "https://www.facebook.com"
    META_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Rate limiting (sliding window + minimum spacing)
    META_RATE_LIMIT_MAX_REQUESTS: int = 50
    META_RATE_LIMIT_WINDOW_SECONDS: float = 5 * 60
    META_MIN_REQUEST_INTERVAL_SECONDS: float = 2.0

    # Retry / backoff
    META_RETRY_MAX_ATTEMPTS: int = 5
    META_RETRY_BASE_DELAY_SECONDS: float = 1.0
    META_RETRY_MAX_DELAY_SECONDS: float = 30.0
    META_RETRY_SUCCESS_COOLDOWN_SECONDS: float = 0.5

    # Batch requests
    META_BATCH_CHUNK_SIZE: int = 10
    META_BATCH_CHUNK_DELAY_SECONDS: float = 1.0

    # Response cache
    INSIGHTS_CACHE_TTL_SECONDS: float = 5 * 60
    ACCOUNTS_CACHE_TTL_SECONDS: float = 15 * 60

    # ============================================
    # Cookie Settings
    # ============================================
    COOKIE_SECURE: bool = False
    COOKIE_SAMESITE: str = "lax"
    META_TOKEN_DEFAULT_MAX_AGE_SECONDS: int = 60 * 24 * 60 * 60  # 60 days

    @property
    def facebook_api_url(self) -> str:
        return f"{self.FACEBOOK_API_BASE_URL.rstrip('/')}/{self.FACEBOOK_API_VERSION}"

    @property
    def meta_scopes(self) -> List[str]:
        return [scope.strip() for scope in self.META_SCOPES.split(",") if scope.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
