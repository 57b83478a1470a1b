from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    DATABASE_URL: str = Field(..., description="Async connection string (postgresql+asyncpg://... or sqlite+aiosqlite://...)")
    DB_CONNECT_TIMEOUT_SECONDS: float = 10.0
    DB_QUERY_TIMEOUT_SECONDS: float = 15.0

    # Redis (notification fan-out)
    REDIS_URL: str = Field("redis://localhost:6379/0")

    # Auth
    AUTH_SECRET: str = Field("change-me", description="HMAC secret shared with the token issuer")
    TOKEN_TTL_SECONDS: int = 2592000  # 30 days

    # Notifications
    NOTIFICATIONS_ENABLED: bool = True
    NOTIFICATION_CHANNEL_PREFIX: str = "notifications"
    NOTIFICATION_TIMEOUT_SECONDS: float = 2.0

    # Analytics
    PLATFORM_PASS_THRESHOLD: float = 70.0
    ANALYTICS_DEFAULT_DAYS: int = 30
    LEADERBOARD_DEFAULT_LIMIT: int = 20
    RECOMMENDATION_DEFAULT_LIMIT: int = 5
    PROGRESS_PAGE_SIZE: int = 10

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # Environment
    ENV: str = "production"  # development, staging, production
    DEBUG: bool = False

    @property
    def expose_error_details(self) -> bool:
        return self.DEBUG or self.ENV == "development"

settings = Settings()
