"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Load from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    APP_NAME: str = "Competitor Signals API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./competitor_signals.db"

    # AI
    OPENAI_API_KEY: str = ""
    ANTHROPIC_API_KEY: str = ""
    AI_PROVIDER: str = "openai"  # openai | anthropic
    OPENAI_SUMMARY_MODEL: str = "gpt-4o"
    OPENAI_FAST_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_SUMMARY_MODEL: str = "claude-sonnet-4-20250514"
    ANTHROPIC_FAST_MODEL: str = "claude-3-5-haiku-latest"

    # Signal providers
    ASKNEWS_CLIENT_ID: str = ""
    ASKNEWS_CLIENT_SECRET: str = ""
    TRUSTPILOT_RAPIDAPI_KEY: str = ""
    NEWS_TIMEOUT_SECONDS: float = 15.0
    REVIEW_TIMEOUT_SECONDS: float = 15.0
    FORUM_TIMEOUT_SECONDS: float = 10.0
    RSS_TIMEOUT_SECONDS: float = 8.0

    # Caching / streaming
    ANALYSIS_CACHE_TTL_SECONDS: float = 15 * 60
    ENHANCED_CACHE_TTL_SECONDS: float = 10 * 60
    STREAM_KEEPALIVE_SECONDS: float = 30.0
    CACHE_BYPASS_PREMIUM_WITH_DOMAINS: bool = True

    # Limits
    MAX_COMPETITORS_PER_REQUEST: int = 5
    TRACKED_COMPETITOR_LIMIT: int = 5

    # Celery / newsletter digest
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    NEWSLETTER_CRON: str = "0 9 1,15 * *"
    NEWSLETTER_MIN_INTERVAL_HOURS: float = 2.0

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
