"""
Application settings.
Loaded from environment variables and .env at startup.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./stranger_chat.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Redis (participant sessions)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    SESSION_TTL: int = 86400  # 24 hours in seconds

    # Matching
    MATCH_POLL_INTERVAL_SECONDS: float = 0.5
    # After this long in the queue a searcher's own filters are relaxed. None disables fallback.
    MATCH_FILTER_FALLBACK_SECONDS: Optional[float] = 10.0
    # Queue entries not refreshed within this window are treated as abandoned.
    QUEUE_ENTRY_TTL_SECONDS: int = 30
    # Same pair is not matched again within this many minutes. 0 disables.
    ANTI_REMATCH_MINUTES: int = 0
    MAX_INTEREST_TAGS: int = 10

    # Messages
    MESSAGE_MAX_LENGTH: int = 10_000

    # Optional
    DEBUG: bool = False
    PROJECT_NAME: str = "Stranger Chat Backend"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
