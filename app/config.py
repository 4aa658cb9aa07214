"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "postgresql://localhost:5432/assessment"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Assessment Session Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 120
    RATE_LIMIT_PER_HOUR: int = 3000

    # Session Settings
    TEST_MODE_TIME_LIMIT: int = 30 * 60  # seconds
    PRACTICE_MODE_TIME_LIMIT: int = 30 * 60  # seconds
    ACTIVE_SESSIONS_LIMIT: int = 5

    # Endless Settings
    ENDLESS_BATCH_SIZE: int = 10
    ENDLESS_MAX_BATCH_SIZE: int = 50
    ENDLESS_EXCLUDE_WINDOW: int = 30

    # Cache
    TEST_CACHE_TTL: int = 300  # 5 minutes

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def time_limit_for(self, mode: str) -> int:
        """Fixed time budget in seconds for a session mode"""
        if mode == "Practice":
            return self.PRACTICE_MODE_TIME_LIMIT
        return self.TEST_MODE_TIME_LIMIT


# Global settings instance
settings = Settings()
