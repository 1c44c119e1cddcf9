"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str

    # Gemini API
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-1.5-flash"

    # Redis (empty string disables the response cache)
    REDIS_URL: str = "redis://redis:6379/0"

    # Application
    APP_NAME: str = "Quiz Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Generation
    MOCK_AI: bool = False
    DEFAULT_QUIZ_CACHE_TTL: int = 3600  # 1 hour
    MIN_QUIZ_QUESTIONS: int = 1
    MAX_QUIZ_QUESTIONS: int = 50
    GENERATION_RETRIES: int = 1
    GENERATION_TEMPERATURE: float = 0.7
    GENERATION_MAX_OUTPUT_TOKENS: int = 4096

    # Sessions
    SESSION_SECONDS_PER_QUESTION: int = 80
    SESSION_GRACE_SECONDS: int = 300
    SESSION_ABANDON_AFTER_HOURS: int = 24

    # Scoring
    SUCCESS_RATE_THRESHOLD: float = 0.6

    # Maintenance sweeps
    MAINTENANCE_ENABLED: bool = True
    MAINTENANCE_INTERVAL_SECONDS: int = 1800
    STATS_RECOMPUTE_MIN_ATTEMPTS: int = 50

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
