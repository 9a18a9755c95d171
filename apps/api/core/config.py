"""
Centralized configuration management with validation.

All environment variables are loaded and validated here.
This ensures consistent configuration across the scoring services.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    # Database Configuration
    # DATABASE_URL wins when set (tests use sqlite://)
    DATABASE_URL: Optional[str] = Field(default=None)
    POSTGRES_USER: str = Field(default="postgres")
    POSTGRES_PASSWORD: str = Field(default="postgres")
    POSTGRES_DB: str = Field(default="checkin_scoring")
    POSTGRES_HOST: str = Field(default="postgres")
    POSTGRES_PORT: int = Field(default=5432)

    # Database Pool Configuration
    DB_POOL_SIZE: int = Field(default=20)
    DB_MAX_OVERFLOW: int = Field(default=10)
    DB_POOL_TIMEOUT: int = Field(default=30)
    DB_POOL_RECYCLE: int = Field(default=3600)  # 1 hour

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="json")  # json or text

    # Insight generation (Gemini)
    GOOGLE_API_KEY: Optional[str] = Field(default=None)
    INSIGHT_MODEL: str = Field(default="gemini-2.5-flash")
    INSIGHT_TEMPERATURE: float = Field(default=0.7)
    INSIGHT_MAX_TOKENS: int = Field(default=2000)

    # Stored analyses younger than this are served without regeneration
    INSIGHT_FRESHNESS_WINDOW_DAYS: float = Field(default=7.0, gt=0)

    # External API Configuration
    EXTERNAL_API_RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    EXTERNAL_API_RETRY_DELAY_S: float = Field(default=1.0, ge=0)

    # Scoring
    DEFAULT_SCORING_PROFILE: str = Field(default="lifestyle")

    # Environment
    ENVIRONMENT: str = Field(default="development")
    DEBUG: bool = Field(default=False)


# Global settings instance
settings = Settings()
