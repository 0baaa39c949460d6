"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ============ Application Settings ============
    APP_NAME: str = "GoPlanIt"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # ============ Server Settings ============
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 1

    # ============ CORS Settings ============
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        description="Allowed CORS origins",
    )

    # ============ Database Settings ============
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "goplanit"
    POSTGRES_PASSWORD: str = "goplanit_password"
    POSTGRES_DB: str = "goplanit_db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @computed_field  # type: ignore[misc]
    @property
    def DATABASE_URL(self) -> PostgresDsn:
        """Construct PostgreSQL async connection URL."""
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_HOST,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # ============ Redis Settings ============
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str | None = None
    REDIS_DB: int = 0
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_DEFAULT_TTL: int = 3600  # 1 hour

    @computed_field  # type: ignore[misc]
    @property
    def REDIS_URL(self) -> RedisDsn:
        """Construct Redis connection URL."""
        if self.REDIS_PASSWORD:
            return RedisDsn.build(
                scheme="redis",
                password=self.REDIS_PASSWORD,
                host=self.REDIS_HOST,
                port=self.REDIS_PORT,
                path=str(self.REDIS_DB),
            )
        return RedisDsn.build(
            scheme="redis",
            host=self.REDIS_HOST,
            port=self.REDIS_PORT,
            path=str(self.REDIS_DB),
        )

    # ============ Celery Settings ============
    CELERY_BROKER_DB: int = 1
    CELERY_RESULT_DB: int = 2

    @computed_field  # type: ignore[misc]
    @property
    def CELERY_BROKER_URL(self) -> str:
        """Construct Celery broker URL (Redis)."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.CELERY_BROKER_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.CELERY_BROKER_DB}"

    @computed_field  # type: ignore[misc]
    @property
    def CELERY_RESULT_BACKEND(self) -> str:
        """Construct Celery result backend URL (Redis)."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.CELERY_RESULT_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.CELERY_RESULT_DB}"

    # ============ Pipeline Settings ============
    PIPELINE_CONCURRENCY: int = Field(
        default=10,
        description=(
            "Maximum itinerary pipelines executing at once. Applied as the "
            "worker pool size, so it is a system-wide ceiling when a single "
            "worker consumes the itinerary queues"
        ),
    )
    PIPELINE_MAX_RETRIES: int = Field(
        default=3,
        description="Retry budget for a failed pipeline run",
    )
    STATUS_TTL_SECONDS: int = Field(
        default=3600,
        description="Lifetime of a processing status record",
    )
    ITINERARY_CACHE_TTL_SECONDS: int = Field(
        default=7200,
        description="How long a generated itinerary is reused for retries",
    )

    # ============ Amadeus API Settings ============
    AMADEUS_CLIENT_ID: str = Field(
        default="",
        description="Amadeus API Client ID",
    )
    AMADEUS_CLIENT_SECRET: str = Field(
        default="",
        description="Amadeus API Client Secret",
    )
    AMADEUS_BASE_URL: str = Field(
        default="https://test.api.amadeus.com",
        description="Amadeus API Base URL (use production URL in prod)",
    )
    AMADEUS_TIMEOUT_SECONDS: float = 30.0
    ENRICHMENT_CONCURRENCY: int = Field(
        default=5,
        description="Maximum concurrent Amadeus lookups per pipeline run",
    )
    CITY_CACHE_TTL_SECONDS: int = 86400  # 24 hours
    ACTIVITIES_CACHE_TTL_SECONDS: int = 21600  # 6 hours
    TRIP_PURPOSE_CACHE_TTL_SECONDS: int = 604800  # 7 days
    ACTIVITIES_RADIUS_KM: int = 20

    # ============ OpenAI Settings ============
    OPENAI_API_KEY: str = Field(
        default="",
        description="OpenAI API Key for itinerary generation",
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model to use",
    )
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_MAX_TOKENS: int = 8192
    OPENAI_TIMEOUT_SECONDS: float = 120.0

    # ============ Email Settings ============
    SMTP_HOST: str = Field(
        default="",
        description="SMTP server host; email is skipped when empty",
    )
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 15.0
    MAIL_FROM: str = "GoPlanIt <no-reply@goplanit.app>"
    FRONTEND_URL: str = "http://localhost:5173"

    # ============ Logging Settings ============
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
