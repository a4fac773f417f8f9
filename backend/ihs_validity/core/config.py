"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "IHS Validity Analytics"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Databases
    # The scan store holds IHS sessions; the research store holds questionnaire
    # entries and participant demographics. They may be the same database.
    DATABASE_URL: str = Field(
        default="sqlite:///./ihs_scans.db",
        description="Scan store connection URL",
    )
    RESEARCH_DATABASE_URL: str = Field(
        default="",
        description="Research store connection URL (falls back to DATABASE_URL)",
    )

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    # Validity analytics
    VALIDITY_CACHE_TTL_SECONDS: float = Field(
        default=5.0,
        ge=0.0,
        le=60.0,
        description="Lifetime of cached validity results (0 disables caching)",
    )
    VALIDITY_CACHE_MAX_ENTRIES: int = Field(
        default=256,
        ge=1,
        description="Maximum number of cached validity results",
    )
    VALIDITY_ROW_LIMIT_MAX: int = Field(
        default=2000,
        ge=1,
        description="Upper bound for the limit query parameter",
    )
    VALIDITY_DEFAULT_LIMIT: int = Field(
        default=500,
        ge=1,
        description="Questionnaire rows fetched when no limit is given",
    )
    BOOTSTRAP_REPLICATES: int = Field(
        default=200,
        ge=100,
        le=2000,
        description="Bootstrap resamples per confidence interval",
    )
    CV_SEED: int = Field(
        default=1234,
        description="Seed for cross-validation fold assignment",
    )
    RIDGE_LAMBDA: float = Field(
        default=1.0,
        ge=0.0,
        description="Default ridge penalty for cross-validated scoring",
    )
    NON_INFERIORITY_MARGIN: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Allowed correlation shortfall vs the best questionnaire",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_row_limits(self) -> Self:
        """Validate that the default row limit fits under the maximum."""
        if self.VALIDITY_DEFAULT_LIMIT > self.VALIDITY_ROW_LIMIT_MAX:
            raise ValueError(
                f"VALIDITY_DEFAULT_LIMIT ({self.VALIDITY_DEFAULT_LIMIT}) must not exceed "
                f"VALIDITY_ROW_LIMIT_MAX ({self.VALIDITY_ROW_LIMIT_MAX})"
            )
        return self

    @property
    def research_database_url(self) -> str:
        return self.RESEARCH_DATABASE_URL or self.DATABASE_URL


settings = Settings()
