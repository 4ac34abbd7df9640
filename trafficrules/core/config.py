from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyUrl, Field, field_validator
import secrets


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"  # Ignore extra fields in .env file
    )

    # -------------------------
    # Database
    # -------------------------
    DATABASE_URL: AnyUrl

    # -------------------------
    # Security / Auth
    # -------------------------
    SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -------------------------
    # Application
    # -------------------------
    PROJECT_NAME: str = "Traffic Rules Notifications API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "UTC"

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    SQLALCHEMY_ECHO: bool = False
    DB_POOL_MIN_SIZE: Optional[int] = None
    DB_POOL_MAX_SIZE: Optional[int] = None

    # -------------------------
    # Redis (live notification fan-out)
    # -------------------------
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for WebSocket pub/sub"
    )

    # -------------------------
    # Firebase Cloud Messaging
    # -------------------------
    FIREBASE_SERVICE_ACCOUNT_KEY_PATH: Optional[str] = Field(
        default=None,
        description="Path to the Firebase service account JSON (uses ADC when unset)"
    )

    # =========================================================
    # Notification Scheduler
    # =========================================================
    SCHEDULER_ENABLED: bool = Field(
        default=True,
        description="Run the reminder/notification jobs inside the API process"
    )

    # Per-minute jobs must finish well before the next tick
    SCHEDULER_TICK_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Wall-clock budget for the per-minute jobs"
    )

    SCHEDULER_WEEKLY_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        gt=0,
        description="Wall-clock budget for the weekly report job"
    )

    REMINDER_QUERY_LIMIT: int = Field(
        default=100,
        ge=1,
        description="Maximum reminders (or pending pushes) handled per tick"
    )

    REMINDER_BATCH_SIZE: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Reminders dispatched concurrently within one batch"
    )

    WEEKLY_REPORT_DAY: str = Field(
        default="sun",
        description="Cron day_of_week for the weekly report"
    )

    WEEKLY_REPORT_HOUR: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Hour (scheduler local time) for the weekly report"
    )


    @field_validator("ALGORITHM")
    def validate_algorithm(cls, v):
        if not v or not isinstance(v, str):
            raise ValueError("ALGORITHM must be a non-empty string.")
        return v

    @field_validator("TIMEZONE")
    def validate_timezone(cls, v):
        """Default reminder timezone must be a known IANA zone."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown TIMEZONE: {v}")
        return v

    @field_validator("WEEKLY_REPORT_DAY")
    def validate_weekly_report_day(cls, v):
        allowed = {"mon", "tue", "wed", "thu", "fri", "sat", "sun"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"WEEKLY_REPORT_DAY must be one of: {allowed}")
        return v

settings = Settings()
