from typing import Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "FoodExpiry"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "https://foodexpiry.app"
    TIMEZONE: str = "UTC"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./foodexpiry.db"

    # Email delivery (SendGrid v3 API)
    SENDGRID_API_KEY: str = ""
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    EMAIL_FROM_ADDRESS: str = "notifications@foodexpiry.app"
    # Unset means on everywhere except production
    EMAIL_FALLBACK_ENABLED: Optional[bool] = None
    EMAIL_SEND_TIMEOUT_SECONDS: float = 10.0

    # Verification codes
    VERIFICATION_CODE_TTL_MINUTES: int = 10

    # Expiration rules
    EXPIRING_SOON_DAYS: int = 3
    DIGEST_DAYS_THRESHOLD: int = 3

    # Notification schedules (minute hour day-of-month month day-of-week)
    DAILY_DIGEST_CRON: str = "0 8 * * *"
    WEEKLY_DIGEST_CRON: str = "0 8 * * 1"
    WEEKLY_SUMMARY_CRON: str = "0 9 * * 0"
    FANOUT_CONCURRENCY: int = 5

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    @field_validator(
        "DAILY_DIGEST_CRON", "WEEKLY_DIGEST_CRON", "WEEKLY_SUMMARY_CRON", mode="after"
    )
    def validate_cron_expression(cls, v: str) -> str:
        if len(v.split()) != 5:
            raise ValueError(
                f"Cron expression must have 5 fields (minute hour day month weekday): {v!r}"
            )
        return v

    @field_validator("FANOUT_CONCURRENCY", mode="after")
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("FANOUT_CONCURRENCY must be at least 1")
        return v

    @model_validator(mode="after")
    def resolve_email_fallback(self):
        if self.EMAIL_FALLBACK_ENABLED is None:
            self.EMAIL_FALLBACK_ENABLED = self.ENVIRONMENT != "production"
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
