from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Basic settings
    PROJECT_NAME: str = "Groom Booking"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    API_V1_STR: str = "/api/v1"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./groom_booking.db"

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    # Business calendar
    BUSINESS_TIMEZONE: str = "America/Los_Angeles"

    @field_validator("BUSINESS_TIMEZONE")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown IANA timezone: {v}")
        return v

    # Slot grid
    SLOT_GRANULARITY_MINUTES: int = 30
    SLOT_MIN_STEP_MINUTES: int = 15

    # Date validation
    MIN_VALID_YEAR: int = 2020
    MAX_DATE_RANGE_DAYS: int = 730

    # Booking references
    BOOKING_REFERENCE_PREFIX: str = "APT"
    BOOKING_REFERENCE_ATTEMPTS: int = 5

    # Calendar helpers
    NEXT_AVAILABLE_SEARCH_DAYS: int = 60

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {"env_file": ".env", "case_sensitive": True}


# Global settings instance
settings = Settings()
