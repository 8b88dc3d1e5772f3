"""Engine configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application environment
    env: Literal["dev", "test", "staging", "prod"] = "dev"

    # Logging
    log_level: str = "INFO"

    # Business hours (whole hours, local clinic time)
    morning_start: int = 8
    morning_end: int = 12
    afternoon_start: int = 13
    afternoon_end: int = 17

    # Scheduling defaults
    default_slot_minutes: int = 30
    default_facility_id: str = "fac-001"

    # Query paging
    default_page_size: int = 20
    max_page_size: int = 100

    # Encounter sign-off
    default_attestation: str = (
        "I attest that this documentation is accurate and complete."
    )

    @property
    def business_periods(self) -> tuple[tuple[int, int], ...]:
        """Working periods as (start_hour, end_hour) pairs."""
        return (
            (self.morning_start, self.morning_end),
            (self.afternoon_start, self.afternoon_end),
        )

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.env == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode."""
        return self.env == "prod"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
