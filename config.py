from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TUTORING_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///./tutoring.db"
    jwt_secret: str = "change-me-in-production"
    jwt_lifetime_seconds: int = 3600
    log_level: str = "INFO"

    # Whether an unconfirmed REQUESTED session reserves the tutor's time
    requested_blocks_slot: bool = True
    allow_student_conflicts: bool = False

    min_session_minutes: int = Field(15, ge=1)
    max_session_minutes: int = Field(240, ge=1)
    min_slot_minutes: int = Field(30, ge=1)
    max_slot_minutes: int = Field(480, ge=1)
    min_advance_minutes: int = Field(0, ge=0)
    max_advance_days: int = Field(90, ge=1)
    slot_granularity_minutes: int = Field(15, ge=1, le=60)
    booking_max_retries: int = Field(3, ge=0)

    max_question_length: int = 1000
    max_notes_length: int = 2000
    max_summary_length: int = 1500
    max_cancel_reason_length: int = 500

    @field_validator("max_session_minutes")
    def check_session_bounds(cls, v, values):
        if "min_session_minutes" in values.data and v < values.data["min_session_minutes"]:
            raise ValueError("max_session_minutes must be >= min_session_minutes")
        return v

    @field_validator("max_slot_minutes")
    def check_slot_bounds(cls, v, values):
        if "min_slot_minutes" in values.data and v < values.data["min_slot_minutes"]:
            raise ValueError("max_slot_minutes must be >= min_slot_minutes")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
