"""Configuration for the clinic booking service.

Every setting can be supplied as an environment variable with the
``CLINIC_`` prefix (``CLINIC_DATABASE_URL``, ``CLINIC_SLOT_MINUTES``...) or
through a ``.env`` file.
"""

from functools import lru_cache
from typing import Annotated, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLINIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./clinic_booking.db",
        description="SQLAlchemy async DSN, e.g. postgresql+psycopg://user:pw@host/clinic",
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=10, ge=0)
    db_echo: bool = Field(default=False, description="Log every SQL statement")

    # Scheduling
    slot_minutes: int = Field(
        default=30,
        ge=5,
        le=240,
        description="Width of a bookable slot in minutes",
    )
    booking_horizon_days: int = Field(
        default=30,
        ge=1,
        description="Patients may book from today up to this many days ahead (exclusive)",
    )
    upcoming_sessions_days: int = Field(
        default=7,
        ge=1,
        le=31,
        description="Default window for a doctor's upcoming-sessions overview",
    )
    clinic_timezone: str = Field(
        default="Asia/Colombo",
        description="IANA timezone that decides which calendar day is 'today'",
    )

    # HTTP
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_key: str = Field(
        default="",
        description="Shared key required on /api routes; empty disables the check",
    )
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="Comma-separated list of allowed browser origins",
    )
    debug_mode: bool = Field(
        default=False,
        description="Return exception text in 500 responses",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @field_validator("clinic_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
