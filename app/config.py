"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="structlog renderer: json for services, console for the CLI",
    )

    # Trade classification
    compliance_warning_fraction: float = Field(
        default=0.70,
        gt=0.0,
        le=1.0,
        description="Share of the daily buffer at which a trade becomes RISKY",
    )

    # Account health banding (percent of limit still available)
    compliance_danger_buffer_pct: float = Field(
        default=15.0,
        ge=0.0,
        le=100.0,
        description="Buffer percent below which an account is in DANGER",
    )
    compliance_warning_buffer_pct: float = Field(
        default=30.0,
        ge=0.0,
        le=100.0,
        description="Buffer percent below which an account is in WARNING",
    )

    @model_validator(mode="after")
    def check_health_bands(self) -> "Settings":
        if self.compliance_warning_buffer_pct < self.compliance_danger_buffer_pct:
            raise ValueError(
                "compliance_warning_buffer_pct must be >= compliance_danger_buffer_pct"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
