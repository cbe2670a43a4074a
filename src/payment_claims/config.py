"""
Configuration management using Pydantic Settings.

Values are read from ``PAYMENT_CLAIMS_*`` environment variables or a
``.env`` file and passed explicitly into the services that need them.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.models import Policy


class Settings(BaseSettings):
    """Workflow settings."""

    model_config = SettingsConfigDict(
        env_prefix="PAYMENT_CLAIMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    min_qa_threshold: int = Field(
        default=10, ge=0, le=100, description="Percentage of approvals sampled for QA; 0 disables"
    )
    decision_deadline_weeks: int = Field(default=12, ge=1)
    decision_deadline_warning_weeks: int = Field(default=2, ge=0)
    reference_length: int = Field(default=8, ge=6, le=32)
    preferred_policy: Policy = Field(
        default=Policy.EARLY_CAREER_PAYMENTS,
        description="Policy whose claim leads a multi-policy journey",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format string for log records",
    )

    @field_validator("log_level")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def decision_deadline(self) -> timedelta:
        return timedelta(weeks=self.decision_deadline_weeks)

    @property
    def decision_deadline_warning_point(self) -> timedelta:
        return timedelta(weeks=self.decision_deadline_warning_weeks)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
