"""
Nugget Launch - Configuration and settings.

Values come from NUGGET_* environment variables or a local .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class LaunchSettings(BaseSettings):
    """Settings for the launch orchestrator."""

    model_config = SettingsConfigDict(
        env_prefix="NUGGET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Prefetch
    # None = wait for every task however long it takes; otherwise a task
    # running longer than this falls back like any other failure
    prefetch_timeout_seconds: float | None = None

    # Onboarding
    screen_chain_delay_seconds: float = 0.3
    # Overrides the stored beta eligibility flag when set (e.g. TestFlight builds)
    beta_welcome_eligible: bool | None = None
    flags_path: Path = Path(".nugget") / "flags.json"


@lru_cache
def get_settings() -> LaunchSettings:
    """Get cached LaunchSettings instance."""
    return LaunchSettings()
