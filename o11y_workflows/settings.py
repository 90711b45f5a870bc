"""Engine settings loaded from the environment (and an optional .env file)."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkflowSettings(BaseSettings):
    """
    Workflow engine settings.
    Loaded from environment variables with exact alias matching.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Registry
    custom_dir: Optional[Path] = Field(default=None, alias="WORKFLOWS_CUSTOM_DIR")
    save_dir: Path = Field(default=Path("workflows"), alias="WORKFLOWS_SAVE_DIR")

    # Execution
    output_summary_length: int = Field(default=500, alias="WORKFLOWS_OUTPUT_SUMMARY_LENGTH")

    # Logging
    log_level: str = Field(default="INFO", alias="WORKFLOWS_LOG_LEVEL")

    @field_validator("output_summary_length")
    @classmethod
    def validate_summary_length(cls, v: int) -> int:
        """Summary length must be positive."""
        if v <= 0:
            raise ValueError("output_summary_length must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> WorkflowSettings:
    """Return cached settings for the engine."""
    return WorkflowSettings()
