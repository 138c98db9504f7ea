"""Agent configuration — learning subsystem, default platform, logging.

Reads from environment variables (or a .env file) via pydantic-settings,
the same way ReasoningSettings does for the LLM provider.
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentSettings(BaseSettings):
    """Settings for the workflow agent core.

    Environment variables:
      LEARNING_DB_PATH          — SQLite file for generation/feedback history.
                                  Empty (default) keeps history in memory only.
      LEARNING_PERSIST_INTERVAL — Seconds between background pattern analysis
                                  runs. 0 (default) disables the background task.
      LEARNING_HISTORY_LIMIT    — Generations kept in memory (default: 500)
      LEARNING_FEEDBACK_LIMIT   — Feedback records kept in memory (default: 1000)
      DEFAULT_PLATFORM          — Target platform when none is given (default: "n8n")
      AGENT_LOG_LEVEL           — Root log level (default: "WARNING")
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    learning_db_path: str = Field(default="", validation_alias="LEARNING_DB_PATH")
    persist_interval: float = Field(default=0.0, validation_alias="LEARNING_PERSIST_INTERVAL")
    history_limit: int = Field(default=500, validation_alias="LEARNING_HISTORY_LIMIT")
    feedback_limit: int = Field(default=1000, validation_alias="LEARNING_FEEDBACK_LIMIT")
    default_platform: str = Field(default="n8n", validation_alias="DEFAULT_PLATFORM")
    log_level: str = Field(default="WARNING", validation_alias="AGENT_LOG_LEVEL")

    @field_validator("default_platform", "log_level", mode="before")
    @classmethod
    def strip_value(cls, v: object) -> str:
        return str(v).strip()

    @field_validator("log_level")
    @classmethod
    def uppercase_level(cls, v: str) -> str:
        return v.upper() or "WARNING"

    @field_validator("history_limit", "feedback_limit")
    @classmethod
    def positive_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("history/feedback limits must be >= 1")
        return v

    @field_validator("persist_interval")
    @classmethod
    def non_negative_interval(cls, v: float) -> float:
        return max(0.0, v)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once for an entry point.

    level defaults to AGENT_LOG_LEVEL.
    """
    if level is None:
        level = AgentSettings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
