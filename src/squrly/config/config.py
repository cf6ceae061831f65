"""
Configuration management for squrly using Pydantic.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from squrly import __version__


# --- Nested Configuration Models ---


class CrawlerConfig(BaseModel):
    """Fetching and pacing configuration."""

    timeout: float = Field(default=30.0, gt=0, description="Absolute per-request timeout in seconds.")
    rate_limit_interval: float = Field(
        default=1.0, ge=0, description="Minimum seconds between the start of two fetch tasks."
    )
    retry_delay: float = Field(default=60.0, ge=0, description="Delay before the one-shot retry of a failed URL.")
    test_retry_delay: float = Field(default=0.01, ge=0, description="Retry delay used when debug.test_mode is on.")
    max_redirects: int = Field(default=20, ge=0, description="Maximum number of redirects followed per request.")
    user_agent: str = Field(default=f"squrly/{__version__}", description="User-Agent string for HTTP requests.")
    read_chunk_size: int = Field(default=64 * 1024, gt=0, description="Characters read from the input per chunk.")

    @field_validator("user_agent")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("user_agent must not be blank")
        return v


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="WARNING", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs go to stderr.")
    prometheus_port: int | None = Field(
        default=None,
        description="Port for Prometheus metrics exporter. None to disable.",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class DebugConfig(BaseModel):
    test_mode: bool = False


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "squrly"
    version: str = __version__
    secret: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("IM_SECRET", "SQURLY_SECRET"),
        description="Key appended to e-mail addresses before hashing.",
    )
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    debug: DebugConfig = Field(default_factory=DebugConfig)

    model_config = SettingsConfigDict(
        env_prefix="SQURLY_",
        env_nested_delimiter="__",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def effective_retry_delay(self) -> float:
        """Retry delay honoring the test-mode override."""
        if self.debug.test_mode:
            return self.crawler.test_retry_delay
        return self.crawler.retry_delay

    def secret_value(self) -> str:
        """Return the hashing secret, or an empty string when unset."""
        if self.secret is None:
            return ""
        return self.secret.get_secret_value()
