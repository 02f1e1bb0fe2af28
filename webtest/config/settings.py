"""Configuration management for the capture engine."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Automation backend
    backend_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the browser-automation backend",
    )
    backend_timeout_seconds: float = Field(
        default=120.0, ge=1.0, description="Request timeout for backend calls in seconds"
    )
    backend_connect_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Connect timeout for backend calls in seconds"
    )

    # Engine timers
    recording_poll_interval_ms: int = Field(
        default=3000, ge=0, description="Interval between recorded-action polls (ms)"
    )
    preview_debounce_ms: int = Field(
        default=750, ge=0, description="Quiet period before a real-time preview run (ms)"
    )
    playback_step_delay_ms: int = Field(
        default=1500, ge=0, description="Delay between playback steps (ms)"
    )

    # Test defaults
    default_test_name: str = Field(
        default="Real-time Preview", description="Name sent with preview executions"
    )
    default_test_url: Optional[str] = Field(
        default=None, description="URL pre-filled as the engine's target site"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )
    sanitize_logs: bool = Field(
        default=True, description="Redact screenshots and credentials from logs"
    )

    @field_validator("backend_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) base URL without trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid backend base URL: {v}")
        return v.rstrip("/")

    @field_validator("default_test_url")
    @classmethod
    def blank_url_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError(f"Invalid log format: {v}")
        return v

    @property
    def recording_poll_interval(self) -> float:
        return self.recording_poll_interval_ms / 1000.0

    @property
    def preview_debounce(self) -> float:
        return self.preview_debounce_ms / 1000.0

    @property
    def playback_step_delay(self) -> float:
        return self.playback_step_delay_ms / 1000.0


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    return Settings()
