"""
Application Settings
===================

Renderer settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    """Main renderer settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="svgfx", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Document Configuration
    default_width: int = Field(default=800, description="Default document width")
    default_height: int = Field(default=600, description="Default document height")
    max_width: int = Field(default=4000, description="Maximum document width")
    max_height: int = Field(default=4000, description="Maximum document height")

    # Markup Configuration
    number_precision: int = Field(
        default=2, ge=0, le=6, description="Decimal places for numbers written to markup"
    )
    drop_degenerate_elements: bool = Field(
        default=True, description="Drop zero-sized elements during resolution"
    )

    # Effect Configuration
    conic_sweep_segments: int = Field(
        default=90, ge=4, le=720, description="Wedges used to approximate a conic gradient"
    )
    shadow_filter_margin: int = Field(
        default=100, ge=0, description="Filter region margin in percent of the element box"
    )

    # Image Configuration
    max_image_bytes: int = Field(
        default=20 * 1024 * 1024, description="Largest image payload accepted by the image store"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("log_file")
    @classmethod
    def create_log_directory(cls, v: Optional[Path]) -> Optional[Path]:
        """Ensure the log file directory exists."""
        if v is not None:
            v.parent.mkdir(parents=True, exist_ok=True)
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="SVGFX_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
