"""
PromptDash Configuration Module.

Handles all application settings, feature flags, and environment configuration.
Uses pydantic-settings for validation and type safety.

Architecture: Gemini Developer API (API key) for command interpretation.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    """Feature flags for enabling/disabling modules."""

    model_config = SettingsConfigDict(env_prefix="FEATURE_")

    commands: bool = True
    usage: bool = True

    def to_dict(self) -> dict[str, bool]:
        """Return feature flags as dictionary for health endpoint."""
        return {
            "commands": self.commands,
            "usage": self.usage,
        }


class GeminiSettings(BaseSettings):
    """Gemini API configuration."""

    model_config = SettingsConfigDict(env_prefix="GEMINI_")

    api_key: str = Field(default="", description="Gemini API Key")
    model: str = Field(default="gemini-2.5-flash", description="Model used to interpret commands")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call timeout")
    max_retries: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Retries after a timeout or transient upstream failure (identical prompt)",
    )
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)


class LedgerSettings(BaseSettings):
    """Usage ledger and statistics cache configuration."""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    max_records: int = Field(default=100, ge=1, description="Usage records kept in memory")
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Statistics cache entry lifetime")
    recent_limit: int = Field(default=10, ge=1, description="Records returned by the usage endpoint")


class PromptSettings(BaseSettings):
    """Prompt construction limits."""

    model_config = SettingsConfigDict(env_prefix="PROMPT_")

    max_tokens: int = Field(default=8000, ge=1, description="Soft token budget for the built prompt")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_log_level: str = "INFO"

    # Nested settings
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    prompt: PromptSettings = Field(default_factory=PromptSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
