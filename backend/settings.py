"""
Centralized settings configuration using Pydantic BaseSettings.

All environment variables are defined here with types, defaults, and validation.
Use get_settings() for a cached process-wide instance.

Usage:
    from backend.settings import get_settings, Settings

    settings = get_settings()
    print(settings.supabase_url)

    # Tests: build an isolated instance
    settings = Settings(environment="test", _env_file=None)
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from application.models import AVAILABLE_MODELS, DEFAULT_MODEL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Core Environment
    # -------------------------------------------------------------------------
    environment: str = Field(
        default="development",
        description="Runtime environment: development, staging, production, test",
    )

    # -------------------------------------------------------------------------
    # Supabase (identity provider + persistent store)
    # -------------------------------------------------------------------------
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL",
    )
    supabase_anon_key: Optional[str] = Field(
        default=None,
        description="Supabase anon (public) key; row access is scoped per user",
    )

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    oauth_redirect_url: str = Field(
        default="http://localhost:5173/auth/callback",
        description="Callback URL the OAuth provider redirects back to",
    )

    # -------------------------------------------------------------------------
    # Chat message API
    # -------------------------------------------------------------------------
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the chat message backend",
    )
    api_timeout_seconds: float = Field(
        default=60.0,
        description="Request timeout for the chat message backend",
    )

    # -------------------------------------------------------------------------
    # Local preferences
    # -------------------------------------------------------------------------
    preferences_path: Path = Field(
        default=Path("~/.chat-frontend/preferences.json"),
        description="JSON file holding model/tool/sidebar preferences",
    )

    # -------------------------------------------------------------------------
    # AI Model Defaults
    # -------------------------------------------------------------------------
    default_model: str = Field(
        default=DEFAULT_MODEL,
        description="Model selected when no preference is stored",
    )
    available_models: List[str] = Field(
        default_factory=lambda: list(AVAILABLE_MODELS),
        description="Models the user may select",
    )

    # -------------------------------------------------------------------------
    # Observability - OpenTelemetry
    # -------------------------------------------------------------------------
    otel_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing and metrics",
    )
    otel_service_name: str = Field(
        default="chat-frontend",
        description="Service name reported on spans and metrics",
    )
    otel_exporter_otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP/HTTP collector endpoint. Console exporter when unset.",
    )
    otel_metrics_export_interval_ms: int = Field(
        default=60000,
        description="Metric export interval in milliseconds",
    )

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("available_models", mode="before")
    @classmethod
    def parse_available_models(cls, v: Union[str, List[str], None]) -> List[str]:
        """Accept JSON array, comma-separated string, or list."""
        if v is None:
            return list(AVAILABLE_MODELS)
        if isinstance(v, list):
            return v
        v = v.strip()
        if not v:
            return list(AVAILABLE_MODELS)
        if v.startswith("["):
            return json.loads(v)
        return [model.strip() for model in v.split(",") if model.strip()]

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is a valid value."""
        valid_environments = {"development", "staging", "production", "test"}
        if v.lower() not in valid_environments:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {valid_environments}"
            )
        return v.lower()

    # -------------------------------------------------------------------------
    # Helper Properties
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"

    def require_supabase(self) -> None:
        """Raise ValueError naming any missing Supabase variable."""
        missing = [
            name
            for name, value in (
                ("SUPABASE_URL", self.supabase_url),
                ("SUPABASE_ANON_KEY", self.supabase_anon_key),
            )
            if not value
        ]
        if missing:
            raise ValueError(
                "Supabase configuration is missing. Please set "
                + " and ".join(missing)
                + " in your environment or .env file."
            )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    For testing, you can clear the cache with get_settings.cache_clear().

    Returns:
        Settings: Application settings instance
    """
    return Settings()
