"""
Application Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Critical config is validated at startup.
"""

import sys
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Record store backend
    record_store: Literal["postgres", "memory"] = "postgres"

    # Database Configuration - NO DEFAULT for production safety
    database_url: str = ""
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    run_migrations_on_startup: bool = True

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Game Bridge API"
    api_version: str = "0.1.0"
    api_description: str = "Save-data and purchase verification bridge for the game client"

    # Google Play service account used to verify receipts
    google_play_client_email: str = ""
    google_play_private_key: str = ""
    google_play_token_uri: str = "https://oauth2.googleapis.com/token"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "gamebridge-api"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start without a usable store and billing credential.
        """
        errors: list[str] = []

        if self.record_store == "postgres":
            if not self.database_url:
                errors.append("DATABASE_URL is required when RECORD_STORE=postgres")
            elif not self.database_url.startswith(("postgresql", "postgres")):
                errors.append(
                    f"DATABASE_URL must be a PostgreSQL URL, got: {self.database_url[:20]}..."
                )

        if not self.google_play_client_email:
            errors.append("GOOGLE_PLAY_CLIENT_EMAIL is required but empty or missing")
        if not self.google_play_private_key:
            errors.append("GOOGLE_PLAY_PRIVATE_KEY is required but empty or missing")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def google_play_key_pem(self) -> str:
        """Private key with escaped newlines restored (env files flatten them)."""
        return self.google_play_private_key.replace("\\n", "\n")


# Global settings instance - validates at import time
settings = Settings()
