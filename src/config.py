"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the app can start with minimal configuration.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Central configuration for the Receptionist Dashboard service.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed — use `.env.example` as the template.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Supabase ─────────────────────────────────────────────────
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_key: str = Field(default="", description="Supabase service-role key")
    supabase_anon_key: str = Field(default="", description="Supabase anon key used for auth flows")

    # ── Collections ──────────────────────────────────────────────
    appointment_fetch_limit: int = Field(default=100, ge=1, le=1000, description="Appointments loaded per collection")
    call_fetch_limit: int = Field(default=50, ge=1, le=1000, description="Calls loaded per collection")

    # ── Appointment rules ────────────────────────────────────────
    min_appointment_duration_minutes: int = Field(default=15, ge=1, description="Shortest bookable appointment")
    default_appointment_duration_minutes: int = Field(default=30, ge=1, description="Duration when none is given")

    # ── Reconciliation ───────────────────────────────────────────
    strict_status_mapping: Optional[bool] = Field(
        default=None,
        description="Raise on unmapped statuses and unknown change events (unset = strict outside production)",
    )

    # ── API ──────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def strict_mapping(self) -> bool:
        if self.strict_status_mapping is not None:
            return self.strict_status_mapping
        return not self.is_production

    @property
    def auth_key(self) -> str:
        return self.supabase_anon_key or self.supabase_service_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
