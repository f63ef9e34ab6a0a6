"""
Configuration Management for the Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which backends exist and
ensures all required configuration is validated at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreBackend(str, Enum):
    """Interchangeable persistence backends behind the REST contract."""
    MEMORY = "memory"
    DOCUMENT = "document"
    SHEETS = "sheets"


class IdentitySettings(BaseSettings):
    """How the server resolves the user scope of a request."""

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_",
        extra="ignore"
    )

    header_name: str = Field(
        default="x-user-id",
        description="Request header carrying the advisory user id"
    )
    require_user_id: bool = Field(
        default=True,
        description="Reject requests without the header instead of using the shared scope"
    )
    default_user_id: str = Field(
        default="default_user",
        min_length=1,
        description="Shared fallback scope, used only when require_user_id is off"
    )


class StoreSettings(BaseSettings):
    """Which store backs the API."""

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        extra="ignore"
    )

    backend: StoreBackend = Field(
        default=StoreBackend.MEMORY,
        description="memory, document or sheets"
    )
    database_url: str = Field(
        default="sqlite:///tracker.db",
        description="SQLAlchemy URL for the document backend"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One sheet per resource kind
    tasks_sheet_name: str = Field(default="Tasks")
    habits_sheet_name: str = Field(default="Habits")
    finance_sheet_name: str = Field(default="Finance")
    planner_sheet_name: str = Field(default="Planner")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v

    def sheet_name_for(self, kind: str) -> str:
        return getattr(self, f"{kind}_sheet_name")


class ClientSettings(BaseSettings):
    """Sync client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CLIENT_",
        extra="ignore"
    )

    api_base_url: Optional[str] = Field(
        default="http://localhost:3001/api",
        description="REST API root; unset means local fallback mode"
    )
    local_storage_path: Optional[str] = Field(
        default=None,
        description="JSON file backing local storage; memory only when unset"
    )
    storage_prefix: str = Field(
        default="tracker",
        min_length=1,
        description="Prefix of namespaced local storage keys"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    port: int = Field(default=3001, ge=1, le=65535)

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def identity(self) -> IdentitySettings:
        return IdentitySettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def client(self) -> ClientSettings:
        return ClientSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Google Sheets is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    sections = ["identity", "store", "client", "app"]
    try:
        if settings.store.backend == StoreBackend.SHEETS:
            sections.append("google_sheets")
    except Exception:
        pass

    for name in sections:
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
