"""
Configuration Management for the Expense Dashboard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROJECTS = "jalapeño1,tomate,berries,berries2"
DEFAULT_PROJECT_COLORS = "#22c55e,#ef4444,#3b82f6,#a855f7"


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet holding the expenses"
    )

    # Worksheet names within the spreadsheet
    expenses_sheet_name: str = Field(
        default="proyecto_gastos",
        description="Name of the worksheet with expense rows"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the worksheet for audit events"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the dashboard."
            )
        return v


class DashboardSettings(BaseSettings):
    """Project catalog, chart and seeding configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Catalog
    project_catalog: str = Field(
        default=DEFAULT_PROJECTS,
        description="Comma-separated, ordered list of tracked projects"
    )
    project_colors: str = Field(
        default=DEFAULT_PROJECT_COLORS,
        description="Comma-separated line colors, matched to projects by position"
    )
    total_color: str = Field(
        default="#000000",
        description="Color of the dashed total line"
    )
    unknown_project_policy: Literal["fallback", "reject"] = Field(
        default="fallback",
        description="What to do with records whose project is not in the catalog"
    )
    fallback_project: Optional[str] = Field(
        default=None,
        description="Catalog entry that receives unknown projects (default: first entry)"
    )

    # Demo seeding
    seed_year: int = Field(
        default=2025,
        ge=2000,
        le=2100,
        description="Year the synthetic records are dated in"
    )
    seed_batch_size: int = Field(
        default=5,
        ge=1,
        le=500,
        description="Rows per insert call when seeding"
    )
    seed_batch_delay_seconds: float = Field(
        default=0.3,
        ge=0.0,
        le=10.0,
        description="Pause between insert calls (backend rate limits)"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        description="Symbol used when formatting amounts"
    )

    @property
    def projects_list(self) -> list[str]:
        """Get the project catalog as a list."""
        return [p.strip() for p in self.project_catalog.split(",") if p.strip()]

    @property
    def colors_list(self) -> list[str]:
        """Get project colors as a list."""
        return [c.strip() for c in self.project_colors.split(",") if c.strip()]

    @model_validator(mode='after')
    def validate_catalog(self) -> 'DashboardSettings':
        """The catalog must be non-empty and the fallback must belong to it."""
        projects = self.projects_list
        if not projects:
            raise ValueError("Project catalog cannot be empty")
        if len(set(projects)) != len(projects):
            raise ValueError("Project catalog contains duplicate entries")
        if self.fallback_project and self.fallback_project not in projects:
            raise ValueError(
                f"Fallback project '{self.fallback_project}' is not in the catalog"
            )
        return self


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Backend selection
    storage_backend: Literal["google_sheets", "memory"] = Field(
        default="google_sheets",
        description="Where expenses are read from and seeded into"
    )
    persist_audit_log: bool = Field(
        default=False,
        description="Also append audit events to the audit worksheet"
    )


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def dashboard(self) -> DashboardSettings:
        return DashboardSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "dashboard", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
