"""
Configuration for the Household Finance Tracker

Every setting comes from the environment (or a local .env file) through
pydantic-settings. Each concern has its own settings class and env prefix:

    GOOGLE_SHEETS_*   remote store (credentials, spreadsheet, sheet names)
    LOCAL_STORAGE_*   fallback JSON file
    PROJECTION_*      projection window
    (no prefix)       LOG_LEVEL, USE_REMOTE_STORAGE

Sub-settings are built on access, so a missing Google Sheets setup does
not stop the local store from working.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_ENV_SOURCE = dict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class GoogleSheetsSettings(BaseSettings):
    """Remote store. Both credentials_path and spreadsheet_id are required."""

    model_config = SettingsConfigDict(env_prefix="GOOGLE_SHEETS_", **_ENV_SOURCE)

    credentials_path: str = Field(..., description="Service account credentials JSON")
    spreadsheet_id: str = Field(..., description="Key of the household spreadsheet")

    incomes_sheet_name: str = "Receitas"
    card_charges_sheet_name: str = "GastosCartao"
    debits_sheet_name: str = "GastosDebito"
    audit_sheet_name: str = "AuditLog"

    @field_validator('credentials_path')
    @classmethod
    def warn_missing_credentials(cls, v: str) -> str:
        # The file may be mounted after start-up, so only warn
        if not Path(v).exists():
            warnings.warn(f"Google credentials file not found at {v}.")
        return v


class LocalStorageSettings(BaseSettings):
    """Fallback JSON store."""

    model_config = SettingsConfigDict(env_prefix="LOCAL_STORAGE_", **_ENV_SOURCE)

    data_path: str = Field(
        default="data/finance.json",
        description="JSON file holding the local copy of all records"
    )

    @property
    def data_file(self) -> Path:
        return Path(self.data_path)


class ProjectionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PROJECTION_", **_ENV_SOURCE)

    months_ahead: int = Field(
        default=6,
        ge=1,
        le=36,
        description="How many months (current included) the projection covers"
    )


class AppSettings(BaseSettings):
    """Process-wide switches."""

    model_config = SettingsConfigDict(**_ENV_SOURCE)

    log_level: str = "INFO"
    use_remote_storage: bool = Field(
        default=True,
        description="Try Google Sheets before falling back to local storage"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """Entry point for every settings group."""

    model_config = SettingsConfigDict(**_ENV_SOURCE)

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def projection(self) -> ProjectionSettings:
        return ProjectionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


SETTINGS_GROUPS = ("google_sheets", "local_storage", "projection", "app")


@lru_cache()
def get_settings() -> Settings:
    """Process-wide Settings (cached; get_settings.cache_clear() reloads)."""
    return Settings()


def validate_all_settings() -> dict:
    """
    Try to build every settings group.

    Returns {group: ok} for each group in SETTINGS_GROUPS, plus a
    "{group}_error" message for every group that failed.
    """
    settings = get_settings()
    results = {}

    for group in SETTINGS_GROUPS:
        try:
            getattr(settings, group)
        except ValueError as e:
            results[group] = False
            results[f"{group}_error"] = str(e)
        else:
            results[group] = True

    return results
