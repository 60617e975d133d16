from __future__ import annotations

import logging
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("odontogram.config")

NumberingSystem = Literal["FDI", "UNIVERSAL", "PALMER"]


class Settings(BaseSettings):
    app_env: str = "development"
    database_url: str = "sqlite:///./odontogram.db"
    chart_timezone: str = Field(default="Europe/Budapest", alias="CHART_TIMEZONE")
    autosave_debounce_ms: int = Field(default=500, alias="AUTOSAVE_DEBOUNCE_MS")
    numbering_system: NumberingSystem = Field(default="FDI", alias="NUMBERING_SYSTEM")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    @field_validator("autosave_debounce_ms", mode="before")
    @classmethod
    def _coerce_empty_ints(cls, value, info):
        if value in {"", None}:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("numbering_system", mode="before")
    @classmethod
    def _normalize_numbering(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


def _is_production(app_env: str) -> bool:
    return app_env.strip().lower() in {"prod", "production"}


def validate_settings(settings: Settings) -> None:
    production = _is_production(settings.app_env)
    failures: list[str] = []
    warnings: list[str] = []

    try:
        ZoneInfo(settings.chart_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        failures.append(f"CHART_TIMEZONE {settings.chart_timezone!r} is not a known timezone")

    if settings.autosave_debounce_ms < 0:
        failures.append("AUTOSAVE_DEBOUNCE_MS must not be negative")
    elif settings.autosave_debounce_ms == 0:
        warnings.append("AUTOSAVE_DEBOUNCE_MS is 0; every chart change is written immediately")

    if settings.database_url.startswith("sqlite"):
        msg = "DATABASE_URL points at sqlite"
        if production:
            failures.append(msg)
        else:
            warnings.append(msg)

    for warning in warnings:
        logger.warning("Config warning: %s", warning)

    if failures:
        raise RuntimeError("Config validation failed: " + "; ".join(failures))


settings = Settings()
