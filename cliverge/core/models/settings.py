"""
Application settings: the ``settings.json`` document.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

_MODEL_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class AppearanceSettings(BaseModel):
    model_config = _MODEL_CONFIG

    theme: str = "dark"
    font_size: float = Field(default=14.0, alias="fontSize")
    window_size: list[float] = Field(
        default_factory=lambda: [1200.0, 800.0], alias="windowSize",
    )


class BehaviorSettings(BaseModel):
    model_config = _MODEL_CONFIG

    auto_check_updates: bool = Field(default=True, alias="autoCheckUpdates")
    check_interval_minutes: int = Field(default=30, alias="checkIntervalMinutes")
    show_notifications: bool = Field(default=True, alias="showNotifications")
    version_db_max_age_days: int = Field(default=7, alias="versionDbMaxAgeDays")


class PathSettings(BaseModel):
    model_config = _MODEL_CONFIG

    tools_config_path: str = Field(default="tools.json", alias="toolsConfigPath")
    data_directory: str = Field(default="~/.cliverge", alias="dataDirectory")


class AppSettings(BaseModel):
    """Top-level settings. Missing sections fall back to defaults."""

    model_config = _MODEL_CONFIG

    appearance: AppearanceSettings = Field(default_factory=AppearanceSettings)
    behavior: BehaviorSettings = Field(default_factory=BehaviorSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
