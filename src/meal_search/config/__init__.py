"""Config – 12-factor settings and loaders."""

from meal_search.config.errors import (
    ConfigError,
    InvalidSettingValueError,
    MissingRequiredSettingError,
)
from meal_search.config.factory import SettingsFactory
from meal_search.config.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader
from meal_search.config.settings import SearchSettings, Settings

__all__ = [
    "ConfigError",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "SearchSettings",
    "Settings",
    "SettingsFactory",
    "SettingsLoader",
]
