"""Config settings – Settings base class and SearchSettings."""
from __future__ import annotations

import dataclasses
import logging
from typing import ClassVar

from meal_search.config.errors import InvalidSettingValueError


@dataclasses.dataclass
class Settings:
    """Base class for 12-factor settings."""

    _prefix: ClassVar[str] = ""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        """Override to add cross-field validation."""


@dataclasses.dataclass
class SearchSettings(Settings):
    """Runtime configuration of the search subsystem.

    Every field maps to ``MEAL_SEARCH_<FIELD>`` in the environment.  The
    cache clear intervals bound how stale a cached answer may get; there is
    no write-through invalidation.
    """

    _prefix = "MEAL_SEARCH"

    mongo_url: str = "mongodb://localhost:27017"
    mongo_database: str = "meal_app"
    redis_url: str | None = None

    search_timeout_seconds: float = 5.0
    default_page_size: int = 20
    max_page_size: int = 100

    popularity_threshold: int = 10
    relevance_threshold: float = 0.7
    trending_window_days: int = 7
    trending_limit: int = 10
    effective_limit: int = 10
    trend_retention_days: int = 0

    suggestion_limit: int = 5
    autocomplete_limit: int = 10

    results_cache_clear_seconds: int = 300
    autocomplete_cache_clear_seconds: int = 900
    trending_cache_clear_seconds: int = 3600
    facet_cache_clear_seconds: int = 3600
    daily_cache_clear_cron: str = "0 0 * * *"
    trend_sweep_cron: str = "0 * * * *"

    log_level: str = "INFO"
    log_json: bool = True

    def _validate(self) -> None:
        positive = (
            "search_timeout_seconds",
            "default_page_size",
            "max_page_size",
            "popularity_threshold",
            "trending_window_days",
            "trending_limit",
            "effective_limit",
            "suggestion_limit",
            "autocomplete_limit",
            "results_cache_clear_seconds",
            "autocomplete_cache_clear_seconds",
            "trending_cache_clear_seconds",
            "facet_cache_clear_seconds",
        )
        for name in positive:
            value = getattr(self, name)
            if value <= 0:
                raise InvalidSettingValueError(name, value, "must be greater than zero")
        if self.default_page_size > self.max_page_size:
            raise InvalidSettingValueError(
                "default_page_size", self.default_page_size, "must not exceed max_page_size"
            )
        if not 0.0 <= self.relevance_threshold <= 1.0:
            raise InvalidSettingValueError(
                "relevance_threshold", self.relevance_threshold, "must be within [0, 1]"
            )
        if self.trend_retention_days < 0:
            raise InvalidSettingValueError(
                "trend_retention_days", self.trend_retention_days, "use 0 to disable retention"
            )
        for name in ("daily_cache_clear_cron", "trend_sweep_cron"):
            if len(getattr(self, name).split()) != 5:
                raise InvalidSettingValueError(name, getattr(self, name), "expected 5 cron fields")
        if logging.getLevelName(self.log_level.upper()) not in range(0, 51):
            raise InvalidSettingValueError("log_level", self.log_level, "unknown logging level")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level.upper())


__all__ = ["SearchSettings", "Settings"]
