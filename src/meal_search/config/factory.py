"""Config settings – SettingsFactory."""
from __future__ import annotations

import dataclasses
from typing import Any, Sequence, TypeVar

from meal_search.config.errors import ConfigError, MissingRequiredSettingError
from meal_search.config.loaders import SettingsLoader
from meal_search.config.settings import Settings

T = TypeVar("T", bound=Settings)


class SettingsFactory:
    """Merge outputs from multiple loaders, apply overrides, and construct
    a settings dataclass in one step.

    Loaders are applied in order; later loaders override earlier ones for
    fields whose value differs from the declared default.  *overrides* (if
    provided) take the highest priority.
    """

    @staticmethod
    def create(
        settings_cls: type[T],
        loaders: Sequence[SettingsLoader] | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> T:
        """
        Parameters
        ----------
        settings_cls:
            The :class:`~meal_search.config.settings.Settings` subclass to
            construct.
        loaders:
            Ordered sequence of loaders.  Later loaders win on field conflicts.
        overrides:
            Explicit key-value pairs applied after all loaders, useful for
            tests and local development.

        Raises
        ------
        MissingRequiredSettingError
            When a required field (no default) is absent after all sources
            have been merged.
        ConfigError
            On any other construction failure, including a loader failing.
        """
        merged: dict[str, Any] = {}
        defaults = _defaults_of(settings_cls)

        for loader in loaders or []:
            try:
                instance = loader.load(settings_cls)
            except ConfigError:
                raise
            except Exception as exc:
                raise ConfigError(f"{type(loader).__name__} failed: {exc}", cause=exc) from exc
            for field in dataclasses.fields(instance):  # type: ignore[arg-type]
                value = getattr(instance, field.name)
                if field.name not in defaults or defaults[field.name] != value:
                    merged[field.name] = value

        if overrides:
            unknown = set(overrides) - {f.name for f in dataclasses.fields(settings_cls)}  # type: ignore[arg-type]
            if unknown:
                raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
            merged.update(overrides)

        for field in dataclasses.fields(settings_cls):  # type: ignore[arg-type]
            if field.name in merged or field.name in defaults:
                continue
            raise MissingRequiredSettingError(field.name)

        try:
            return settings_cls(**merged)
        except ConfigError:
            raise
        except Exception as exc:
            raise ConfigError(f"Failed to construct {settings_cls.__name__}: {exc}") from exc


def _defaults_of(settings_cls: type[Settings]) -> dict[str, Any]:
    defaults: dict[str, Any] = {}
    for field in dataclasses.fields(settings_cls):  # type: ignore[arg-type]
        if field.default is not dataclasses.MISSING:
            defaults[field.name] = field.default
        elif field.default_factory is not dataclasses.MISSING:  # type: ignore[misc]
            defaults[field.name] = field.default_factory()  # type: ignore[misc]
    return defaults


__all__ = ["SettingsFactory"]
