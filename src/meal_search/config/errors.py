"""Errors raised while assembling :class:`~meal_search.config.SearchSettings`.

All of them are raised at startup, before the orchestrator or the trend
scheduler exist, so they never reach a search caller.
"""
from meal_search.kernel.errors import ApplicationError


class ConfigError(ApplicationError):
    """The search service cannot start with the settings it was given."""
    default_code = "config_error"


class MissingRequiredSettingError(ConfigError):
    """No loader supplied a value for a setting without a default."""
    default_code = "missing_required_setting"

    def __init__(self, setting_name: str) -> None:
        super().__init__(
            f"No value found for required search setting {setting_name}",
            detail={"setting": setting_name},
        )
        self.setting_name = setting_name


class InvalidSettingValueError(ConfigError):
    """A setting was supplied but cannot drive the search service.

    Raised both when a raw environment string does not coerce to the field
    type and when ``SearchSettings`` rejects a coerced value on construction
    (cache TTLs, page sizes, cron expressions, log level).
    """
    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, reason: str) -> None:
        super().__init__(
            f"Search setting {setting_name}={value!r} rejected: {reason}",
            detail={"setting": setting_name, "reason": reason},
        )
        self.setting_name = setting_name
        self.value = value
        self.reason = reason


__all__ = ["ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
