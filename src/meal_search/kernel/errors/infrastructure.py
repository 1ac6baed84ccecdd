"""Infrastructure errors – text store, trend store and cache failures."""

from __future__ import annotations

from typing import Any

from meal_search.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure that is not a business rule violation."""

    default_code = "infrastructure_error"


class DependencyFailureError(InfrastructureError):
    """A backing store call failed (unreachable, rejected the query, ...)."""

    default_code = "dependency_failure"

    def __init__(
        self,
        dependency: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Dependency '{dependency}' failed", **kwargs)
        self.dependency = dependency
        self.detail.setdefault("dependency", dependency)


class ConcurrentUpdateError(InfrastructureError):
    """An optimistic update kept losing the race for the same record."""

    default_code = "concurrent_update"

    def __init__(self, key: str, attempts: int, **kwargs: Any) -> None:
        super().__init__(f"Gave up updating '{key}' after {attempts} attempts", **kwargs)
        self.key = key
        self.attempts = attempts


__all__ = ["ConcurrentUpdateError", "DependencyFailureError", "InfrastructureError"]
