"""Application-layer errors – cross-cutting concerns at use-case level."""

from __future__ import annotations

from typing import Any

from meal_search.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


class SearchTimeoutError(ApplicationError):
    """A search operation did not finish before its deadline."""

    default_code = "search_timeout"

    def __init__(
        self,
        message: str = "Search timed out",
        *,
        timeout_seconds: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


__all__ = ["ApplicationError", "SearchTimeoutError"]
