"""Domain errors – malformed search requests."""

from __future__ import annotations

from typing import Any

from meal_search.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a request breaks a rule of the search domain."""

    default_code = "domain_error"


class InvalidRequestError(DomainError):
    """The caller sent a search request that cannot be served.

    ``field`` names the offending input (``type``, ``filters``, ``facets``,
    ``field_weights``, ...). Raised before any side effect happens.
    """

    default_code = "invalid_request"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        if field is not None:
            self.detail.setdefault("field", field)


__all__ = ["DomainError", "InvalidRequestError"]
