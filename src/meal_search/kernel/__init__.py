"""Kernel – framework-agnostic building blocks (errors, time)."""

from meal_search.kernel.errors import (
    ApplicationError,
    BaseError,
    ConcurrentUpdateError,
    DependencyFailureError,
    DomainError,
    InfrastructureError,
    InvalidRequestError,
    SearchTimeoutError,
)

__all__ = [
    "ApplicationError",
    "BaseError",
    "ConcurrentUpdateError",
    "DependencyFailureError",
    "DomainError",
    "InfrastructureError",
    "InvalidRequestError",
    "SearchTimeoutError",
]
