"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── DomainError              (domain.py)
    │   └── InvalidRequestError
    ├── ApplicationError         (application.py)
    │   └── SearchTimeoutError
    └── InfrastructureError      (infrastructure.py)
        ├── DependencyFailureError
        └── ConcurrentUpdateError
"""

from meal_search.kernel.errors.application import ApplicationError, SearchTimeoutError
from meal_search.kernel.errors.base import BaseError
from meal_search.kernel.errors.domain import DomainError, InvalidRequestError
from meal_search.kernel.errors.infrastructure import (
    ConcurrentUpdateError,
    DependencyFailureError,
    InfrastructureError,
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
