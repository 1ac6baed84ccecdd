"""Resilience – TimeoutPolicy."""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Awaitable, Callable, TypeVar

from meal_search.kernel.errors import SearchTimeoutError

T = TypeVar("T")


@dataclasses.dataclass
class TimeoutPolicy:
    """Per-operation deadline.

    The wrapped awaitable is cancelled when the deadline passes, so a hung
    store call cannot hold the request forever.
    """
    timeout_seconds: float

    async def execute(self, func: Callable[[], Awaitable[T]], operation: str = "search") -> T:
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, TimeoutError) as exc:
            raise SearchTimeoutError(
                f"{operation} timed out after {self.timeout_seconds}s",
                timeout_seconds=self.timeout_seconds,
                detail={"operation": operation},
            ) from exc


__all__ = ["TimeoutPolicy"]
