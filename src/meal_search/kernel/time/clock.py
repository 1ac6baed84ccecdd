"""Kernel time – Clock protocol + implementations."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Port: abstract clock so trend windows and recency are testable."""

    def now(self) -> datetime: ...


class SystemClock:
    """Production clock that delegates to ``datetime.now(UTC)``."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """Test clock pinned to a fixed point in time."""

    def __init__(self, fixed: datetime) -> None:
        self._fixed = fixed

    def now(self) -> datetime:
        return self._fixed

    def advance(self, **kwargs: int | float) -> None:
        """Advance the frozen time by the given ``timedelta`` kwargs."""
        self._fixed += timedelta(**kwargs)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Number of complete days from *earlier* to *later* (never negative)."""
    return max(0, (later - earlier).days)


def days_ago(clock: Clock, days: int) -> datetime:
    return clock.now() - timedelta(days=days)


__all__ = ["Clock", "FrozenClock", "SystemClock", "days_ago", "whole_days_between"]
