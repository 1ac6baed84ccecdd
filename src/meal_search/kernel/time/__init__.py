"""Kernel time – Clock port + implementations."""
from meal_search.kernel.time.clock import (
    Clock,
    FrozenClock,
    SystemClock,
    days_ago,
    whole_days_between,
)

__all__ = ["Clock", "FrozenClock", "SystemClock", "days_ago", "whole_days_between"]
