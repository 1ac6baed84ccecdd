"""Resilience – deadlines for store calls."""

from meal_search.resilience.timeouts import TimeoutPolicy

__all__ = ["TimeoutPolicy"]
