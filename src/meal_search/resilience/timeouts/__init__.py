"""Resilience – timeout policies."""
from meal_search.resilience.timeouts.policy import TimeoutPolicy

__all__ = ["TimeoutPolicy"]
