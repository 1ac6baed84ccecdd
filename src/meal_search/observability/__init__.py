"""Observability – structured logging."""
from meal_search.observability.logging import JsonLoggerFactory, bind_search_context, get_logger

__all__ = ["JsonLoggerFactory", "bind_search_context", "get_logger"]
