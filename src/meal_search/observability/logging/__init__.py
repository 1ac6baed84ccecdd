"""Observability – structured logging helpers."""
from meal_search.observability.logging.factory import JsonLoggerFactory
from meal_search.observability.logging.processors import bind_search_context, get_logger

__all__ = ["JsonLoggerFactory", "bind_search_context", "get_logger"]
