"""Observability – get_logger helper and request-scoped log context."""
from __future__ import annotations

import contextlib
from typing import Any, Iterator

import structlog


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a bound structlog logger.

    Parameters
    ----------
    name:
        Logger name (typically ``__name__`` of the calling module).
    **initial_values:
        Key-value pairs to bind on the returned logger.
    """
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


@contextlib.contextmanager
def bind_search_context(**values: Any) -> Iterator[None]:
    """Bind *values* to every log line emitted inside the block.

    Uses ``structlog.contextvars`` so concurrent searches on the same event
    loop keep their own ``request_id`` / ``search_type``.
    """
    tokens = structlog.contextvars.bind_contextvars(
        **{k: v for k, v in values.items() if v is not None}
    )
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


__all__ = ["bind_search_context", "get_logger"]
