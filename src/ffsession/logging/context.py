"""Session context for structured logging.

Provides context propagation using contextvars, enabling automatic
injection of session_id and source into log records emitted while a
transcode session is running.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_source: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source", default=None
)


def set_session_context(session_id: str, source: str | None = None) -> None:
    """Set the current session context.

    Args:
        session_id: Short session identifier (e.g., "3fa9c2d1").
        source: Human-readable description of the input, or None.
    """
    _session_id.set(session_id)
    _source.set(source)


def clear_session_context() -> None:
    """Clear the current session context."""
    _session_id.set(None)
    _source.set(None)


@contextmanager
def session_context(
    session_id: str, source: str | None = None
) -> Generator[None, None, None]:
    """Context manager for session context.

    Sets context on entry and restores the previous values on exit.

    Example:
        with session_context("3fa9c2d1", "/videos/in.avi"):
            logger.info("Spawning ffmpeg")  # Automatically includes context
    """
    old_session_id = _session_id.get()
    old_source = _source.get()
    try:
        set_session_context(session_id, source)
        yield
    finally:
        _session_id.set(old_session_id)
        _source.set(old_source)


def get_session_context() -> tuple[str | None, str | None]:
    """Get current session context as (session_id, source)."""
    return _session_id.get(), _source.get()


class SessionContextFilter(logging.Filter):
    """Logging filter that injects session context into log records.

    Adds session_id and source attributes, plus a compact session_tag
    like "[S3fa9c2d1] " for text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        session_id, source = get_session_context()

        record.session_id = session_id
        record.source = source
        record.session_tag = f"[S{session_id}] " if session_id else ""

        return True  # Never filter out records
