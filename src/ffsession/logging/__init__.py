"""Structured logging module for ffsession.

Provides configurable logging with JSON format support and file rotation.
Includes session context support so every record emitted during a run
carries its session id.
"""

from ffsession.logging.config import configure_logging
from ffsession.logging.context import (
    SessionContextFilter,
    clear_session_context,
    get_session_context,
    session_context,
    set_session_context,
)
from ffsession.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "SessionContextFilter",
    "clear_session_context",
    "configure_logging",
    "get_session_context",
    "session_context",
    "set_session_context",
]
