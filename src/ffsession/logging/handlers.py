"""JSON log output for ffsession.

Records from the pump and diagnostic reader threads carry their thread
name, so a JSON log of one session can be untangled per thread.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord has; anything else came from extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

# Added by SessionContextFilter
_SESSION_ATTRS = ("session_id", "source")
_HIDDEN_ATTRS = frozenset(_SESSION_ATTRS) | {"session_tag"}


def _context(record: logging.LogRecord) -> dict[str, Any]:
    context = {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS
        and key not in _HIDDEN_ATTRS
        and not key.startswith("_")
    }
    # Applied last so extra={"source": ...} cannot shadow the session fields
    for name in _SESSION_ATTRS:
        value = getattr(record, name, None)
        if value:
            context[name] = value
    return context


class JSONFormatter(logging.Formatter):
    """Formats each record as a single-line JSON object.

    Keys: timestamp (UTC ISO-8601), level, logger, message; thread for
    records emitted off the main thread; context for extra= fields and
    the session id/source; exception or stack when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.threadName and record.threadName != "MainThread":
            entry["thread"] = record.threadName

        context = _context(record)
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        elif record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)
