"""A logging formatter that writes each record as indented JSON."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import IO, Any

__all__ = ["PrettyJSONFormatter", "new_pretty_json_handler"]

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

_LEVEL_NAMES = {"WARNING": "WARN"}


class PrettyJSONFormatter(logging.Formatter):
    """Format records as indented JSON objects with sorted keys."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="seconds"),
            "level": _LEVEL_NAMES.get(record.levelname, record.levelname),
            "msg": record.getMessage(),
            "pippo": "pluto",
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value
        return json.dumps(entry, indent=2, sort_keys=True, ensure_ascii=False, default=str)


def new_pretty_json_handler(stream: IO[str] | None = None, level: int = logging.INFO) -> logging.Handler:
    """Return a handler writing pretty JSON records at ``level`` or above to ``stream``."""
    handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(PrettyJSONFormatter())
    return handler