"""Logging for SmartChef.

One ``smartchef`` logger, written to stderr so CLI output on stdout stays clean.

Environment:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text (coloured, one line per record) or json (one object per line)

Call sites attach context with ``extra={"recipe_id": ..., "user_id": ...}``;
both formatters render whichever of CONTEXT_FIELDS are present.
"""

import json
import logging
import os
import sys
from typing import Any


CONTEXT_FIELDS = ("recipe_id", "user_id", "capability", "generation")

RESET = "\033[0m"

# level -> (ANSI colour, icon)
LEVEL_STYLES = {
    "DEBUG": ("\033[36m", "🔍"),
    "INFO": ("\033[32m", "ℹ️"),
    "WARNING": ("\033[33m", "⚠️"),
    "ERROR": ("\033[31m", "❌"),
    "CRITICAL": ("\033[35m", "🔥"),
}


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RichTextFormatter(logging.Formatter):
    """Coloured single-line records for terminals.

    Layout: ``<icon> <time> <LEVEL> <logger> <message> [key=value ...]``,
    followed by the traceback when there is one.
    """

    def format(self, record: logging.LogRecord) -> str:
        color, icon = LEVEL_STYLES.get(record.levelname, (RESET, ""))
        context = _context(record)
        suffix = " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]" if context else ""

        line = (
            f"{color}{icon} {self.formatTime(record, '%Y-%m-%d %H:%M:%S')} "
            f"{record.levelname:<8} {record.name:<12} {record.getMessage()}{suffix}{RESET}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """Return the named logger, attaching a stderr handler on first use.

    Level and format are read from LOG_LEVEL / LOG_TYPE at that moment; later
    calls return the logger unchanged.
    """
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    instance.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if os.getenv("LOG_TYPE", "text").lower() == "json" else RichTextFormatter())
    instance.addHandler(handler)
    return instance


logger = get_logger("smartchef")

# SDK request chatter
for _noisy in ("google.genai", "httpx"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
