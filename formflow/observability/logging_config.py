"""
Structured logging for the form flow engine.

Every module logs through ``logging.getLogger(__name__)``. This module
only decides how records leave the process:

- production: one JSON object per line on stdout
- anything else: coloured single-line text on stderr

Request context (the respondent's session id and the form being
answered) is held per thread and stamped onto each record by
``ContextFilter``, so log calls inside the engine never pass it around:

    with log_context(session_id="abc-123", form_id="feedback"):
        logger.info("Answer accepted", extra={"step_id": "rating"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

ENV_VAR = "FORMFLOW_ENV"
LEVEL_ENV_VAR = "FORMFLOW_LOG_LEVEL"

CONTEXT_FIELDS = ("session_id", "form_id")

# ─── Request Context ──────────────────────────────────────────────────

_local = threading.local()


def _context() -> dict[str, str]:
    ctx = getattr(_local, "fields", None)
    if ctx is None:
        ctx = _local.fields = {}
    return ctx


def set_session_id(session_id: str) -> None:
    _context()["session_id"] = session_id


def get_session_id() -> Optional[str]:
    return _context().get("session_id")


def clear_session_id() -> None:
    _context().pop("session_id", None)


@contextmanager
def log_context(**fields: Optional[str]) -> Iterator[None]:
    """
    Attach context fields to every record logged inside the block.

    Previous values are restored on exit, so blocks nest.
    """
    ctx = _context()
    saved = {key: ctx.get(key) for key in fields}
    ctx.update({key: value for key, value in fields.items() if value is not None})
    try:
        yield
    finally:
        for key, value in saved.items():
            if value is None:
                ctx.pop(key, None)
            else:
                ctx[key] = value


class ContextFilter(logging.Filter):
    """Copies the thread's context fields onto records that lack them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


# ─── Formatters ───────────────────────────────────────────────────────

# Attributes every LogRecord has; anything else came from ``extra=``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    ``{"timestamp", "level", "logger", "message", **extra}`` per line.

    Extra values that JSON cannot encode are written as ``str(value)``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_extras(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """``[HH:MM:SS] LEVEL logger: message [form_id=… step_id=…]``"""

    _COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    _RESET = "\033[0m"
    _SHOWN = CONTEXT_FIELDS + ("step_id", "action", "status", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        color = self._COLORS.get(record.levelname, self._RESET)
        pairs = [
            f"{key}={getattr(record, key)}"
            for key in self._SHOWN
            if getattr(record, key, None) is not None
        ]
        line = (
            f"[{self.formatTime(record, '%H:%M:%S')}] "
            f"{color}{record.levelname:<8}{self._RESET} "
            f"{record.name}: {record.getMessage()}"
        )
        if pairs:
            line += f" [{' '.join(pairs)}]"
        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ─── Setup ────────────────────────────────────────────────────────────


def configure_logging(env: Optional[str] = None, level: Optional[int] = None) -> None:
    """
    Install a single handler on the root logger.

    Args:
        env: "production" selects JSON output. Defaults to $FORMFLOW_ENV,
             then "development".
        level: Root level. Defaults to $FORMFLOW_LOG_LEVEL, then INFO.
    """
    env = (env or os.environ.get(ENV_VAR, "development")).strip().lower()
    if level is None:
        level = logging.getLevelName(os.environ.get(LEVEL_ENV_VAR, "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    if env == "production":
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(DevFormatter())
    handler.addFilter(ContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
