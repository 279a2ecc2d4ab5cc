"""Logging setup and log-safety helpers.

Records carry the request id and, once a caller is authenticated, the
acting profile id and role. Both are held in contextvars so background
tasks spawned from a request keep the same context.

Care records are personal data: ``sanitize_error`` strips credentials,
signed-URL parameters, email addresses and absolute paths before an
exception message reaches a log line or an error response.
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from carehome.core.config import get_settings

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_actor: ContextVar[tuple[str, str] | None] = ContextVar("actor", default=None)

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(actor_label)s%(message)s"

# Loggers that are chatty at INFO under uvicorn and SQLAlchemy
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")

_REDACTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"Bearer\s+\S+", re.IGNORECASE), "Bearer [REDACTED]"),
    (
        re.compile(
            r"\b(password|secret|token|signature|api[_-]?key)\s*[=:]\s*[^\s&]+", re.IGNORECASE
        ),
        r"\1=[REDACTED]",
    ),
    (re.compile(r"[\w.+-]+@[\w-]+(\.[\w-]+)+"), "[EMAIL]"),
]
_ABSOLUTE_PATH = re.compile(r"(?:/[^\s:/'\"]+)+/([^\s:/'\"]+)")


def get_request_id() -> str | None:
    return _request_id.get()


def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def set_actor_context(profile_id: Any, role: Any) -> None:
    """Tag subsequent log records of this context with the acting profile."""
    _actor.set((str(profile_id), getattr(role, "value", str(role))))


def clear_actor_context() -> None:
    _actor.set(None)


class ContextFilter(logging.Filter):
    """Copy request and actor context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()  # type: ignore[attr-defined]
        actor = _actor.get()
        record.actor_id = actor[0] if actor else None  # type: ignore[attr-defined]
        record.actor_role = actor[1] if actor else None  # type: ignore[attr-defined]
        record.actor_label = f"[{actor[1]} {actor[0][:8]}] " if actor else ""  # type: ignore[attr-defined]
        return True


class CustomJsonFormatter(JsonFormatter):
    """JSON lines with a UTC timestamp, level, component and request context."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["component"] = record.name
        for field in ("request_id", "actor_id", "actor_role"):
            value = getattr(record, field, None)
            if value:
                log_record[field] = value
        log_record.pop("actor_label", None)


def _console_handler(level: int, fmt: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(CustomJsonFormatter("%(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.setLevel(level)
    return handler


def _file_handler(level: int, path: str, max_bytes: int, backups: int) -> logging.Handler:
    log_path = Path(path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(log_path), maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
    )
    handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logging() -> None:
    """Install the console handler, and the rotating file handler when the path is writable."""
    settings = get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handlers = [_console_handler(level, settings.log_format)]
    file_error: OSError | None = None
    try:
        handlers.append(
            _file_handler(
                level,
                settings.log_file_path,
                settings.log_file_max_bytes,
                settings.log_file_backup_count,
            )
        )
    except OSError as e:
        file_error = e

    context_filter = ContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if file_error is not None:
        root.warning(f"File logging disabled: {sanitize_error(file_error)}")
    root.info(f"Logging configured at {settings.log_level} ({settings.log_format})")


def sanitize_error(error: Exception, max_length: int = 500) -> str:
    """Render an exception message that is safe to log or return.

    Args:
        error: The exception to render
        max_length: Longest message kept before truncation

    Returns:
        The message with credentials, emails and directory prefixes removed
    """
    msg = str(error)
    for pattern, replacement in _REDACTIONS:
        msg = pattern.sub(replacement, msg)
    msg = _ABSOLUTE_PATH.sub(r".../\1", msg)
    if len(msg) > max_length:
        msg = msg[:max_length] + "...[truncated]"
    return msg


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
