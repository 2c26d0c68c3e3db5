"""
Logging setup for the entrypoint and the test harness.

Provides:
- Structured logging with JSON format
- Plain ``[sftpbox] message`` logging to stderr (container default)
- Context tracking of the account currently being provisioned

Usage:
    from sftpbox.core.observability import configure_logging, provisioning_user

    configure_logging("INFO", structured=False)
    with provisioning_user("alice"):
        logger.info("Creating home directory")
"""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# ============================================================================
# Context Variables
# ============================================================================

# User whose account is being provisioned - links all logs for one spec
_user_ctx: ContextVar[str] = ContextVar("user", default="")


def get_user() -> str:
    """Get the user currently being provisioned."""
    return _user_ctx.get()


@contextmanager
def provisioning_user(user: str) -> Iterator[None]:
    """Attach ``user`` to every log record emitted inside the block."""
    token = _user_ctx.set(user)
    try:
        yield
    finally:
        _user_ctx.reset(token)


# ============================================================================
# Formatters
# ============================================================================

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON with standard fields:
    - timestamp: ISO 8601 format
    - level: Log level
    - logger: Logger name
    - message: Log message
    - user: Account being provisioned (if any)
    - extra: Any additional context from logging.extra
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        user = get_user()
        if user:
            log_entry["user"] = user

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        extra_keys = {
            k: v for k, v in record.__dict__.items() if k not in _RESERVED_RECORD_KEYS
        }
        if extra_keys:
            log_entry["extra"] = extra_keys

        return json.dumps(log_entry, default=str)


class PlainFormatter(logging.Formatter):
    """Container log line: ``[sftpbox] WARNING: message (user=alice)``."""

    def __init__(self, prog: str = "sftpbox") -> None:
        super().__init__()
        self.prog = prog

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            label = "FATAL" if record.levelno >= logging.CRITICAL else record.levelname
            message = f"{label}: {message}"
        user = get_user()
        if user:
            message = f"{message} (user={user})"
        line = f"[{self.prog}] {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(level: str = "INFO", structured: bool = False, prog: str = "sftpbox") -> None:
    """
    Configure root logger.

    Output goes to stderr so a passthrough command keeps a clean stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Emit JSON lines instead of plain text
        prog: Program label for plain output
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter() if structured else PlainFormatter(prog))

    root_logger.addHandler(handler)
