"""Logging setup using Loguru.

Console output is human-readable and coloured in development, or one JSON
object per line when ``settings.log_json`` is set. JSON lines carry the
request context of the engine operation that emitted them:

    {"time": "...", "level": "INFO", "message": "👏 bob clapped ...",
     "module": "engine", "function": "add_clap", "line": 503,
     "request_id": "4f1c9a2b7d0e", "user_id": "bob", "operation": "add_clap"}

Example:
    >>> from blogdb.logging import logger, set_request_context
    >>> set_request_context(request_id="a1b2c3", operation="list_posts")
    >>> logger.bind(page=1).info("Listing posts")
"""

import json
import sys
import traceback
from contextvars import ContextVar
from pathlib import Path
from typing import Any, TextIO

from loguru import logger as loguru_logger

from blogdb.config import settings

CONTEXT_KEYS = ("request_id", "user_id", "operation")

HUMAN_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_request_context: ContextVar[dict[str, str]] = ContextVar("request_context", default={})


# =============================================================================
# Request Context
# =============================================================================


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    operation: str | None = None,
) -> None:
    """Merge the given values into the current context.

    Arguments left as None keep their previous value.
    """
    updates = {"request_id": request_id, "user_id": user_id, "operation": operation}
    context = dict(_request_context.get())
    context.update({key: value for key, value in updates.items() if value is not None})
    _request_context.set(context)


def clear_request_context() -> None:
    _request_context.set({})


def get_request_context() -> dict[str, str | None]:
    """Current context, with None for unset keys."""
    context = _request_context.get()
    return {key: context.get(key) for key in CONTEXT_KEYS}


# =============================================================================
# JSON Records
# =============================================================================


def _exception_fields(exception: Any) -> dict[str, Any]:
    return {
        "type": exception.type.__name__ if exception.type else None,
        "value": str(exception.value),
        "traceback": traceback.format_exception(
            exception.type, exception.value, exception.traceback
        ),
    }


def serialize(record: dict[str, Any]) -> str:
    """Render a loguru record as one JSON line.

    Bound ``extra`` fields are merged last and may shadow context keys.
    """
    payload: dict[str, Any] = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }
    payload.update(_request_context.get())
    payload.update(record["extra"])
    if record["exception"]:
        payload["exception"] = _exception_fields(record["exception"])
    return json.dumps(payload, default=str)


def _attach_json(record: dict[str, Any]) -> None:
    # Runs before "json" is added to extra, so the line never embeds itself
    record["extra"]["json"] = serialize(record)


def _json_format(record: dict[str, Any]) -> str:
    return "{extra[json]}\n"


# Every record gets its JSON form, so sinks added later may use either format
logger = loguru_logger.patch(_attach_json)


# =============================================================================
# Sinks
# =============================================================================


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Path | None = None,
    colorize: bool = True,
    stream: TextIO | None = None,
) -> Any:
    """Replace every Loguru sink with the BlogDB console (and file) sinks.

    Args:
        level: Minimum level name
        json_logs: One JSON object per line instead of the coloured format
        log_file: Also write to this file, rotated at 50 MB and kept 14 days
        colorize: Colour the human-readable format
        stream: Console stream (stdout when None)

    Returns:
        The module logger
    """
    loguru_logger.remove()
    console_format = _json_format if json_logs else HUMAN_FORMAT

    logger.add(
        stream or sys.stdout,
        level=level,
        format=console_format,
        colorize=colorize and not json_logs,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=_json_format if json_logs else "{time} | {level} | {message}",
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            enqueue=True,
        )

    return logger


setup_logging(
    level=settings.log_level,
    json_logs=settings.log_json,
    log_file=settings.log_file,
    colorize=not settings.log_json,
)


__all__ = [
    "logger",
    "serialize",
    "setup_logging",
    "set_request_context",
    "clear_request_context",
    "get_request_context",
]
