"""Logging setup using Loguru.

This module configures structured logging with:
- JSON output for production environments
- Context variables for action tracking (request_id, user_id, operation)
- Optional file output with rotation and compression

Example:
    >>> from ither.logging import logger, set_request_context
    >>> set_request_context(user_id="user-1", operation="forum.create_post")
    >>> logger.info("Creating post")
    >>> # JSON output includes user_id and operation automatically
"""

import json
import sys
import traceback
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger

from ither.config import settings

# =============================================================================
# Context Variables for Action Tracking
# =============================================================================

# Context variables maintain values across await points
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


# =============================================================================
# Custom JSON Serialization
# =============================================================================


def serialize(record: dict[str, Any]) -> str:
    """Serialize a Loguru record into a compact JSON line.

    Includes context variables (request_id, user_id, operation) when set and
    any extra fields bound with ``logger.bind()``.

    Args:
        record: Loguru log record dictionary

    Returns:
        JSON string with selected fields and context
    """
    subset = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }

    if request_id := request_id_var.get():
        subset["request_id"] = request_id
    if user_id := user_id_var.get():
        subset["user_id"] = user_id
    if operation := operation_var.get():
        subset["operation"] = operation

    subset.update(record["extra"])

    if exc := record["exception"]:
        subset["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value),
            "traceback": traceback.format_exception(
                exc.type, exc.value, exc.traceback
            ),
        }

    return json.dumps(subset, default=str)


def patching(record: dict[str, Any]) -> None:
    """Patch log records with serialized JSON (modified in-place)."""
    record["serialized"] = serialize(record)


def custom_formatter(record: dict[str, Any]) -> str:
    """Formatter that emits the pre-serialized JSON line."""
    return "{serialized}\n"


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Path | None = None,
    colorize: bool = True,
) -> Any:
    """Configure Loguru.

    1. Removes the default Loguru handler
    2. Patches the logger with custom JSON serialization
    3. Adds a stderr handler (JSON or human-readable)
    4. Optionally adds a file handler with rotation/compression

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Output JSON format (True for production)
        log_file: Optional file path for log output
        colorize: Enable colored output for human-readable logs

    Returns:
        Configured Loguru logger instance
    """
    loguru_logger.remove()

    patched_logger = loguru_logger.patch(patching)

    if json_logs:
        patched_logger.add(
            sys.stderr,
            level=level,
            format=custom_formatter,
            serialize=False,  # We handle serialization manually
        )
    else:
        format_str = (
            "<green>{time:HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        patched_logger.add(
            sys.stderr,
            level=level,
            format=format_str,
            colorize=colorize,
        )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        patched_logger.add(
            log_file,
            level=level,
            format=custom_formatter if json_logs else "{time} | {level} | {message}",
            rotation="50 MB",
            retention="14 days",
            compression="zip",
            enqueue=True,
        )

    return patched_logger


# =============================================================================
# Initialize Global Logger
# =============================================================================

logger = setup_logging(
    level=settings.log_level,
    json_logs=settings.log_json,
    log_file=settings.data_dir / "ither.log" if settings.log_to_file else None,
    colorize=not settings.log_json,
)


# =============================================================================
# Utility Functions
# =============================================================================


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    operation: str | None = None,
) -> None:
    """Set context variables for the current async context.

    These values are included in every JSON log line emitted within the
    current context.

    Args:
        request_id: Unique identifier for the request/action
        user_id: Acting user identifier
        operation: Action name (e.g., "marketplace.toggle_wishlist")
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if user_id is not None:
        user_id_var.set(user_id)
    if operation is not None:
        operation_var.set(operation)


def clear_request_context() -> None:
    """Clear all context variables for the current async context."""
    request_id_var.set(None)
    user_id_var.set(None)
    operation_var.set(None)


def get_request_context() -> dict[str, str | None]:
    """Get current context variable values."""
    return {
        "request_id": request_id_var.get(),
        "user_id": user_id_var.get(),
        "operation": operation_var.get(),
    }


__all__ = [
    "logger",
    "request_id_var",
    "user_id_var",
    "operation_var",
    "set_request_context",
    "clear_request_context",
    "get_request_context",
    "setup_logging",
]
