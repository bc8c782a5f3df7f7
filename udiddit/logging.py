"""Logging setup using Loguru.

This module configures structured logging with:
- JSON output for production environments
- Context variables for migration tracking (run_id, phase)
- Custom serialization without Loguru's verbose defaults
- File rotation and compression

Example:
    >>> from udiddit.logging import logger, set_run_context
    >>> set_run_context(run_id="3f2a", phase="votes")
    >>> logger.info("Deriving votes")
    >>> # JSON output includes run_id and phase automatically
"""

import json
import sys
import traceback
from contextvars import ContextVar
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger

from udiddit.config import settings

# =============================================================================
# Context Variables for Migration Tracking
# =============================================================================

run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
phase_var: ContextVar[str | None] = ContextVar("phase", default=None)


# =============================================================================
# Custom JSON Serialization
# =============================================================================


def serialize(record: dict[str, Any]) -> str:
    """Custom JSON serializer for structured logs.

    Includes the run_id and phase context variables when set.

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

    if run_id := run_id_var.get():
        subset["run_id"] = run_id
    if phase := phase_var.get():
        subset["phase"] = phase

    # Add extra fields from logger.bind() or keyword arguments
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
    """Format a record using its pre-serialized JSON."""
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

    This function:
    1. Removes default Loguru handler
    2. Installs a patcher adding the custom JSON serialization
    3. Adds stderr handler (JSON or human-readable)
    4. Optionally adds file handler with rotation/compression

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Output JSON format (True for production)
        log_file: Optional file path for log output
        colorize: Enable colored output for human-readable logs

    Returns:
        Configured Loguru logger instance
    """
    loguru_logger.remove()

    loguru_logger.configure(patcher=patching)

    if json_logs:
        loguru_logger.add(
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

        loguru_logger.add(
            sys.stderr,
            level=level,
            format=format_str,
            colorize=colorize,
        )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        loguru_logger.add(
            log_file,
            level=level,
            format=custom_formatter if json_logs else "{time} | {level} | {message}",
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
        )

    return loguru_logger


def configure_from_settings(verbose: bool = False) -> Any:
    """Configure logging from the global settings.

    Args:
        verbose: Force DEBUG level regardless of the environment profile

    Returns:
        Configured Loguru logger instance
    """
    return setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_logs=settings.log_json,
        log_file=settings.data_dir / "udiddit.log" if settings.log_to_file else None,
        colorize=not settings.log_json,
    )


logger = loguru_logger


# =============================================================================
# Utility Functions
# =============================================================================


def set_run_context(run_id: str | None = None, phase: str | None = None) -> None:
    """Set context variables included in every JSON log record.

    Args:
        run_id: Unique identifier of the migration run
        phase: Migration phase name (e.g., "users_topics", "votes")
    """
    if run_id is not None:
        run_id_var.set(run_id)
    if phase is not None:
        phase_var.set(phase)


def clear_run_context() -> None:
    """Clear all migration context variables."""
    run_id_var.set(None)
    phase_var.set(None)


def get_run_context() -> dict[str, str | None]:
    """Get current context variable values."""
    return {
        "run_id": run_id_var.get(),
        "phase": phase_var.get(),
    }


__all__ = [
    "logger",
    "run_id_var",
    "phase_var",
    "set_run_context",
    "clear_run_context",
    "get_run_context",
    "setup_logging",
    "configure_from_settings",
]
