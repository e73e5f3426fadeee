"""
Structured Logging for the Recursive Cognition Engine

structlog on top of the standard library logging module, so pytest
capture, handlers and levels behave as usual. Events are snake_case with
keyword context; a running cycle binds its stimulus id once and every
event logged from the cycle thread carries it.

Usage:
    from recursive_cognition.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("cycle_committed", verdict="accept", retries=0)
"""

import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

import structlog

_SHARED_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


def _renderer(json_logs: bool):
    if json_logs:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False
) -> None:
    """
    Configure logging for the engine, its API and the CLI.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: also append every event to this file
        json_logs: one JSON object per event instead of console lines
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, _renderer(json_logs)],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.setLevel(numeric_level)
        root.addHandler(handler)
    root.setLevel(numeric_level)


def setup_logging_from_env(prefix: str = "RCE_") -> None:
    """RCE_LOG_LEVEL, RCE_LOG_FILE and RCE_JSON_LOGS=1|true drive setup_logging()"""
    setup_logging(
        level=os.getenv(f"{prefix}LOG_LEVEL", "INFO"),
        log_file=os.getenv(f"{prefix}LOG_FILE") or None,
        json_logs=os.getenv(f"{prefix}JSON_LOGS", "").lower() in ("1", "true", "yes"),
    )


def get_logger(name: str | None = None) -> Any:
    return structlog.get_logger(name)


@contextmanager
def cycle_context(stimulus_id: str) -> Iterator[None]:
    """Bind stimulus_id to every event logged by the current thread"""
    with structlog.contextvars.bound_contextvars(stimulus_id=stimulus_id):
        yield


def log_stage_transition(
    stimulus_id: str,
    from_stage: str,
    to_stage: str,
    attempt: int,
    reason: str | None = None
) -> None:
    get_logger("recursive_cognition.cycle").info(
        "stage_transition",
        stimulus_id=stimulus_id,
        transition=f"{from_stage}->{to_stage}",
        attempt=attempt,
        reason=reason,
        at=datetime.now(timezone.utc).isoformat(),
    )


def log_error(
    error: Exception,
    context: dict | None = None,
    level: str = "ERROR"
) -> None:
    """Log a caught exception with its type, message, traceback and caller context"""
    logger = get_logger("recursive_cognition.errors")
    emit = getattr(logger, level.lower(), None) or logger.error
    emit(
        "operation_failed",
        error_type=type(error).__name__,
        error_message=str(error),
        exc_info=error,
        **(context or {}),
    )
