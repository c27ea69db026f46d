"""Exception handling utilities for consistent error formatting.

This module formats exceptions as structured JSON and logs them the same
way everywhere in the RAG core.
"""

import json
import logging
import traceback
from typing import Any

from ..core.domain.exceptions import AgentixRAGError

logger = logging.getLogger(__name__)


def format_exception_json(
    exc: BaseException,
    include_trace: bool = False,
    extra_context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Format any exception as structured JSON.

    Works with both AgentixRAGError and standard Python exceptions.

    Args:
        exc: The exception to format.
        include_trace: If True, include full stack trace.
        extra_context: Additional context to include in output.

    Returns:
        Dictionary with structured error information.
    """
    if isinstance(exc, AgentixRAGError):
        result = exc.to_dict(include_trace=include_trace)
        if extra_context:
            result.setdefault("context", {}).update(extra_context)
        return result

    # Handle standard Python exceptions
    tb = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    last_frame = tb[-1] if tb else None

    result: dict[str, Any] = {
        "error": {
            "type": type(exc).__name__,
            "code": "PYTHON_ERR",
            "message": str(exc),
            "transient": is_transient(exc),
        },
        "location": {
            "class": "<unknown>",
            "method": last_frame.name if last_frame else "<unknown>",
            "file": (
                last_frame.filename.split("\\")[-1].split("/")[-1] if last_frame else "<unknown>"
            ),
            "line": last_frame.lineno if last_frame else 0,
        },
    }

    if extra_context:
        result["context"] = extra_context

    if include_trace:
        result["stack_trace"] = [
            line.strip()
            for line in traceback.format_exception(type(exc), exc, exc.__traceback__)
            if line.strip()
        ]

    return result


def log_exception(
    exc: BaseException,
    log: logging.Logger | None = None,
    level: int = logging.ERROR,
    extra_context: dict[str, Any] | None = None,
) -> None:
    """Log exception in structured JSON format.

    Args:
        exc: The exception to log.
        log: Logger instance to use (defaults to module logger).
        level: Logging level (default: ERROR).
        extra_context: Additional context to include.
    """
    log_instance = log or logger

    exc_data = format_exception_json(exc, include_trace=True, extra_context=extra_context)
    log_instance.log(level, json.dumps(exc_data, indent=2, default=str))


def handle_exception(
    exc: Exception,
    context: dict[str, Any] | None = None,
    reraise: bool = True,
    log: logging.Logger | None = None,
) -> dict[str, Any]:
    """Log an exception and return a caller-safe error dictionary.

    Args:
        exc: The exception to handle.
        context: Additional context for debugging.
        reraise: If True, re-raise the exception after logging.
        log: Logger instance to use.

    Returns:
        Dictionary with error info (without stack traces).
    """
    log_exception(exc, log=log, extra_context=context)

    error_info = format_exception_json(exc, include_trace=False, extra_context=context)

    if reraise:
        raise exc

    return error_info


def get_error_code(exc: BaseException) -> str:
    """Get the error code from an exception (``PYTHON_ERR`` for foreign ones)."""
    if isinstance(exc, AgentixRAGError):
        return exc.error_code
    return "PYTHON_ERR"


def is_transient(exc: BaseException) -> bool:
    """Whether a caller may reasonably retry the failed operation."""
    if isinstance(exc, AgentixRAGError):
        return exc.transient
    return isinstance(exc, ConnectionError | TimeoutError)
