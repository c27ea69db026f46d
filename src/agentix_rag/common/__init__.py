"""Common utilities and shared functionality.

Helpers used across the RAG core: text cleaning/chunking and uniform
exception formatting.
"""

from .exception_handler import (
    format_exception_json,
    get_error_code,
    handle_exception,
    is_transient,
    log_exception,
)
from .utils import chunk_text, clean_text, normalize_whitespace, truncate_content

__all__ = [
    # Utilities
    "clean_text",
    "normalize_whitespace",
    "chunk_text",
    "truncate_content",
    # Exception handlers
    "format_exception_json",
    "log_exception",
    "handle_exception",
    "get_error_code",
    "is_transient",
]
