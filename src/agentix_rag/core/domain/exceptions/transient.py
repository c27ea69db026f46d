"""Transient I/O exceptions.

These are retrievable errors. The core never retries them itself; retry and
backoff policy belongs to the calling orchestration layer.
"""

from .base import AgentixRAGError


class TransientIOError(AgentixRAGError):
    """Base error for network or external I/O failures."""

    error_code = "RAG_IO_001"
    transient = True


class ModelDownloadError(TransientIOError):
    """Failed to fetch a model artifact.

    Common causes:
    - Non-2xx response from the model host
    - Connection reset or timeout mid-transfer
    - Cache directory not writable
    """

    error_code = "RAG_IO_002"


class DocumentLoadError(TransientIOError):
    """A document source failed to load documents."""

    error_code = "RAG_IO_003"


class SourceUnavailableError(DocumentLoadError):
    """A document source is unreachable."""

    error_code = "RAG_IO_004"
