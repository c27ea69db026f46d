"""Exception hierarchy for the RAG core.

Each exception carries an error code, the location it was raised from,
an optional cause and JSON serialization for structured logging.

Import from this package directly:

    from agentix_rag.core.domain.exceptions import AgentixRAGError, DimensionMismatchError
"""

# Base classes
from .base import AgentixRAGError, ExceptionContext

# Configuration exceptions
from .configuration import (
    ConfigurationError,
    InvalidConfigurationError,
    InvalidSourceConfigError,
    UnsupportedModelError,
)

# Embedding exceptions
from .embedding import (
    EmbeddingError,
    InferenceError,
    ModelLoadError,
    ProviderClosedError,
)

# Transient I/O exceptions
from .transient import (
    DocumentLoadError,
    ModelDownloadError,
    SourceUnavailableError,
    TransientIOError,
)

# Validation exceptions
from .validation import (
    EmptyQueryError,
    EmptyTextError,
    InvalidParameterError,
    ValidationError,
)

# Vector store exceptions
from .vector_store import (
    DimensionMismatchError,
    VectorStoreError,
)

__all__ = [
    # Base
    "ExceptionContext",
    "AgentixRAGError",
    # Configuration
    "ConfigurationError",
    "UnsupportedModelError",
    "InvalidSourceConfigError",
    "InvalidConfigurationError",
    # Transient I/O
    "TransientIOError",
    "ModelDownloadError",
    "DocumentLoadError",
    "SourceUnavailableError",
    # Embedding
    "EmbeddingError",
    "ModelLoadError",
    "InferenceError",
    "ProviderClosedError",
    # Vector store
    "VectorStoreError",
    "DimensionMismatchError",
    # Validation
    "ValidationError",
    "EmptyQueryError",
    "EmptyTextError",
    "InvalidParameterError",
]
