"""Agentix RAG - local retrieval-augmented generation core.

Indexes documents from pluggable sources, embeds them offline with an ONNX
sentence-embedding model and answers natural language similarity searches.
"""

from .core.domain import (
    Document,
    DocumentResult,
    DocumentType,
    IndexingStatus,
    RAGResult,
    SourceConfig,
    SourceStatus,
)
from .core.services import RAGEngine

__version__ = "0.1.0"

__all__ = [
    "Document",
    "DocumentResult",
    "DocumentType",
    "IndexingStatus",
    "RAGEngine",
    "RAGResult",
    "SourceConfig",
    "SourceStatus",
    "__version__",
]
