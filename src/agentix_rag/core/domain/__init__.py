"""Domain models for the RAG core.

Models are organized by area:

- document: Document, DocumentType, DocumentEmbedding and search results
- source: SourceConfig, SourceStatus and IndexingStatus
- model: CacheLocation, ModelMetadata, ModelInfo and TokenizationResult

All models are re-exported here for convenient importing:

    from agentix_rag.core.domain import Document, DocumentEmbedding, SourceStatus
"""

from .document import (
    Document,
    DocumentEmbedding,
    DocumentResult,
    DocumentType,
    RAGResult,
    VectorSearchResult,
)
from .model import CacheLocation, ModelInfo, ModelMetadata, TokenizationResult
from .source import (
    IndexingStatus,
    SourceConfig,
    SourceStatus,
    source_id_from_url,
    source_name_from_url,
)

__all__ = [
    # Document models
    "Document",
    "DocumentType",
    "DocumentEmbedding",
    "VectorSearchResult",
    "DocumentResult",
    "RAGResult",
    # Source models
    "SourceConfig",
    "SourceStatus",
    "IndexingStatus",
    "source_id_from_url",
    "source_name_from_url",
    # Model cache and tokenization
    "CacheLocation",
    "ModelMetadata",
    "ModelInfo",
    "TokenizationResult",
]
