"""Composition root wiring adapters to the RAG engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from functools import lru_cache

from pydantic import ValidationError

from ..adapters.outbound.data_sources import FileSystemDocumentSource, InMemoryDocumentSource
from ..adapters.outbound.embeddings import BertTokenizer, LocalEmbeddingProvider, ModelManager
from ..adapters.outbound.vector_store import InMemoryVectorStore
from ..config import Settings, get_logger, setup_logging
from ..core.domain import SourceConfig
from ..core.domain.exceptions import InvalidConfigurationError
from ..core.ports.document_source_port import DocumentSourcePort
from ..core.services import RAGEngine

logger = get_logger("composition")


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment.

    Raises:
        InvalidConfigurationError: A setting failed validation.
    """
    try:
        return Settings()
    except ValidationError as e:
        fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
        raise InvalidConfigurationError(
            f"Invalid settings: {', '.join(fields)}", cause=e, context={"fields": fields}
        ) from e


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Apply the configured log level and format to the package logger."""
    settings = settings or get_settings()
    return setup_logging(settings.log_level, json_format=settings.log_json)


@lru_cache
def get_model_manager() -> ModelManager:
    logger.info("Initializing ModelManager (composition root)...")
    settings = get_settings()
    return ModelManager(
        cache=settings.cache_location(),
        timeout=settings.download_timeout,
        show_progress=settings.show_download_progress,
    )


@lru_cache
def get_embedding_provider() -> LocalEmbeddingProvider:
    logger.info("Initializing LocalEmbeddingProvider...")
    settings = get_settings()
    return LocalEmbeddingProvider(
        model_manager=get_model_manager(),
        tokenizer=BertTokenizer(settings.max_sequence_length),
        model_name=settings.model_name,
        batch_size=settings.embedding_batch_size,
    )


@lru_cache
def get_vector_store() -> InMemoryVectorStore:
    logger.info("Initializing InMemoryVectorStore...")
    return InMemoryVectorStore(dimension=get_embedding_provider().embedding_dimension)


def build_engine(
    source_configs: Iterable[SourceConfig] = (),
    document_sources: Sequence[DocumentSourcePort] | None = None,
    settings: Settings | None = None,
) -> RAGEngine:
    """Create a RAG engine sharing the cached provider and vector store.

    Args:
        source_configs: Sources to index.
        document_sources: Source adapters; filesystem and in-memory by default.
        settings: Overrides the cached settings for search and indexing knobs.
    """
    settings = settings or get_settings()
    sources = list(document_sources) if document_sources is not None else [
        FileSystemDocumentSource(),
        InMemoryDocumentSource(),
    ]
    logger.info("Initializing RAGEngine with %d document sources...", len(sources))
    return RAGEngine(
        document_sources=sources,
        embedding_provider=get_embedding_provider(),
        vector_store=get_vector_store(),
        source_configs=source_configs,
        similarity_threshold=settings.similarity_threshold,
        candidate_multiplier=settings.search_candidate_multiplier,
        content_preview_length=settings.content_preview_length,
        index_batch_size=settings.index_batch_size,
        sync_interval=settings.sync_interval,
    )
