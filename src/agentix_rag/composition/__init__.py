"""Composition root wiring adapters into the RAG engine."""

from .container import (
    build_engine,
    configure_logging,
    get_embedding_provider,
    get_model_manager,
    get_settings,
    get_vector_store,
)

__all__ = [
    "get_settings",
    "get_model_manager",
    "get_embedding_provider",
    "get_vector_store",
    "build_engine",
    "configure_logging",
]
