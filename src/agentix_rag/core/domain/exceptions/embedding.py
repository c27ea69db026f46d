"""Embedding exceptions."""

from .base import AgentixRAGError


class EmbeddingError(AgentixRAGError):
    """Failed to generate embeddings."""

    error_code = "RAG_EMB_001"


class ModelLoadError(EmbeddingError):
    """The inference session could not be created from the model artifact."""

    error_code = "RAG_EMB_002"


class InferenceError(EmbeddingError):
    """Model inference failed or produced no usable output."""

    error_code = "RAG_EMB_003"


class ProviderClosedError(EmbeddingError):
    """The embedding provider has been closed."""

    error_code = "RAG_EMB_004"
