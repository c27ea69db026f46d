"""Vector store exceptions."""

from .base import AgentixRAGError


class VectorStoreError(AgentixRAGError):
    """Base error for vector store operations."""

    error_code = "RAG_VEC_001"


class DimensionMismatchError(VectorStoreError):
    """Two vectors that must share a dimension do not.

    Always fatal. Vectors are never truncated or padded to fit.
    """

    error_code = "RAG_VEC_002"
