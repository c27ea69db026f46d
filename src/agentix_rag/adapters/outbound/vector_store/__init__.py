"""Vector store adapters."""

from .in_memory import InMemoryVectorStore, StoredEmbedding, cosine_similarity

__all__ = ["InMemoryVectorStore", "StoredEmbedding", "cosine_similarity"]
