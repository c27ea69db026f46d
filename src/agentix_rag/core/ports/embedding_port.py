"""Embedding Port Interface."""

from abc import ABC, abstractmethod


class EmbeddingPort(ABC):
    """Abstract interface for embedding providers.

    The dimension is fixed for the lifetime of an instance. Indexing and
    querying must go through the same provider so stored and query vectors
    share one embedding space.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def embedding_dimension(self) -> int: ...

    @abstractmethod
    async def generate_embedding(self, text: str) -> list[float]:
        """Embed a single text."""
        ...

    @abstractmethod
    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts, preserving input order."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if a live embedding call succeeds."""
        ...
