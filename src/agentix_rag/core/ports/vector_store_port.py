"""Vector Store Port Interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from ..domain import DocumentEmbedding, VectorSearchResult


class VectorStorePort(ABC):
    """Abstract interface for vector stores.

    Implementations must be safe for concurrent store/search/delete calls
    without external locking by the caller.
    """

    @abstractmethod
    async def store(self, embeddings: Iterable[DocumentEmbedding]) -> int:
        """Upsert embeddings by document id. Returns the number stored."""
        ...

    @abstractmethod
    async def search_similar(
        self,
        query_embedding: list[float],
        max_results: int = 10,
        similarity_threshold: float = 0.7,
    ) -> list[VectorSearchResult]:
        """Return stored documents ranked by similarity to the query."""
        ...

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> int:
        """Remove every document from a source. Returns the number removed."""
        ...

    @abstractmethod
    async def count(self) -> int:
        """Total number of stored documents."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove all stored documents."""
        ...
