"""RAG Engine Port Interface."""

from abc import ABC, abstractmethod

from ..domain import RAGResult, SourceStatus


class RAGEnginePort(ABC):
    """Abstract interface for search and indexing over document sources."""

    @abstractmethod
    async def search(self, query: str, max_results: int = 5) -> RAGResult:
        """Search indexed documents with a natural language query."""
        ...

    @abstractmethod
    async def index_documents(self) -> None:
        """Index all configured sources."""
        ...

    @abstractmethod
    def get_source_status(self) -> list[SourceStatus]:
        """Current status of every configured source."""
        ...

    @abstractmethod
    def is_ready(self) -> bool:
        """True once at least one source is ready with documents."""
        ...
