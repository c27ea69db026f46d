"""Document Source Port Interface."""

from abc import ABC, abstractmethod

from ..domain import Document, SourceConfig, SourceStatus


class DocumentSourcePort(ABC):
    """Abstract interface for document sources (file systems, repositories, ...)."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def source_type(self) -> str: ...

    @abstractmethod
    async def load_documents(self, source_config: SourceConfig) -> list[Document]:
        """Load all documents for a source configuration."""
        ...

    @abstractmethod
    async def can_handle(self, source_config: SourceConfig) -> bool:
        """Check whether this source understands the configuration."""
        ...

    @abstractmethod
    async def get_status(self, source_config: SourceConfig) -> SourceStatus:
        """Report reachability of the underlying source."""
        ...
