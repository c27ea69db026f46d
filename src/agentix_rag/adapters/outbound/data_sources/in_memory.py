"""Document source serving documents registered in process."""

import logging
from collections.abc import Iterable

from ....core.domain import Document, IndexingStatus, SourceConfig, SourceStatus
from ....core.domain.exceptions import SourceUnavailableError
from ....core.ports.document_source_port import DocumentSourcePort

logger = logging.getLogger(__name__)

SOURCE_TYPE = "memory"


class InMemoryDocumentSource(DocumentSourcePort):
    """Holds documents per source id, mainly for tests and embedding callers.

    A source id can be marked unavailable to simulate an unreachable
    backend; ``load_documents`` then raises ``SourceUnavailableError``.
    """

    def __init__(self) -> None:
        self._documents: dict[str, list[Document]] = {}
        self._unavailable: set[str] = set()

    @property
    def name(self) -> str:
        return "In-Memory"

    @property
    def source_type(self) -> str:
        return SOURCE_TYPE

    def register(self, source_id: str, documents: Iterable[Document]) -> None:
        """Replace the documents served for ``source_id``."""
        self._documents[source_id] = list(documents)
        logger.debug("Registered %d documents for source %s", len(self._documents[source_id]), source_id)

    def set_available(self, source_id: str, available: bool) -> None:
        if available:
            self._unavailable.discard(source_id)
        else:
            self._unavailable.add(source_id)

    async def load_documents(self, source_config: SourceConfig) -> list[Document]:
        if source_config.id in self._unavailable:
            raise SourceUnavailableError(
                f"Source {source_config.display_name} is unavailable",
                context={"source_id": source_config.id},
            )
        return list(self._documents.get(source_config.id, []))

    async def can_handle(self, source_config: SourceConfig) -> bool:
        return source_config.source_type == SOURCE_TYPE

    async def get_status(self, source_config: SourceConfig) -> SourceStatus:
        available = source_config.id not in self._unavailable
        return SourceStatus(
            source_id=source_config.id,
            source_name=source_config.display_name,
            status=IndexingStatus.NOT_STARTED if available else IndexingStatus.UNAVAILABLE,
            error_message=None if available else "Source is unavailable",
        )
