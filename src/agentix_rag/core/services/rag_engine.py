"""RAG engine: indexes document sources and answers similarity searches."""

import asyncio
import logging
import threading
import time
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any

from ...common.exception_handler import log_exception
from ...common.utils import truncate_content
from ..domain import (
    Document,
    DocumentEmbedding,
    DocumentResult,
    IndexingStatus,
    RAGResult,
    SourceConfig,
    SourceStatus,
    VectorSearchResult,
)
from ..domain.exceptions import (
    DimensionMismatchError,
    EmbeddingError,
    EmptyQueryError,
    InvalidParameterError,
    InvalidSourceConfigError,
    SourceUnavailableError,
)
from ..ports.document_source_port import DocumentSourcePort
from ..ports.embedding_port import EmbeddingPort
from ..ports.rag_engine_port import RAGEnginePort
from ..ports.vector_store_port import VectorStorePort

logger = logging.getLogger(__name__)

# Constants
DEFAULT_SIMILARITY_THRESHOLD = 0.6
DEFAULT_CANDIDATE_MULTIPLIER = 2
DEFAULT_PREVIEW_LENGTH = 500
DEFAULT_INDEX_BATCH_SIZE = 20
DEFAULT_SYNC_INTERVAL = timedelta(hours=6)


class RAGEngine(RAGEnginePort):
    """Coordinates document sources, the embedding provider and the vector store.

    Each source is indexed independently: one source failing or being
    re-indexed never affects the documents or status of another. Indexing
    of the same source is serialized by a per-source lock.

    Status records are shared with synchronous readers, so they are only
    touched under ``_status_lock`` and handed out as copies.
    """

    def __init__(
        self,
        document_sources: Sequence[DocumentSourcePort],
        embedding_provider: EmbeddingPort,
        vector_store: VectorStorePort,
        source_configs: Iterable[SourceConfig] = (),
        *,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        candidate_multiplier: int = DEFAULT_CANDIDATE_MULTIPLIER,
        content_preview_length: int = DEFAULT_PREVIEW_LENGTH,
        index_batch_size: int = DEFAULT_INDEX_BATCH_SIZE,
        sync_interval: timedelta = DEFAULT_SYNC_INTERVAL,
    ) -> None:
        """Initialize the engine.

        Args:
            document_sources: Adapters tried in order for each source config.
            embedding_provider: Produces query and document vectors.
            vector_store: Holds document vectors.
            source_configs: Sources to index.
            similarity_threshold: Minimum similarity for search hits.
            candidate_multiplier: Search fetches ``max_results * multiplier`` candidates.
            content_preview_length: Content of hits is truncated to this length.
            index_batch_size: Documents embedded per provider call while indexing.
            sync_interval: Pause between runs of the background sync loop.
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise InvalidParameterError("similarity_threshold must be between 0 and 1")
        if candidate_multiplier < 1 or content_preview_length < 1 or index_batch_size < 1:
            raise InvalidParameterError(
                "candidate_multiplier, content_preview_length and index_batch_size must be positive"
            )

        self.document_sources = list(document_sources)
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.similarity_threshold = similarity_threshold
        self.candidate_multiplier = candidate_multiplier
        self.content_preview_length = content_preview_length
        self.index_batch_size = index_batch_size
        self.sync_interval = sync_interval

        self._configs: dict[str, SourceConfig] = {}
        self._statuses: dict[str, SourceStatus] = {}
        self._source_locks: dict[str, asyncio.Lock] = {}
        self._status_lock = threading.Lock()
        self._sync_task: asyncio.Task[None] | None = None

        for config in source_configs:
            self.add_source(config)

    # ------------------------------------------------------------------
    # Source registry
    # ------------------------------------------------------------------

    def add_source(self, config: SourceConfig) -> None:
        """Register a source; it starts in NOT_STARTED.

        Raises:
            InvalidSourceConfigError: Empty or duplicate source id.
        """
        if not config.id:
            raise InvalidSourceConfigError("Source id cannot be empty")
        if config.id in self._configs:
            raise InvalidSourceConfigError(
                f"Duplicate source id {config.id}", context={"source_id": config.id}
            )

        self._configs[config.id] = config
        self._source_locks[config.id] = asyncio.Lock()
        with self._status_lock:
            self._statuses[config.id] = SourceStatus(
                source_id=config.id, source_name=config.display_name
            )

    @property
    def source_configs(self) -> list[SourceConfig]:
        return list(self._configs.values())

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str, max_results: int = 5) -> RAGResult:
        """Embed the query and return the most similar documents.

        Searching before indexing has finished is allowed and returns
        whatever is stored so far.

        Raises:
            EmptyQueryError: ``query`` is empty or whitespace only.
            InvalidParameterError: ``max_results`` is below 1.
        """
        if not query or not query.strip():
            raise EmptyQueryError("Query cannot be empty")
        if max_results < 1:
            raise InvalidParameterError(
                "max_results must be at least 1", context={"max_results": max_results}
            )

        started = time.perf_counter()
        if not self.is_ready():
            logger.debug("Searching before any source is ready; results may be incomplete")

        query_embedding = await self.embedding_provider.generate_embedding(query)
        if len(query_embedding) != self.embedding_provider.embedding_dimension:
            raise DimensionMismatchError(
                f"Query embedding has dimension {len(query_embedding)}, "
                f"expected {self.embedding_provider.embedding_dimension}"
            )
        candidates = await self.vector_store.search_similar(
            query_embedding,
            max_results=max_results * self.candidate_multiplier,
            similarity_threshold=self.similarity_threshold,
        )

        documents = [self._to_document_result(result) for result in candidates[:max_results]]
        query_time = timedelta(seconds=time.perf_counter() - started)

        logger.info(
            "Search for '%s' returned %d of %d candidates in %.1fms",
            query,
            len(documents),
            len(candidates),
            query_time.total_seconds() * 1000,
        )
        return RAGResult(
            query=query,
            documents=documents,
            total_results=len(candidates),
            query_time=query_time,
        )

    def _to_document_result(self, result: VectorSearchResult) -> DocumentResult:
        document = result.document
        return DocumentResult(
            content=truncate_content(document.content, self.content_preview_length),
            title=document.title,
            repository=document.source_name,
            file_path=document.path or "",
            url=document.url,
            similarity=result.similarity,
            type=document.type,
            last_modified=document.last_modified,
        )

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    async def index_documents(self) -> None:
        """Index every active source concurrently.

        Per-source failures are recorded in that source's status and never
        raised from here.
        """
        configs = [config for config in self._configs.values() if config.is_active]
        skipped = len(self._configs) - len(configs)
        if skipped:
            logger.debug("Skipping %d inactive sources", skipped)

        logger.info("Starting document indexing for %d sources", len(configs))
        await asyncio.gather(*(self._index_source(config) for config in configs))

        statuses = self.get_source_status()
        ready = sum(1 for status in statuses if status.status is IndexingStatus.READY)
        total_documents = sum(status.document_count for status in statuses)
        logger.info(
            "Document indexing completed. Ready sources: %d/%d, total documents: %d",
            ready,
            len(configs),
            total_documents,
        )

    async def index_source(self, source_id: str) -> SourceStatus:
        """Re-index one source by id and return its resulting status.

        Raises:
            InvalidSourceConfigError: No source with this id is registered.
        """
        config = self._configs.get(source_id)
        if config is None:
            raise InvalidSourceConfigError(
                f"Unknown source id {source_id}", context={"source_id": source_id}
            )
        await self._index_source(config)
        return self._status_copy(source_id)

    async def _index_source(self, config: SourceConfig) -> None:
        async with self._source_locks[config.id]:
            previous = self._status_copy(config.id)
            commit: asyncio.Future[int] | None = None
            try:
                embeddings = await self._prepare_embeddings(config)
                # Shielded so a cancellation cannot leave the source half replaced
                commit = asyncio.ensure_future(
                    self._replace_source_documents(config.id, embeddings)
                )
                stored = await asyncio.shield(commit)
                self._mark_ready(config, stored)
            except asyncio.CancelledError:
                if commit is None:
                    self._restore_status(previous)
                else:
                    await self._finish_commit(config, commit)
                logger.debug("Indexing of %s cancelled", config.display_name)
                raise
            except SourceUnavailableError as e:
                logger.warning("Source %s is unavailable: %s", config.display_name, e)
                self._set_status(
                    config.id, status=IndexingStatus.UNAVAILABLE, error_message=str(e)
                )
            except Exception as e:
                log_exception(e, logger, extra_context={"source_id": config.id})
                self._set_status(
                    config.id, status=IndexingStatus.ERROR, error_message=str(e)
                )

    async def _finish_commit(self, config: SourceConfig, commit: asyncio.Future[int]) -> None:
        """Wait out a store replacement whose caller was cancelled and record its outcome."""
        try:
            stored = await asyncio.shield(commit)
        except Exception as e:
            log_exception(e, logger, extra_context={"source_id": config.id})
            self._set_status(config.id, status=IndexingStatus.ERROR, error_message=str(e))
        else:
            self._mark_ready(config, stored)

    async def _prepare_embeddings(self, config: SourceConfig) -> list[DocumentEmbedding]:
        source = await self._resolve_source(config)

        reported = await source.get_status(config)
        if reported.status is IndexingStatus.UNAVAILABLE:
            raise SourceUnavailableError(
                reported.error_message or f"Source {config.display_name} is unavailable",
                context={"source_id": config.id},
            )

        self._set_status(
            config.id, status=IndexingStatus.INDEXING, progress_percentage=0, error_message=None
        )
        logger.info("Indexing documents from %s using %s", config.display_name, source.name)

        documents = await source.load_documents(config)
        if not documents:
            logger.warning("No documents loaded from source %s", config.display_name)

        return await self._embed_documents(config, documents)

    def _mark_ready(self, config: SourceConfig, document_count: int) -> None:
        self._set_status(
            config.id,
            status=IndexingStatus.READY,
            document_count=document_count,
            progress_percentage=100,
            error_message=None,
        )
        logger.info("Indexed %d documents from %s", document_count, config.display_name)

    async def _resolve_source(self, config: SourceConfig) -> DocumentSourcePort:
        for source in self.document_sources:
            if await source.can_handle(config):
                return source
        raise InvalidSourceConfigError(
            f"No document source can handle source type '{config.source_type}'",
            context={"source_id": config.id, "source_type": config.source_type},
        )

    async def _embed_documents(
        self, config: SourceConfig, documents: list[Document]
    ) -> list[DocumentEmbedding]:
        indexable = []
        for document in documents:
            if not document.content or not document.content.strip():
                continue
            if document.source_id != config.id:
                document = replace(
                    document,
                    source_id=config.id,
                    source_name=document.source_name or config.display_name,
                )
            indexable.append(document)

        skipped = len(documents) - len(indexable)
        if skipped:
            logger.warning("Skipped %d empty documents from %s", skipped, config.display_name)

        total = len(indexable)
        dimension = self.embedding_provider.embedding_dimension
        embeddings: list[DocumentEmbedding] = []

        for start in range(0, total, self.index_batch_size):
            batch = indexable[start : start + self.index_batch_size]
            vectors = await self.embedding_provider.generate_embeddings(
                [document.content for document in batch]
            )
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Embedding provider returned {len(vectors)} vectors for {len(batch)} documents",
                    context={"source_id": config.id},
                )

            for document, vector in zip(batch, vectors, strict=True):
                if len(vector) != dimension:
                    raise DimensionMismatchError(
                        f"Embedding has dimension {len(vector)}, expected {dimension}",
                        context={"document_id": document.id},
                    )
                embeddings.append(DocumentEmbedding(document=document, embedding=vector))

            done = start + len(batch)
            self._set_status(config.id, progress_percentage=done * 100 // total)
            logger.debug("Embedded %d/%d documents from %s", done, total, config.display_name)

        return embeddings

    async def _replace_source_documents(
        self, source_id: str, embeddings: list[DocumentEmbedding]
    ) -> int:
        removed = await self.vector_store.delete_by_source(source_id)
        stored = await self.vector_store.store(embeddings)
        logger.debug("Replaced %d documents with %d for source %s", removed, stored, source_id)
        return len(embeddings)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_source_status(self) -> list[SourceStatus]:
        with self._status_lock:
            return [replace(status) for status in self._statuses.values()]

    def is_ready(self) -> bool:
        with self._status_lock:
            return any(
                status.status is IndexingStatus.READY and status.document_count > 0
                for status in self._statuses.values()
            )

    def _status_copy(self, source_id: str) -> SourceStatus:
        with self._status_lock:
            return replace(self._statuses[source_id])

    def _set_status(self, source_id: str, **changes: Any) -> None:
        with self._status_lock:
            status = self._statuses[source_id]
            for key, value in changes.items():
                setattr(status, key, value)
            status.last_updated = datetime.now(UTC)

    def _restore_status(self, previous: SourceStatus) -> None:
        with self._status_lock:
            self._statuses[previous.source_id] = previous

    # ------------------------------------------------------------------
    # Background sync
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._sync_task is not None and not self._sync_task.done()

    async def start(self) -> None:
        """Start periodic re-indexing of all sources; a no-op when running."""
        if self.is_running:
            return
        self._sync_task = asyncio.create_task(self._sync_loop(), name="rag-engine-sync")
        logger.info("RAG engine sync started (interval %s)", self.sync_interval)

    async def stop(self) -> None:
        """Cancel the sync loop and wait for it to finish."""
        task, self._sync_task = self._sync_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        logger.info("RAG engine sync stopped")

    async def _sync_loop(self) -> None:
        while True:
            try:
                await self.index_documents()
            except Exception as e:
                logger.warning("Error during periodic sync: %s", e)
            await asyncio.sleep(self.sync_interval.total_seconds())
