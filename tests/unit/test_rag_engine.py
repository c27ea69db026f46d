"""Unit tests for the RAG engine.

Uses the in-memory document source, the in-memory vector store and a
bag-of-words embedding provider, so similarities are exact and no model
is loaded.
"""

import asyncio

import pytest

from agentix_rag.adapters.outbound.data_sources import InMemoryDocumentSource
from agentix_rag.adapters.outbound.vector_store import InMemoryVectorStore
from agentix_rag.core.domain import Document, DocumentType, IndexingStatus, SourceConfig
from agentix_rag.core.domain.exceptions import (
    DimensionMismatchError,
    EmptyQueryError,
    InvalidParameterError,
    InvalidSourceConfigError,
)
from agentix_rag.core.services import RAGEngine
from tests.fakes import CountingDocumentSource, KeywordEmbeddingProvider

pytestmark = pytest.mark.unit


class BrokenSource(InMemoryDocumentSource):
    """Document source whose loads always fail."""

    @property
    def source_type(self) -> str:
        return "broken"

    async def can_handle(self, source_config):
        return source_config.source_type == "broken"

    async def load_documents(self, source_config):
        raise RuntimeError("remote exploded")


class SlowStore(InMemoryVectorStore):
    """Vector store whose writes take a while to land."""

    async def store(self, embeddings):
        await asyncio.sleep(0.2)
        return await super().store(embeddings)


@pytest.fixture
def memory_source(sample_documents):
    source = CountingDocumentSource()
    source.register("docs", sample_documents)
    return source


@pytest.fixture
def vector_store(keyword_provider):
    return InMemoryVectorStore(dimension=keyword_provider.embedding_dimension)


@pytest.fixture
def engine(memory_source, keyword_provider, vector_store):
    return RAGEngine(
        [memory_source],
        keyword_provider,
        vector_store,
        [SourceConfig(id="docs", source_type="memory", name="acme/docs")],
    )


def status_of(engine, source_id):
    return next(s for s in engine.get_source_status() if s.source_id == source_id)


class TestConstruction:
    def test_sources_start_not_started(self, engine):
        status = status_of(engine, "docs")
        assert status.status is IndexingStatus.NOT_STARTED
        assert status.source_name == "acme/docs"
        assert engine.is_ready() is False

    def test_no_sources_is_not_ready(self, keyword_provider, vector_store):
        engine = RAGEngine([], keyword_provider, vector_store)
        assert engine.get_source_status() == []
        assert engine.is_ready() is False

    def test_duplicate_source_id_rejected(self, engine):
        with pytest.raises(InvalidSourceConfigError):
            engine.add_source(SourceConfig(id="docs", source_type="memory"))

    def test_invalid_threshold_rejected(self, keyword_provider, vector_store):
        with pytest.raises(InvalidParameterError):
            RAGEngine([], keyword_provider, vector_store, similarity_threshold=1.5)


class TestIndexing:
    @pytest.mark.asyncio
    async def test_index_marks_source_ready(self, engine, vector_store):
        await engine.index_documents()

        status = status_of(engine, "docs")
        assert status.status is IndexingStatus.READY
        assert status.document_count == 3
        assert status.progress_percentage == 100
        assert status.last_updated is not None
        assert status.error_message is None
        assert engine.is_ready() is True
        assert await vector_store.count_by_source("docs") == 3

    @pytest.mark.asyncio
    async def test_reindex_is_idempotent(self, engine, vector_store):
        await engine.index_documents()
        first = await vector_store.search_similar([1.0] * 64, max_results=10, similarity_threshold=-1.0)

        await engine.index_documents()
        second = await vector_store.search_similar([1.0] * 64, max_results=10, similarity_threshold=-1.0)

        assert await vector_store.count_by_source("docs") == 3
        assert [r.document.id for r in first] == [r.document.id for r in second]

    @pytest.mark.asyncio
    async def test_documents_are_stamped_with_source_id(self, engine, vector_store):
        await engine.index_documents()
        results = await vector_store.search_similar([1.0] * 64, max_results=10, similarity_threshold=-1.0)
        assert {r.document.source_id for r in results} == {"docs"}

    @pytest.mark.asyncio
    async def test_empty_documents_are_skipped(self, memory_source, engine, sample_documents):
        memory_source.register("docs", [*sample_documents, Document(content="   ")])

        await engine.index_documents()

        assert status_of(engine, "docs").document_count == 3

    @pytest.mark.asyncio
    async def test_embeds_in_batches(self, memory_source, keyword_provider, vector_store):
        memory_source.register("docs", [Document(content=f"note {i}") for i in range(5)])
        engine = RAGEngine(
            [memory_source],
            keyword_provider,
            vector_store,
            [SourceConfig(id="docs", source_type="memory")],
            index_batch_size=2,
        )

        await engine.index_documents()

        assert keyword_provider.batch_calls == 3
        assert status_of(engine, "docs").document_count == 5

    @pytest.mark.asyncio
    async def test_failing_source_does_not_affect_others(self, memory_source, keyword_provider, vector_store):
        engine = RAGEngine(
            [memory_source, BrokenSource()],
            keyword_provider,
            vector_store,
            [
                SourceConfig(id="docs", source_type="memory"),
                SourceConfig(id="remote", source_type="broken"),
            ],
        )

        await engine.index_documents()

        broken = status_of(engine, "remote")
        assert broken.status is IndexingStatus.ERROR
        assert "remote exploded" in broken.error_message
        assert status_of(engine, "docs").status is IndexingStatus.READY
        assert engine.is_ready() is True

        result = await engine.search("rust ownership borrow checker lifetimes")
        assert result.documents[0].title == "Ownership"

    @pytest.mark.asyncio
    async def test_embedding_failure_marks_error(self, engine, keyword_provider):
        keyword_provider.fail_on = "rust"

        await engine.index_documents()

        status = status_of(engine, "docs")
        assert status.status is IndexingStatus.ERROR
        assert "cannot embed rust" in status.error_message
        assert engine.is_ready() is False

    @pytest.mark.asyncio
    async def test_unavailable_source(self, engine, memory_source):
        memory_source.set_available("docs", False)

        await engine.index_documents()

        status = status_of(engine, "docs")
        assert status.status is IndexingStatus.UNAVAILABLE
        assert status.error_message
        assert memory_source.load_count == 0

    @pytest.mark.asyncio
    async def test_unhandled_source_type_marks_error(self, engine):
        engine.add_source(SourceConfig(id="svn", source_type="subversion"))

        await engine.index_documents()

        status = status_of(engine, "svn")
        assert status.status is IndexingStatus.ERROR
        assert "subversion" in status.error_message

    @pytest.mark.asyncio
    async def test_inactive_sources_are_skipped(self, engine, memory_source):
        engine.add_source(SourceConfig(id="paused", source_type="memory", is_active=False))
        memory_source.register("paused", [Document(content="paused content")])

        await engine.index_documents()

        assert status_of(engine, "paused").status is IndexingStatus.NOT_STARTED
        assert status_of(engine, "docs").status is IndexingStatus.READY

    @pytest.mark.asyncio
    async def test_index_single_source(self, engine):
        status = await engine.index_source("docs")
        assert status.status is IndexingStatus.READY

    @pytest.mark.asyncio
    async def test_index_unknown_source_raises(self, engine):
        with pytest.raises(InvalidSourceConfigError):
            await engine.index_source("nope")

    @pytest.mark.asyncio
    async def test_cancellation_restores_status_and_stores_nothing(self, engine, keyword_provider, vector_store):
        keyword_provider.delay = 5.0
        task = asyncio.create_task(engine.index_documents())
        await asyncio.sleep(0.05)
        assert status_of(engine, "docs").status is IndexingStatus.INDEXING

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert status_of(engine, "docs").status is IndexingStatus.NOT_STARTED
        assert await vector_store.count() == 0

    @pytest.mark.asyncio
    async def test_cancellation_during_commit_records_committed_documents(self, memory_source, keyword_provider):
        store = SlowStore(dimension=keyword_provider.embedding_dimension)
        engine = RAGEngine(
            [memory_source],
            keyword_provider,
            store,
            [SourceConfig(id="docs", source_type="memory", name="acme/docs")],
        )
        task = asyncio.create_task(engine.index_source("docs"))
        await asyncio.sleep(0.05)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        stored = await store.count_by_source("docs")
        status = status_of(engine, "docs")
        assert stored > 0
        assert status.status is IndexingStatus.READY
        assert status.document_count == stored
        assert engine.is_ready() is True

    @pytest.mark.asyncio
    async def test_status_is_returned_as_copies(self, engine):
        status = engine.get_source_status()[0]
        status.status = IndexingStatus.READY
        status.document_count = 99
        assert engine.is_ready() is False


class TestSearch:
    @pytest.mark.asyncio
    async def test_returns_ranked_results(self, engine):
        await engine.index_documents()

        result = await engine.search("python async")

        assert result.query == "python async"
        assert result.total_results == 1
        hit = result.documents[0]
        assert hit.title == "Async guide"
        assert hit.repository == "acme/docs"
        assert hit.file_path == "docs/async.md"
        assert hit.url == "https://example.com/acme/docs/async.md"
        assert hit.type is DocumentType.DOCUMENTATION
        assert hit.similarity == pytest.approx(2 / 10**0.5)
        assert result.query_time.total_seconds() >= 0

    @pytest.mark.asyncio
    async def test_exact_match_scores_one(self, engine):
        await engine.index_documents()
        result = await engine.search("rust ownership borrow checker lifetimes")
        assert result.documents[0].similarity == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_content_is_truncated_for_display(self, memory_source, keyword_provider, vector_store):
        long_content = "python " + "word " * 300
        memory_source.register("docs", [Document(content=long_content, title="Long")])
        engine = RAGEngine(
            [memory_source],
            keyword_provider,
            vector_store,
            [SourceConfig(id="docs", source_type="memory")],
            content_preview_length=100,
        )
        await engine.index_documents()

        result = await engine.search(long_content)

        assert result.documents[0].content.endswith("...")
        assert len(result.documents[0].content) <= 103

    @pytest.mark.asyncio
    async def test_max_results_limits_documents_not_total(self, memory_source, keyword_provider, vector_store):
        memory_source.register("docs", [Document(content="shared topic", id=f"d{i}") for i in range(6)])
        engine = RAGEngine(
            [memory_source],
            keyword_provider,
            vector_store,
            [SourceConfig(id="docs", source_type="memory")],
        )
        await engine.index_documents()

        result = await engine.search("shared topic", max_results=2)

        assert [d.similarity for d in result.documents] == [pytest.approx(1.0)] * 2
        assert result.total_results == 4

    @pytest.mark.asyncio
    async def test_search_before_indexing_returns_empty(self, engine):
        result = await engine.search("python async")
        assert result.documents == []
        assert result.total_results == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query_rejected(self, engine, query):
        with pytest.raises(EmptyQueryError):
            await engine.search(query)

    @pytest.mark.asyncio
    async def test_invalid_max_results_rejected(self, engine):
        with pytest.raises(InvalidParameterError):
            await engine.search("python", max_results=0)

    @pytest.mark.asyncio
    async def test_query_dimension_mismatch_fails_fast(self, memory_source, vector_store):
        class MisreportingProvider(KeywordEmbeddingProvider):
            @property
            def embedding_dimension(self) -> int:
                return 32

        engine = RAGEngine([memory_source], MisreportingProvider(), vector_store)
        with pytest.raises(DimensionMismatchError):
            await engine.search("python")


class TestBackgroundSync:
    @pytest.mark.asyncio
    async def test_start_indexes_and_stop_cancels(self, engine):
        await engine.start()
        assert engine.is_running

        for _ in range(100):
            if engine.is_ready():
                break
            await asyncio.sleep(0.01)

        await engine.stop()

        assert engine.is_ready() is True
        assert engine.is_running is False

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, engine):
        await engine.stop()
        assert engine.is_running is False
