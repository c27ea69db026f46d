"""In-memory vector store with exact cosine-similarity search.

Search is a linear scan over every stored vector; no index structure is
built. Suitable for thousands of documents, not millions.
"""

import asyncio
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import numpy as np

from ....core.domain import Document, DocumentEmbedding, VectorSearchResult
from ....core.domain.exceptions import DimensionMismatchError
from ....core.ports.vector_store_port import VectorStorePort

logger = logging.getLogger(__name__)

# Yield to the event loop between stored units so large stores stay cancellable
STORE_YIELD_EVERY = 256


@dataclass
class StoredEmbedding:
    """A stored record, replaced as a whole on re-store of the same id."""

    document: Document
    embedding: np.ndarray
    created_at: datetime


def cosine_similarity(vector_a: np.ndarray, vector_b: np.ndarray) -> float:
    """``dot(a, b) / (|a| * |b|)``; 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: The vectors differ in length.
    """
    if vector_a.shape != vector_b.shape:
        raise DimensionMismatchError(
            "Vector dimensions must match",
            context={"query_dimension": int(vector_a.size), "stored_dimension": int(vector_b.size)},
        )

    norm_a = float(np.linalg.norm(vector_a))
    norm_b = float(np.linalg.norm(vector_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    similarity = float(np.dot(vector_a, vector_b)) / (norm_a * norm_b)
    return max(-1.0, min(1.0, similarity))


class InMemoryVectorStore(VectorStorePort):
    """Thread-safe dictionary of embeddings keyed by document id.

    The lock is held only while mutating the map or copying a snapshot of
    it; similarity scans run on the snapshot in a worker thread.

    Ties in similarity are broken by ascending document id, so result
    order is deterministic.
    """

    def __init__(self, dimension: int | None = None) -> None:
        """Initialize the store.

        Args:
            dimension: When set, every stored vector must have this length.
        """
        self.dimension = dimension
        self._embeddings: dict[str, StoredEmbedding] = {}
        self._lock = threading.RLock()

    async def store(self, embeddings: Iterable[DocumentEmbedding]) -> int:
        """Upsert embeddings; the last write for an id wins.

        The whole batch is validated before anything is written. On
        cancellation, already-written documents stay complete and the rest
        are abandoned.
        """
        items = list(embeddings)
        if self.dimension is not None:
            for item in items:
                if len(item.embedding) != self.dimension:
                    raise DimensionMismatchError(
                        f"Embedding for document {item.document.id} has dimension "
                        f"{len(item.embedding)}, expected {self.dimension}",
                        context={"document_id": item.document.id},
                    )

        for index, item in enumerate(items, start=1):
            record = StoredEmbedding(
                document=item.document,
                embedding=np.asarray(item.embedding, dtype=np.float64),
                created_at=item.created_at,
            )
            with self._lock:
                self._embeddings[item.document.id] = record
            if index % STORE_YIELD_EVERY == 0:
                await asyncio.sleep(0)

        logger.debug("Stored %d embeddings in memory", len(items))
        return len(items)

    async def search_similar(
        self,
        query_embedding: list[float],
        max_results: int = 10,
        similarity_threshold: float = 0.7,
    ) -> list[VectorSearchResult]:
        """Rank stored documents by cosine similarity to the query.

        Only results at or above ``similarity_threshold`` are kept, sorted
        by descending similarity, at most ``max_results`` of them.

        Raises:
            DimensionMismatchError: Query and a stored vector differ in length.
        """
        if max_results <= 0:
            return []

        with self._lock:
            snapshot = list(self._embeddings.values())
        if not snapshot:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        results = await asyncio.to_thread(self._scan, query, snapshot, similarity_threshold)

        logger.debug(
            "Found %d similar documents above threshold %s", len(results), similarity_threshold
        )
        return results[:max_results]

    @staticmethod
    def _scan(
        query: np.ndarray,
        snapshot: list[StoredEmbedding],
        similarity_threshold: float,
    ) -> list[VectorSearchResult]:
        results = []
        for record in snapshot:
            similarity = cosine_similarity(query, record.embedding)
            if similarity >= similarity_threshold:
                results.append(
                    VectorSearchResult(
                        document=record.document,
                        similarity=similarity,
                        distance=1.0 - similarity,
                    )
                )
        results.sort(key=lambda r: (-r.similarity, r.document.id))
        return results

    async def delete_by_source(self, source_id: str) -> int:
        """Remove every document of a source; an unknown source is a no-op."""
        with self._lock:
            keys_to_remove = [
                key for key, record in self._embeddings.items() if record.document.source_id == source_id
            ]
            for key in keys_to_remove:
                del self._embeddings[key]

        logger.info("Removed %d embeddings for source %s", len(keys_to_remove), source_id)
        return len(keys_to_remove)

    async def count(self) -> int:
        with self._lock:
            return len(self._embeddings)

    async def count_by_source(self, source_id: str) -> int:
        with self._lock:
            return sum(1 for record in self._embeddings.values() if record.document.source_id == source_id)

    async def clear(self) -> None:
        with self._lock:
            count = len(self._embeddings)
            self._embeddings.clear()

        logger.info("Cleared %d embeddings from memory", count)
