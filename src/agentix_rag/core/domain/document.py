"""Document, embedding and search result models for the RAG core."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentType(Enum):
    """Kind of content a document holds.

    Attributes:
        CODE: Source code file.
        DOCUMENTATION: README, docs pages and similar prose.
        ISSUE: Issue or bug report.
        PULL_REQUEST: Pull request or merge request.
        WIKI: Wiki page.
        CONFIGURATION: Configuration file.
        OTHER: Anything else.
    """

    CODE = "code"
    DOCUMENTATION = "documentation"
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"
    WIKI = "wiki"
    CONFIGURATION = "configuration"
    OTHER = "other"


@dataclass(frozen=True)
class Document:
    """An immutable unit of content that can be indexed and searched.

    Documents are produced by a document source and never mutated
    afterwards. The vector store keys them by ``id``.

    Attributes:
        content: The text content.
        title: Title or name of the document.
        type: Kind of content.
        source_id: Identifier of the source this document came from.
        source_name: Human-readable source name (e.g. "myorg/myrepo").
        url: Direct URL to the original document, if any.
        path: Path within the source (e.g. file path in a repository).
        last_modified: When the document was last modified.
        metadata: Open-ended key-value metadata.
        id: Unique identifier.
    """

    content: str
    title: str = ""
    type: DocumentType = DocumentType.OTHER
    source_id: str = ""
    source_name: str = ""
    url: str | None = None
    path: str | None = None
    last_modified: datetime = field(default_factory=_utcnow)
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class DocumentEmbedding:
    """A document paired with its embedding vector.

    The vector length always equals the producing provider's
    ``embedding_dimension``.
    """

    document: Document
    embedding: list[float]
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class VectorSearchResult:
    """A document found by similarity search.

    Attributes:
        document: The matched document.
        similarity: Cosine similarity (higher is more similar).
        distance: ``1 - similarity`` (lower is more similar).
    """

    document: Document
    similarity: float
    distance: float


@dataclass
class DocumentResult:
    """A ranked search hit shaped for callers of the RAG engine.

    Attributes:
        content: Document content, truncated for display.
        title: Title of the document.
        repository: Source name the document came from.
        file_path: Path within the source.
        url: Direct URL to view the document.
        similarity: Similarity score (higher is more similar).
        type: Kind of content.
        last_modified: When the document was last modified.
    """

    content: str
    title: str
    repository: str
    file_path: str
    url: str | None
    similarity: float
    type: DocumentType
    last_modified: datetime


@dataclass
class RAGResult:
    """Result of a RAG search query.

    Attributes:
        query: The original search query.
        documents: Ranked documents, most similar first.
        total_results: Number of candidates found above the threshold
            (may exceed ``len(documents)``).
        query_time: Time taken to execute the search.
        timestamp: When the search was performed.
    """

    query: str
    documents: list[DocumentResult] = field(default_factory=list)
    total_results: int = 0
    query_time: timedelta = field(default_factory=timedelta)
    timestamp: datetime = field(default_factory=_utcnow)
