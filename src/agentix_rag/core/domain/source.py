"""Document source configuration and per-source status models."""

import base64
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from urllib.parse import urlparse


class IndexingStatus(Enum):
    """Lifecycle state of a document source.

    Transitions (per source, independent of other sources)::

        NOT_STARTED -> INDEXING -> READY
        INDEXING -> ERROR
        READY -> INDEXING          (manual or periodic re-index)
        any -> UNAVAILABLE         (source reports itself unreachable)
    """

    NOT_STARTED = "not_started"
    INDEXING = "indexing"
    READY = "ready"
    ERROR = "error"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class SourceConfig:
    """Configuration for one document source.

    Attributes:
        id: Unique identifier for this source.
        source_type: Kind of source (e.g. "filesystem", "memory").
        configuration: Source-specific settings (path, url, ...).
        name: Human-readable name; falls back to ``id``.
        is_active: Inactive sources are skipped during indexing.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_type: str = ""
    configuration: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)
    name: str | None = None
    is_active: bool = True

    @classmethod
    def from_url(cls, url: str, source_type: str, **configuration: Any) -> "SourceConfig":
        """Config whose id and name are derived from a repository-style URL."""
        return cls(
            id=source_id_from_url(url),
            source_type=source_type,
            configuration={"url": url, **configuration},
            name=source_name_from_url(url),
        )

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass
class SourceStatus:
    """Indexing status of a document source.

    Attributes:
        source_id: Source identifier.
        source_name: Human-readable source name.
        status: Current lifecycle state.
        document_count: Number of documents indexed from this source.
        last_updated: When the status last changed.
        error_message: Failure description when ``status`` is ERROR or UNAVAILABLE.
        progress_percentage: 0-100 while indexing.
    """

    source_id: str
    source_name: str
    status: IndexingStatus = IndexingStatus.NOT_STARTED
    document_count: int = 0
    last_updated: datetime | None = None
    error_message: str | None = None
    progress_percentage: int = 0


def source_id_from_url(url: str) -> str:
    """Stable, URL-safe source id: base64 of the URL without padding."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def source_name_from_url(url: str) -> str:
    """``owner/name`` from a URL path such as ``https://host/owner/name``.

    Falls back to the URL itself when the path has no owner/name form.
    """
    try:
        path = urlparse(url).path.strip("/")
    except ValueError:
        return url
    return path if "/" in path else url
