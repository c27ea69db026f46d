"""Document source adapters."""

from .filesystem import FileSystemDocumentSource
from .in_memory import InMemoryDocumentSource

__all__ = ["FileSystemDocumentSource", "InMemoryDocumentSource"]
