"""Port interfaces (abstract base classes) for the RAG core."""

from .document_source_port import DocumentSourcePort
from .embedding_port import EmbeddingPort
from .inference_port import InferenceSessionPort, SessionFactory
from .rag_engine_port import RAGEnginePort
from .vector_store_port import VectorStorePort

__all__ = [
    "DocumentSourcePort",
    "EmbeddingPort",
    "InferenceSessionPort",
    "SessionFactory",
    "RAGEnginePort",
    "VectorStorePort",
]
