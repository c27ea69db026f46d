"""Application services of the RAG core."""

from .rag_engine import RAGEngine

__all__ = ["RAGEngine"]
