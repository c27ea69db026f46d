"""Inbound adapters exposing the RAG engine to callers."""
