"""Adapters connecting the RAG core to concrete technologies."""
