"""Outbound adapters: embeddings, vector storage and document sources."""
