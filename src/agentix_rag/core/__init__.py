"""Domain models, ports and services of the RAG core."""
