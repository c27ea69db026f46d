"""
Pytest configuration and shared fixtures.
"""

import pytest

from agentix_rag.adapters.outbound.embeddings import LocalEmbeddingProvider, ModelManager
from agentix_rag.core.domain import CacheLocation, Document, DocumentType
from tests.fakes import CountingSessionFactory, KeywordEmbeddingProvider, write_cached_model


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (several components together)")
    config.addinivalue_line("markers", "slow: Slow tests (network, large data)")


@pytest.fixture
def cache_location(tmp_path):
    """Model cache isolated to this test."""
    return CacheLocation(tmp_path / "models")


@pytest.fixture
def cached_model(cache_location):
    """Cache already holding the default model."""
    return write_cached_model(cache_location)


@pytest.fixture
def session_factory():
    return CountingSessionFactory()


@pytest.fixture
def local_provider(cache_location, cached_model, session_factory):
    """Local provider backed by a fake inference session."""
    provider = LocalEmbeddingProvider(
        ModelManager(cache=cache_location),
        session_factory=session_factory,
    )
    yield provider
    provider.close()


@pytest.fixture
def keyword_provider():
    return KeywordEmbeddingProvider()


@pytest.fixture
def sample_documents():
    """Small corpus about different topics."""
    return [
        Document(
            content="python async await coroutine tutorial",
            title="Async guide",
            type=DocumentType.DOCUMENTATION,
            source_name="acme/docs",
            path="docs/async.md",
            url="https://example.com/acme/docs/async.md",
        ),
        Document(
            content="rust ownership borrow checker lifetimes",
            title="Ownership",
            type=DocumentType.DOCUMENTATION,
            source_name="acme/docs",
            path="docs/ownership.md",
        ),
        Document(
            content="def main(): python entry point script",
            title="main.py",
            type=DocumentType.CODE,
            source_name="acme/docs",
            path="src/main.py",
        ),
    ]
