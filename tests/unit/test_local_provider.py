"""Unit tests for the local ONNX embedding provider.

Inference runs against a deterministic fake session; the model cache is
pre-populated so nothing is downloaded.
"""

import asyncio
import time

import numpy as np
import pytest

from agentix_rag.adapters.outbound.embeddings import LocalEmbeddingProvider, ModelManager
from agentix_rag.core.domain.exceptions import (
    DimensionMismatchError,
    EmptyTextError,
    InferenceError,
    ModelLoadError,
    ProviderClosedError,
    UnsupportedModelError,
)
from tests.fakes import CountingSessionFactory, FakeInferenceSession

pytestmark = pytest.mark.unit


class TestProperties:
    def test_name_and_dimension(self, local_provider):
        assert local_provider.name == "Local-all-MiniLM-L6-v2"
        assert local_provider.embedding_dimension == 384
        assert local_provider.is_loaded is False

    def test_mpnet_dimension(self, cache_location):
        provider = LocalEmbeddingProvider(ModelManager(cache=cache_location), model_name="all-mpnet-base-v2")
        assert provider.embedding_dimension == 768

    def test_unknown_model_rejected_at_construction(self, cache_location):
        with pytest.raises(UnsupportedModelError):
            LocalEmbeddingProvider(ModelManager(cache=cache_location), model_name="bert-large")


class TestGenerateEmbedding:
    @pytest.mark.asyncio
    async def test_vector_has_dimension_and_unit_norm(self, local_provider):
        vector = await local_provider.generate_embedding("hello world")

        assert len(vector) == 384
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)
        assert local_provider.is_loaded

    @pytest.mark.asyncio
    async def test_same_text_same_vector(self, local_provider):
        first = await local_provider.generate_embedding("hello world")
        second = await local_provider.generate_embedding("hello world")
        assert first == second

    @pytest.mark.asyncio
    async def test_different_texts_differ(self, local_provider):
        first = await local_provider.generate_embedding("hello world")
        second = await local_provider.generate_embedding("goodbye moon")
        assert first != second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   "])
    async def test_empty_text_raises(self, local_provider, text):
        with pytest.raises(EmptyTextError):
            await local_provider.generate_embedding(text)

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_load_model_once(self, local_provider, session_factory):
        vectors = await asyncio.gather(
            *(local_provider.generate_embedding(f"text {i}") for i in range(8))
        )

        assert len(vectors) == 8
        assert len(session_factory.calls) == 1

    @pytest.mark.asyncio
    async def test_factory_failure_becomes_model_load_error(self, cache_location, cached_model):
        def broken_factory(path):
            raise RuntimeError("corrupt model")

        provider = LocalEmbeddingProvider(ModelManager(cache=cache_location), session_factory=broken_factory)

        with pytest.raises(ModelLoadError) as exc_info:
            await provider.generate_embedding("hello")
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert provider.is_loaded is False

    @pytest.mark.asyncio
    async def test_session_failure_becomes_inference_error(self, cache_location, cached_model):
        class FailingSession(FakeInferenceSession):
            def run(self, input_ids, attention_mask):
                raise RuntimeError("bad input")

        provider = LocalEmbeddingProvider(
            ModelManager(cache=cache_location), session_factory=lambda path: FailingSession()
        )

        with pytest.raises(InferenceError):
            await provider.generate_embedding("hello")

    @pytest.mark.asyncio
    async def test_wrong_hidden_size_is_rejected(self, cache_location, cached_model):
        provider = LocalEmbeddingProvider(
            ModelManager(cache=cache_location), session_factory=CountingSessionFactory(dimension=768)
        )

        with pytest.raises(DimensionMismatchError):
            await provider.generate_embedding("hello")


class TestGenerateEmbeddings:
    @pytest.mark.asyncio
    async def test_preserves_order(self, local_provider):
        texts = [f"document number {i}" for i in range(40)]

        batch = await local_provider.generate_embeddings(texts)
        singles = [await local_provider.generate_embedding(text) for text in texts[:3]]

        assert len(batch) == 40
        assert batch[:3] == singles

    @pytest.mark.asyncio
    async def test_drops_empty_texts(self, local_provider):
        vectors = await local_provider.generate_embeddings(["alpha", "", "  ", "beta"])
        assert len(vectors) == 2
        assert vectors[0] == await local_provider.generate_embedding("alpha")

    @pytest.mark.asyncio
    async def test_empty_input_returns_empty_without_loading(self, local_provider, session_factory):
        assert await local_provider.generate_embeddings([]) == []
        assert session_factory.calls == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_health_check(self, local_provider):
        assert await local_provider.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_reports_failure(self, cache_location, cached_model):
        def broken_factory(path):
            raise RuntimeError("corrupt model")

        provider = LocalEmbeddingProvider(ModelManager(cache=cache_location), session_factory=broken_factory)
        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_closed_provider_rejects_calls(self, local_provider):
        await local_provider.generate_embedding("warm up")
        local_provider.close()

        assert local_provider.is_loaded is False
        with pytest.raises(ProviderClosedError):
            await local_provider.generate_embedding("hello")
        with pytest.raises(ProviderClosedError):
            await local_provider.generate_embeddings(["hello"])

    @pytest.mark.asyncio
    async def test_close_during_model_load_closes_new_session(self, cache_location, cached_model):
        sessions = []

        def slow_factory(model_path):
            time.sleep(0.2)
            session = FakeInferenceSession()
            sessions.append(session)
            return session

        provider = LocalEmbeddingProvider(ModelManager(cache=cache_location), session_factory=slow_factory)
        task = asyncio.create_task(provider.generate_embedding("hello"))
        await asyncio.sleep(0.05)

        provider.close()
        with pytest.raises(ProviderClosedError):
            await task

        assert provider.is_loaded is False
        assert len(sessions) == 1
        assert sessions[0].closed is True

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, cache_location, cached_model):
        with LocalEmbeddingProvider(ModelManager(cache=cache_location)) as provider:
            pass
        with pytest.raises(ProviderClosedError):
            await provider.generate_embedding("hello")
