"""Unit tests for the model cache and downloader.

HTTP is mocked; no test touches the network.
"""

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from agentix_rag.adapters.outbound.embeddings.model_manager import (
    SUPPORTED_MODELS,
    ModelManager,
    resolve_model,
)
from agentix_rag.core.domain.exceptions import ModelDownloadError, UnsupportedModelError
from tests.fakes import MINILM, write_cached_model

pytestmark = pytest.mark.unit


def make_session(chunks=(b"onnx-", b"bytes"), status_error=None):
    """Mock requests.Session whose GET streams the given chunks."""
    response = MagicMock()
    response.headers = {"content-length": str(sum(len(c) for c in chunks))}
    response.iter_content.return_value = list(chunks)
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.get.return_value = response
    return session


class SlowStreamingSession:
    """Session whose responses stream slowly and record overlapping downloads."""

    def __init__(self, chunks=5, delay=0.1):
        self.headers = {}
        self.chunks = chunks
        self.delay = delay
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def get(self, url, stream=False, timeout=None):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        response = MagicMock()
        response.headers = {}
        response.iter_content.side_effect = lambda chunk_size: self._stream()
        response.close.side_effect = self._finished
        return response

    def _stream(self):
        for _ in range(self.chunks):
            time.sleep(self.delay)
            yield b"x"

    def _finished(self):
        with self._lock:
            self.active -= 1


class TestCatalog:
    def test_supported_models_and_dimensions(self):
        assert resolve_model("all-MiniLM-L6-v2").dimension == 384
        assert resolve_model("all-mpnet-base-v2").dimension == 768

    def test_artifact_url(self):
        spec = SUPPORTED_MODELS[MINILM]
        assert spec.artifact_url == (
            "https://huggingface.co/onnx-models/all-MiniLM-L6-v2-onnx/resolve/main/model.onnx"
        )

    def test_unknown_model_raises(self):
        with pytest.raises(UnsupportedModelError):
            resolve_model("bert-large")


class TestEnsureModelAvailable:
    @pytest.mark.asyncio
    async def test_cache_hit_does_not_download(self, cache_location, cached_model):
        session = make_session()
        manager = ModelManager(cache=cache_location, session=session)

        path = await manager.ensure_model_available(MINILM)

        assert path == cached_model
        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_cache_miss_downloads_artifact_and_metadata(self, cache_location):
        session = make_session()
        manager = ModelManager(cache=cache_location, session=session)

        path = await manager.ensure_model_available(MINILM)

        assert path.read_bytes() == b"onnx-bytes"
        assert cache_location.metadata_path(MINILM).is_file()
        assert cache_location.is_cached(MINILM)
        url = session.get.call_args.args[0]
        assert url == SUPPORTED_MODELS[MINILM].artifact_url
        assert session.get.call_args.kwargs["stream"] is True

    @pytest.mark.asyncio
    async def test_artifact_without_metadata_is_downloaded_again(self, cache_location):
        cache_location.model_dir(MINILM).mkdir(parents=True)
        cache_location.artifact_path(MINILM).write_bytes(b"partial")
        session = make_session()
        manager = ModelManager(cache=cache_location, session=session)

        path = await manager.ensure_model_available(MINILM)

        session.get.assert_called_once()
        assert path.read_bytes() == b"onnx-bytes"

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_download(self, cache_location):
        session = make_session()
        manager = ModelManager(cache=cache_location, session=session)

        paths = await asyncio.gather(*(manager.ensure_model_available(MINILM) for _ in range(5)))

        assert len(set(paths)) == 1
        assert session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_unsupported_model_never_downloads(self, cache_location):
        session = make_session()
        manager = ModelManager(cache=cache_location, session=session)

        with pytest.raises(UnsupportedModelError):
            await manager.ensure_model_available("bert-large")
        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_raises_download_error_and_leaves_no_artifact(self, cache_location):
        session = make_session(status_error=requests.HTTPError("404 Not Found"))
        manager = ModelManager(cache=cache_location, session=session)

        with pytest.raises(ModelDownloadError) as exc_info:
            await manager.ensure_model_available(MINILM)

        assert exc_info.value.transient is True
        assert not cache_location.artifact_path(MINILM).exists()
        assert list(cache_location.model_dir(MINILM).glob("*.part")) == []

    @pytest.mark.asyncio
    async def test_connection_error_raises_download_error(self, cache_location):
        session = make_session()
        session.get.side_effect = requests.ConnectionError("connection reset")
        manager = ModelManager(cache=cache_location, session=session)

        with pytest.raises(ModelDownloadError):
            await manager.ensure_model_available(MINILM)
        assert not cache_location.is_cached(MINILM)

    @pytest.mark.asyncio
    async def test_cancelled_download_finishes_before_next_one_starts(self, cache_location):
        session = SlowStreamingSession(chunks=5, delay=0.1)
        manager = ModelManager(cache=cache_location, session=session)

        first = asyncio.create_task(manager.ensure_model_available(MINILM))
        await asyncio.sleep(0.15)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        assert session.active == 0
        assert not cache_location.is_cached(MINILM)

        path = await manager.ensure_model_available(MINILM)

        assert session.peak == 1
        assert path.read_bytes() == b"xxxxx"
        assert list(cache_location.model_dir(MINILM).glob("*.part")) == []


class TestCacheMaintenance:
    @pytest.mark.asyncio
    async def test_list_cached_models(self, cache_location, cached_model):
        manager = ModelManager(cache=cache_location, session=make_session())

        models = await manager.list_cached_models()

        assert [m.name for m in models] == [MINILM]
        assert models[0].path == cached_model
        assert models[0].size_bytes == cached_model.stat().st_size
        assert models[0].version == "1.0.0"
        assert models[0].downloaded_at is not None

    @pytest.mark.asyncio
    async def test_unreadable_metadata_still_lists_model(self, cache_location):
        write_cached_model(cache_location)
        cache_location.metadata_path(MINILM).write_text("{not json")
        manager = ModelManager(cache=cache_location, session=make_session())

        models = await manager.list_cached_models()

        assert len(models) == 1
        assert models[0].downloaded_at is None

    @pytest.mark.asyncio
    async def test_clear_cache_empties_root(self, cache_location, cached_model):
        manager = ModelManager(cache=cache_location, session=make_session())

        await manager.clear_cache()

        assert cache_location.root.is_dir()
        assert list(cache_location.root.iterdir()) == []
        assert await manager.list_cached_models() == []
