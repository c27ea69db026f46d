"""Model download, caching and lookup for local ONNX embedding models."""

import asyncio
import json
import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import requests
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TransferSpeedColumn,
)

from ....core.domain import CacheLocation, ModelInfo, ModelMetadata
from ....core.domain.exceptions import ModelDownloadError, UnsupportedModelError

logger = logging.getLogger(__name__)

# Constants
DEFAULT_MODEL_NAME = "all-MiniLM-L6-v2"
METADATA_VERSION = "1.0.0"
DOWNLOAD_CHUNK_SIZE = 1024 * 1024
DEFAULT_TIMEOUT = 60.0


@dataclass(frozen=True)
class ModelSpec:
    """A supported embedding model."""

    name: str
    repo_url: str
    dimension: int

    @property
    def artifact_url(self) -> str:
        return f"{self.repo_url}/resolve/main/model.onnx"


SUPPORTED_MODELS: dict[str, ModelSpec] = {
    "all-MiniLM-L6-v2": ModelSpec(
        name="all-MiniLM-L6-v2",
        repo_url="https://huggingface.co/onnx-models/all-MiniLM-L6-v2-onnx",
        dimension=384,
    ),
    "all-mpnet-base-v2": ModelSpec(
        name="all-mpnet-base-v2",
        repo_url="https://huggingface.co/onnx-models/all-mpnet-base-v2-onnx",
        dimension=768,
    ),
}


def resolve_model(model_name: str) -> ModelSpec:
    """Look up a model in the catalog.

    Raises:
        UnsupportedModelError: The name is not in the catalog. There is no fallback.
    """
    spec = SUPPORTED_MODELS.get(model_name)
    if spec is None:
        raise UnsupportedModelError(
            f"Unsupported model: {model_name}",
            context={"model_name": model_name, "supported": sorted(SUPPORTED_MODELS)},
        )
    return spec


class ModelManager:
    """Resolves, downloads and caches ONNX embedding models.

    Downloads are single-flight per manager: the manager owns one cache
    location, and only one download runs at a time. Concurrent callers wait
    for the in-flight download and then read the cached result.

    ``clear_cache`` takes no lock. Callers must quiesce inference and
    downloads before clearing.
    """

    def __init__(
        self,
        cache: CacheLocation | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        show_progress: bool = False,
        console: Console | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            cache: Cache directory handle. Defaults to ``~/.agentix/models``.
            session: HTTP session used for downloads.
            timeout: Per-request timeout in seconds.
            show_progress: Render a rich progress bar while downloading.
            console: Rich console for the progress bar.
        """
        self.cache = cache or CacheLocation.default()
        self.timeout = timeout
        self.show_progress = show_progress
        self.console = console or Console(stderr=True)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "agentix-rag/0.1"})
        self._download_lock = asyncio.Lock()

        self.cache.root.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session:
            self.session.close()

    async def ensure_model_available(self, model_name: str = DEFAULT_MODEL_NAME) -> Path:
        """Return the local artifact path, downloading the model on a cache miss.

        Raises:
            UnsupportedModelError: Unknown model name.
            ModelDownloadError: Network or file failure during the download.
        """
        spec = resolve_model(model_name)
        artifact_path = self.cache.artifact_path(model_name)

        if self.cache.is_cached(model_name):
            logger.debug("Model %s found in cache at %s", model_name, artifact_path)
            return artifact_path

        async with self._download_lock:
            # Double-check after acquiring the lock
            if self.cache.is_cached(model_name):
                return artifact_path

            logger.info("Downloading model %s to %s", model_name, self.cache.model_dir(model_name))
            await self._download(spec, artifact_path)
            await asyncio.to_thread(self._write_metadata, model_name)

            logger.info("Model %s downloaded successfully", model_name)
            return artifact_path

    async def clear_cache(self) -> None:
        """Delete the whole cache tree and recreate it empty."""
        await asyncio.to_thread(self._clear_cache_sync)
        logger.info("Model cache cleared: %s", self.cache.root)

    async def list_cached_models(self) -> list[ModelInfo]:
        """Describe every cached model artifact."""
        return await asyncio.to_thread(self._list_cached_models_sync)

    async def _download(self, spec: ModelSpec, artifact_path: Path) -> None:
        cancel_event = threading.Event()
        worker = asyncio.ensure_future(
            asyncio.to_thread(self._fetch_artifact, spec, artifact_path, cancel_event)
        )
        try:
            await asyncio.shield(worker)
        except asyncio.CancelledError:
            # The worker stops at the next chunk and discards its temp file. The
            # caller still holds the download lock until the thread has exited.
            cancel_event.set()
            logger.debug("Download of %s cancelled", spec.name)
            await asyncio.gather(worker, return_exceptions=True)
            raise

    def _fetch_artifact(self, spec: ModelSpec, artifact_path: Path, cancel_event: threading.Event) -> None:
        """Stream the artifact to a temp file, then move it into place."""
        url = spec.artifact_url
        logger.debug("Downloading from %s", url)

        try:
            artifact_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".model-", suffix=".part", dir=artifact_path.parent)
        except OSError as e:
            raise ModelDownloadError(
                f"Cannot write to model cache for {spec.name}",
                cause=e,
                context={"path": str(artifact_path.parent)},
            ) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                self._stream_to(fh, spec, url, cancel_event)

            if cancel_event.is_set():
                return

            os.replace(tmp_path, artifact_path)
            logger.debug(
                "Model downloaded to %s, size: %d bytes", artifact_path, artifact_path.stat().st_size
            )
        except OSError as e:
            raise ModelDownloadError(
                f"Failed to write model artifact for {spec.name}",
                cause=e,
                context={"path": str(artifact_path)},
            ) from e
        finally:
            tmp_path.unlink(missing_ok=True)

    def _stream_to(self, fh, spec: ModelSpec, url: str, cancel_event: threading.Event) -> None:
        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("Failed to download model from %s: %s", url, e)
            raise ModelDownloadError(
                f"Failed to download model {spec.name}",
                cause=e,
                context={"url": url},
            ) from e

        try:
            response.raise_for_status()
            total = int(response.headers.get("content-length") or 0)
            with self._progress(spec.name, total) as advance:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if cancel_event.is_set():
                        return
                    if chunk:
                        fh.write(chunk)
                        advance(len(chunk))
        except requests.RequestException as e:
            logger.error("Failed to download model from %s: %s", url, e)
            raise ModelDownloadError(
                f"Failed to download model {spec.name}",
                cause=e,
                context={"url": url, "status_code": getattr(response, "status_code", None)},
            ) from e
        finally:
            response.close()

    @contextmanager
    def _progress(self, model_name: str, total: int) -> Iterator[Callable[[int], None]]:
        if not self.show_progress:
            yield lambda _: None
            return

        with Progress(
            TextColumn("[blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=self.console,
            transient=True,
        ) as progress:
            task = progress.add_task(f"Downloading {model_name}", total=total or None)
            yield lambda n: progress.advance(task, n)

    def _write_metadata(self, model_name: str) -> None:
        metadata = ModelMetadata(
            model_name=model_name,
            downloaded_at=datetime.now(UTC),
            version=METADATA_VERSION,
        )
        metadata_path = self.cache.metadata_path(model_name)
        tmp_path = metadata_path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(json.dumps(metadata.to_dict(), indent=2), encoding="utf-8")
            os.replace(tmp_path, metadata_path)
        except OSError as e:
            raise ModelDownloadError(
                f"Failed to write metadata for {model_name}",
                cause=e,
                context={"path": str(metadata_path)},
            ) from e

    def _clear_cache_sync(self) -> None:
        if self.cache.root.exists():
            shutil.rmtree(self.cache.root)
        self.cache.root.mkdir(parents=True, exist_ok=True)

    def _list_cached_models_sync(self) -> list[ModelInfo]:
        models: list[ModelInfo] = []
        if not self.cache.root.is_dir():
            return models

        for model_dir in sorted(p for p in self.cache.root.iterdir() if p.is_dir()):
            model_name = model_dir.name
            artifact_path = self.cache.artifact_path(model_name)
            if not artifact_path.is_file():
                continue

            stat = artifact_path.stat()
            info = ModelInfo(
                name=model_name,
                path=artifact_path,
                size_bytes=stat.st_size,
                last_modified=datetime.fromtimestamp(stat.st_mtime, UTC),
            )

            metadata_path = self.cache.metadata_path(model_name)
            if metadata_path.is_file():
                try:
                    metadata = ModelMetadata.from_dict(json.loads(metadata_path.read_text(encoding="utf-8")))
                    info.downloaded_at = metadata.downloaded_at
                    info.version = metadata.version
                except (OSError, ValueError, KeyError) as e:
                    logger.warning("Failed to read metadata for model %s: %s", model_name, e)

            models.append(info)

        return models
