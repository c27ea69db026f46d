"""Embedding model cache and tokenization models."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

MODEL_ARTIFACT_NAME = "model.onnx"
METADATA_FILE_NAME = "metadata.json"


@dataclass(frozen=True)
class CacheLocation:
    """Handle to an on-disk model cache directory.

    Passed explicitly to the model manager so every test run (or process)
    can isolate its own cache. Layout::

        {root}/{model_name}/model.onnx
        {root}/{model_name}/metadata.json

    Attributes:
        root: Cache root directory.
    """

    root: Path

    @classmethod
    def default(cls) -> "CacheLocation":
        """Cache under the user's home directory (``~/.agentix/models``)."""
        return cls(Path.home() / ".agentix" / "models")

    def model_dir(self, model_name: str) -> Path:
        return self.root / model_name

    def artifact_path(self, model_name: str) -> Path:
        return self.model_dir(model_name) / MODEL_ARTIFACT_NAME

    def metadata_path(self, model_name: str) -> Path:
        return self.model_dir(model_name) / METADATA_FILE_NAME

    def is_cached(self, model_name: str) -> bool:
        """Both the artifact and its metadata sidecar must exist.

        An artifact without metadata is a partial download and counts as a miss.
        """
        return self.artifact_path(model_name).is_file() and self.metadata_path(model_name).is_file()


@dataclass
class ModelMetadata:
    """Contents of the ``metadata.json`` sidecar written after a download."""

    model_name: str
    downloaded_at: datetime
    version: str = "1.0.0"

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_name": self.model_name,
            "downloaded_at": self.downloaded_at.isoformat(),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelMetadata":
        return cls(
            model_name=data["model_name"],
            downloaded_at=datetime.fromisoformat(data["downloaded_at"]),
            version=data.get("version", ""),
        )


@dataclass
class ModelInfo:
    """Information about a cached model.

    Attributes:
        name: Model name (cache sub-directory name).
        path: Path to the model artifact.
        size_bytes: Artifact size on disk.
        last_modified: Artifact modification time.
        downloaded_at: From metadata, if readable.
        version: From metadata, if readable.
    """

    name: str
    path: Path
    size_bytes: int
    last_modified: datetime
    downloaded_at: datetime | None = None
    version: str | None = None


@dataclass
class TokenizationResult:
    """Token ids and attention mask for one text.

    Both lists always have the same length. The mask is 1 for real tokens
    and 0 for padding.
    """

    input_ids: list[int] = field(default_factory=list)
    attention_mask: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.input_ids)
