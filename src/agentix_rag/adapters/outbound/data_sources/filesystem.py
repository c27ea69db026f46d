"""Document source reading text files from a local directory tree."""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from ....common.utils import chunk_text, clean_text
from ....core.domain import Document, DocumentType, IndexingStatus, SourceConfig, SourceStatus
from ....core.domain.exceptions import DocumentLoadError, InvalidSourceConfigError, SourceUnavailableError
from ....core.ports.document_source_port import DocumentSourcePort

logger = logging.getLogger(__name__)

SOURCE_TYPE = "filesystem"

# Constants
MAX_FILE_SIZE = 50_000
CHUNK_SIZE = 1000
CHUNK_OVERLAP = 200

DEFAULT_EXTENSIONS = frozenset(
    {
        ".cs", ".js", ".ts", ".py", ".java", ".go", ".rs", ".cpp", ".c", ".h",
        ".md", ".txt", ".rst", ".adoc",
        ".json", ".yml", ".yaml", ".xml", ".toml",
    }
)  # fmt: skip

EXCLUDED_DIRECTORIES = frozenset(
    {
        "node_modules", "bin", "obj", ".git", "dist", "build", "target",
        ".vs", ".vscode", "packages", "__pycache__",
    }
)  # fmt: skip

DOCUMENTATION_EXTENSIONS = frozenset({".md", ".txt", ".rst", ".adoc"})
CONFIGURATION_EXTENSIONS = frozenset({".json", ".yml", ".yaml", ".xml", ".toml"})


def document_type_for(path: Path) -> DocumentType:
    """Infer the kind of content from a file extension."""
    suffix = path.suffix.lower()
    if suffix in DOCUMENTATION_EXTENSIONS:
        return DocumentType.DOCUMENTATION
    if suffix in CONFIGURATION_EXTENSIONS:
        return DocumentType.CONFIGURATION
    if suffix in DEFAULT_EXTENSIONS:
        return DocumentType.CODE
    return DocumentType.OTHER


class FileSystemDocumentSource(DocumentSourcePort):
    """Loads matching files below ``configuration["path"]`` as chunked documents.

    Recognised configuration keys:

    - ``path`` (required): root directory
    - ``extensions``: list of file suffixes to include
    - ``max_file_size``: files larger than this many bytes are skipped
    """

    @property
    def name(self) -> str:
        return "File System"

    @property
    def source_type(self) -> str:
        return SOURCE_TYPE

    async def can_handle(self, source_config: SourceConfig) -> bool:
        return source_config.source_type == SOURCE_TYPE and bool(source_config.configuration.get("path"))

    async def get_status(self, source_config: SourceConfig) -> SourceStatus:
        root = self._root(source_config)
        available = root.is_dir()
        return SourceStatus(
            source_id=source_config.id,
            source_name=source_config.display_name,
            status=IndexingStatus.NOT_STARTED if available else IndexingStatus.UNAVAILABLE,
            error_message=None if available else f"Directory not found: {root}",
        )

    async def load_documents(self, source_config: SourceConfig) -> list[Document]:
        root = self._root(source_config)
        if not root.is_dir():
            raise SourceUnavailableError(
                f"Directory not found: {root}", context={"source_id": source_config.id}
            )

        try:
            documents = await asyncio.to_thread(self._load_sync, root, source_config)
        except OSError as e:
            raise DocumentLoadError(
                f"Failed to read files under {root}", cause=e, context={"source_id": source_config.id}
            ) from e

        logger.info("Loaded %d documents from %s", len(documents), root)
        return documents

    @staticmethod
    def _root(source_config: SourceConfig) -> Path:
        path = source_config.configuration.get("path")
        if not path:
            raise InvalidSourceConfigError(
                "Filesystem source requires a 'path'", context={"source_id": source_config.id}
            )
        return Path(path).expanduser()

    def _load_sync(self, root: Path, source_config: SourceConfig) -> list[Document]:
        configured = source_config.configuration.get("extensions")
        extensions = {ext.lower() for ext in configured} if configured else DEFAULT_EXTENSIONS
        max_size = int(source_config.configuration.get("max_file_size", MAX_FILE_SIZE))

        documents: list[Document] = []
        for file_path in sorted(self._iter_files(root, extensions)):
            stat = file_path.stat()
            if stat.st_size > max_size:
                logger.debug("Skipping %s (%d bytes)", file_path, stat.st_size)
                continue

            text = clean_text(file_path.read_text(encoding="utf-8", errors="replace"), normalize=False)
            relative = file_path.relative_to(root).as_posix()
            modified = datetime.fromtimestamp(stat.st_mtime, tz=UTC)
            chunks = chunk_text(text, CHUNK_SIZE, CHUNK_OVERLAP)

            for index, chunk in enumerate(chunks):
                title = file_path.name if len(chunks) == 1 else f"{file_path.name} (part {index + 1})"
                documents.append(
                    Document(
                        id=f"{source_config.id}/{relative}#{index}",
                        content=chunk,
                        title=title,
                        type=document_type_for(file_path),
                        source_id=source_config.id,
                        source_name=source_config.display_name,
                        url=file_path.resolve().as_uri(),
                        path=relative,
                        last_modified=modified,
                        metadata={"chunk_index": index, "chunk_count": len(chunks)},
                    )
                )
        return documents

    @staticmethod
    def _iter_files(root: Path, extensions: set[str] | frozenset[str]):
        for path in root.rglob("*"):
            relative_parts = path.relative_to(root).parts[:-1]
            if any(part in EXCLUDED_DIRECTORIES for part in relative_parts):
                continue
            if path.is_file() and path.suffix.lower() in extensions:
                yield path
