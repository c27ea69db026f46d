"""Local embedding provider running an ONNX model in-process."""

import asyncio
import logging
from collections.abc import Iterable

from ....core.domain.exceptions import (
    AgentixRAGError,
    EmptyTextError,
    InferenceError,
    ModelLoadError,
    ProviderClosedError,
)
from ....core.ports.embedding_port import EmbeddingPort
from ....core.ports.inference_port import InferenceSessionPort, SessionFactory
from .model_manager import DEFAULT_MODEL_NAME, ModelManager, resolve_model
from .onnx_session import OnnxInferenceSession
from .pooling import l2_normalize, mean_pool, select_hidden_state
from .tokenizer import BertTokenizer

logger = logging.getLogger(__name__)

# Constants
EMBEDDING_BATCH_SIZE = 32
HEALTH_CHECK_TEXT = "test"


class LocalEmbeddingProvider(EmbeddingPort):
    """Embeds text offline with a cached ONNX sentence-embedding model.

    Pipeline per text: tokenize, run inference in a worker thread, select the
    token-level hidden state, mean-pool over attended tokens, L2-normalize.

    The inference session is created lazily on first use. Creation is
    single-flight: concurrent first calls wait on one load instead of
    loading the model twice.
    """

    def __init__(
        self,
        model_manager: ModelManager,
        tokenizer: BertTokenizer | None = None,
        model_name: str = DEFAULT_MODEL_NAME,
        embedding_dimension: int | None = None,
        session_factory: SessionFactory | None = None,
        batch_size: int = EMBEDDING_BATCH_SIZE,
    ) -> None:
        """Initialize the provider.

        Args:
            model_manager: Resolves the model to a local artifact.
            tokenizer: Tokenizer; a default ``BertTokenizer`` when omitted.
            model_name: Catalog name of the model.
            embedding_dimension: Overrides the catalog dimension.
            session_factory: Builds an inference session from an artifact path.
            batch_size: Texts per chunk in ``generate_embeddings``.

        Raises:
            UnsupportedModelError: ``model_name`` is not in the catalog.
        """
        spec = resolve_model(model_name)
        self.model_manager = model_manager
        self.tokenizer = tokenizer or BertTokenizer()
        self.model_name = model_name
        self.batch_size = batch_size
        self._dimension = embedding_dimension or spec.dimension
        self._session_factory: SessionFactory = session_factory or OnnxInferenceSession.from_path
        self._session: InferenceSessionPort | None = None
        self._load_lock = asyncio.Lock()
        self._closed = False

    @property
    def name(self) -> str:
        return f"Local-{self.model_name}"

    @property
    def embedding_dimension(self) -> int:
        return self._dimension

    @property
    def is_loaded(self) -> bool:
        return self._session is not None

    def __enter__(self) -> "LocalEmbeddingProvider":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the inference session. Further calls raise ProviderClosedError."""
        self._closed = True
        session, self._session = self._session, None
        if session is not None:
            session.close()
            logger.info("Local embedding provider %s closed", self.name)

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed a single text.

        Raises:
            EmptyTextError: ``text`` is empty or whitespace only.
            EmbeddingError: Model load or inference failed.
        """
        self._check_open()
        if not text or not text.strip():
            raise EmptyTextError("Text cannot be empty", context={"length": len(text or "")})

        try:
            session = await self._ensure_session()
            return await asyncio.to_thread(self._embed_sync, session, text)
        except Exception as e:
            logger.error("Error generating embedding for text of length %d: %s", len(text), e)
            raise

    async def generate_embeddings(self, texts: Iterable[str]) -> list[list[float]]:
        """Embed many texts in chunks, preserving the order of non-empty inputs.

        Empty and whitespace-only texts are dropped. Any single failure fails
        the whole batch; there are no partial results.
        """
        self._check_open()
        text_list = [text for text in texts if text and text.strip()]
        if not text_list:
            return []

        try:
            session = await self._ensure_session()
            results: list[list[float]] = []
            for start in range(0, len(text_list), self.batch_size):
                chunk = text_list[start : start + self.batch_size]
                chunk_results = await asyncio.gather(
                    *(asyncio.to_thread(self._embed_sync, session, text) for text in chunk)
                )
                results.extend(chunk_results)
            return results
        except Exception as e:
            logger.error("Error generating embeddings for %d texts: %s", len(text_list), e)
            raise

    async def health_check(self) -> bool:
        try:
            await self.generate_embedding(HEALTH_CHECK_TEXT)
            return True
        except Exception as e:
            logger.warning("Local embedding provider health check failed: %s", e)
            return False

    def _check_open(self) -> None:
        if self._closed:
            raise ProviderClosedError(f"Embedding provider {self.name} is closed")

    async def _ensure_session(self) -> InferenceSessionPort:
        session = self._session
        if session is not None:
            return session

        async with self._load_lock:
            # Double-check after acquiring the lock
            if self._session is not None:
                return self._session
            self._check_open()

            logger.info("Loading ONNX model %s for local embeddings...", self.model_name)
            model_path = await self.model_manager.ensure_model_available(self.model_name)
            try:
                session = await asyncio.to_thread(self._session_factory, model_path)
            except AgentixRAGError:
                raise
            except Exception as e:
                raise ModelLoadError(
                    f"Failed to load model {self.model_name}",
                    cause=e,
                    context={"model_path": str(model_path)},
                ) from e

            if self._closed:
                # close() ran while the model was loading
                session.close()
                raise ProviderClosedError(f"Embedding provider {self.name} is closed")

            self._session = session
            logger.info("ONNX model loaded successfully from %s", model_path)
            return session

    def _embed_sync(self, session: InferenceSessionPort, text: str) -> list[float]:
        tokens = self.tokenizer.tokenize(text)

        try:
            outputs = session.run(tokens.input_ids, tokens.attention_mask)
        except AgentixRAGError:
            raise
        except Exception as e:
            raise InferenceError(
                "Model inference failed",
                cause=e,
                context={"sequence_length": len(tokens), "text_length": len(text)},
            ) from e

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Available model outputs: %s", ", ".join(outputs))

        _, hidden_state = select_hidden_state(outputs)
        pooled = mean_pool(hidden_state, tokens.attention_mask, self._dimension)
        return l2_normalize(pooled).tolist()
