"""ONNX Runtime inference session adapter."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from ....core.ports.inference_port import InferenceSessionPort

if TYPE_CHECKING:
    import onnxruntime

logger = logging.getLogger(__name__)


class OnnxInferenceSession(InferenceSessionPort):
    """Runs a BERT-style ONNX export on one token sequence at a time.

    Feeds ``input_ids``, ``attention_mask`` and zero ``token_type_ids`` as
    int64 ``[1, seq]`` tensors, skipping any the model does not declare.
    ``onnxruntime.InferenceSession.run`` is safe to call from several threads.
    """

    def __init__(self, session: "onnxruntime.InferenceSession") -> None:
        self._session: Any = session
        self._input_names = {node.name for node in session.get_inputs()}
        self._output_names = [node.name for node in session.get_outputs()]

    @classmethod
    def from_path(cls, model_path: Path, providers: list[str] | None = None) -> "OnnxInferenceSession":
        """Load a session from a local ``model.onnx`` file."""
        import onnxruntime

        session = onnxruntime.InferenceSession(
            str(model_path),
            providers=providers or ["CPUExecutionProvider"],
        )
        logger.debug("ONNX session created for %s", model_path)
        return cls(session)

    @property
    def output_names(self) -> list[str]:
        return list(self._output_names)

    def run(self, input_ids: list[int], attention_mask: list[int]) -> dict[str, np.ndarray]:
        if self._session is None:
            raise RuntimeError("ONNX session is closed")

        ids = np.asarray([input_ids], dtype=np.int64)
        feeds = {
            "input_ids": ids,
            "attention_mask": np.asarray([attention_mask], dtype=np.int64),
            "token_type_ids": np.zeros_like(ids),
        }
        feeds = {name: value for name, value in feeds.items() if name in self._input_names}

        values = self._session.run(self._output_names, feeds)
        return dict(zip(self._output_names, values, strict=True))

    def close(self) -> None:
        # onnxruntime frees native memory once the session is unreferenced
        self._session = None
