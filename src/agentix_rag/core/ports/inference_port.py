"""Inference Session Port Interface."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

import numpy as np


class InferenceSessionPort(ABC):
    """A loaded embedding model that maps token ids to hidden states.

    ``run`` is blocking and CPU-bound; callers offload it to a worker thread.
    Implementations must tolerate concurrent ``run`` calls.
    """

    @property
    @abstractmethod
    def output_names(self) -> list[str]: ...

    @abstractmethod
    def run(self, input_ids: list[int], attention_mask: list[int]) -> dict[str, np.ndarray]:
        """Run the model on one token sequence.

        Returns:
            Output tensors keyed by output name, in the model's output order.
        """
        ...

    def close(self) -> None:
        """Release native resources held by the session."""


# Creates a session from a local model artifact path
SessionFactory = Callable[[Path], InferenceSessionPort]
