"""Hidden-state selection, mean pooling and normalization."""

from collections.abc import Callable, Sequence

import numpy as np

from ....core.domain.exceptions import DimensionMismatchError, InferenceError

OutputMatcher = Callable[[str], bool]

# Evaluated in order; the first matcher that accepts any output name wins.
OUTPUT_MATCHERS: tuple[tuple[str, OutputMatcher], ...] = (
    ("last_hidden_state", lambda name: name == "last_hidden_state"),
    ("hidden_states", lambda name: name == "hidden_states"),
    ("contains 'hidden'", lambda name: "hidden" in name),
    ("first output", lambda name: True),
)


def select_hidden_state(
    outputs: dict[str, np.ndarray],
    matchers: Sequence[tuple[str, OutputMatcher]] = OUTPUT_MATCHERS,
) -> tuple[str, np.ndarray]:
    """Pick the token-level hidden-state output from a model run.

    Output naming varies by exported model, so each matcher is tried in
    priority order against every output name.

    Returns:
        ``(output_name, tensor)`` of the selected output.

    Raises:
        InferenceError: No output matched (the model produced no outputs).
    """
    for _, matches in matchers:
        for name, value in outputs.items():
            if matches(name):
                return name, value
    raise InferenceError(
        "No suitable output tensor found",
        context={"available_outputs": list(outputs)},
    )


def mean_pool(hidden_state: np.ndarray, attention_mask: Sequence[int], dimension: int) -> np.ndarray:
    """Average token vectors over attended positions (mask == 1).

    Args:
        hidden_state: ``[1, seq, dim]``, ``[seq, dim]`` or flattened token vectors.
        attention_mask: One entry per token position.
        dimension: Expected hidden size.

    Returns:
        Pooled vector of length ``dimension``; zeros when nothing is attended.
    """
    hidden = np.asarray(hidden_state, dtype=np.float64)
    if hidden.ndim >= 2 and hidden.shape[-1] != dimension:
        raise DimensionMismatchError(
            f"Model hidden size {hidden.shape[-1]} does not match embedding dimension {dimension}",
            context={"hidden_shape": list(hidden.shape), "dimension": dimension},
        )
    if hidden.size % dimension != 0:
        raise DimensionMismatchError(
            f"Hidden state of size {hidden.size} is not a multiple of {dimension}",
            context={"hidden_size": hidden.size, "dimension": dimension},
        )

    tokens = hidden.reshape(-1, dimension)
    mask = np.asarray(attention_mask) == 1
    if tokens.shape[0] < mask.shape[0]:
        raise InferenceError(
            "Model returned fewer token positions than the attention mask",
            context={"positions": tokens.shape[0], "mask_length": mask.shape[0]},
        )

    tokens = tokens[: mask.shape[0]]
    attended = int(mask.sum())
    if attended == 0:
        return np.zeros(dimension, dtype=np.float64)
    return tokens[mask].sum(axis=0) / attended


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit Euclidean norm; a zero vector is returned unchanged."""
    norm = float(np.linalg.norm(vector))
    if norm > 0:
        return vector / norm
    return vector
