"""Local embedding stack: tokenizer, model cache, ONNX inference and provider."""

from .local_provider import LocalEmbeddingProvider
from .model_manager import DEFAULT_MODEL_NAME, SUPPORTED_MODELS, ModelManager, ModelSpec, resolve_model
from .onnx_session import OnnxInferenceSession
from .pooling import OUTPUT_MATCHERS, l2_normalize, mean_pool, select_hidden_state
from .tokenizer import BertTokenizer

__all__ = [
    "BertTokenizer",
    "ModelManager",
    "ModelSpec",
    "SUPPORTED_MODELS",
    "DEFAULT_MODEL_NAME",
    "resolve_model",
    "OnnxInferenceSession",
    "LocalEmbeddingProvider",
    "OUTPUT_MATCHERS",
    "select_hidden_state",
    "mean_pool",
    "l2_normalize",
]
