"""Configuration-related exceptions."""

from .base import AgentixRAGError


class ConfigurationError(AgentixRAGError):
    """Configuration errors.

    Always fatal. Surfaced immediately and never retried internally.
    """

    error_code = "RAG_CFG_001"


class UnsupportedModelError(ConfigurationError):
    """Requested embedding model is not in the supported catalog."""

    error_code = "RAG_CFG_002"


class InvalidSourceConfigError(ConfigurationError):
    """Source configuration is malformed or no document source can handle it."""

    error_code = "RAG_CFG_003"


class InvalidConfigurationError(ConfigurationError):
    """Configuration value is invalid."""

    error_code = "RAG_CFG_004"
