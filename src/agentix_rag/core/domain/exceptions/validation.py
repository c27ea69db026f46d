"""Validation exceptions."""

from .base import AgentixRAGError


class ValidationError(AgentixRAGError):
    """Input validation failed."""

    error_code = "RAG_VAL_001"


class EmptyQueryError(ValidationError):
    """Query cannot be empty or whitespace only."""

    error_code = "RAG_VAL_002"


class EmptyTextError(ValidationError):
    """Text to embed cannot be empty or whitespace only."""

    error_code = "RAG_VAL_003"


class InvalidParameterError(ValidationError):
    """A numeric or enumerated parameter is out of range."""

    error_code = "RAG_VAL_004"
