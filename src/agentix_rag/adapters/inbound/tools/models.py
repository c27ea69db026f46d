"""Pydantic models for tool calls and results."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """A search result formatted for an AI model."""

    title: str = Field(..., description="Title of the document")
    repository: str = Field(..., description="Source the document came from")
    file_path: str = Field(..., description="Path within the source")
    content_preview: str = Field(..., description="Truncated document content")
    similarity_score: float = Field(..., description="Cosine similarity rounded to 3 places")
    document_type: str = Field(..., description="Kind of content (code, documentation, ...)")
    url: str | None = Field(None, description="Direct URL to the document")
    last_modified: str = Field(..., description="Last modification date (YYYY-MM-DD)")


class ToolResult(BaseModel):
    """Outcome of a tool execution."""

    tool_name: str = Field(..., description="Name of the tool that ran")
    success: bool = Field(..., description="Whether the tool completed successfully")
    message: str | None = Field(None, description="Human readable summary")
    data: dict[str, Any] | None = Field(None, description="Structured payload")
    error_message: str | None = Field(None, description="Failure description")
    execution_time_ms: int = Field(default=0, ge=0, description="Wall time of the call")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
