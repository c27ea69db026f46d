"""Tools exposing RAG search to agent orchestration layers."""

from .models import SearchHit, ToolResult
from .search_tool import RAGSearchTool

__all__ = ["RAGSearchTool", "SearchHit", "ToolResult"]
