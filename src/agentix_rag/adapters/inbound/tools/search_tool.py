"""Natural language search tool backed by the RAG engine."""

import logging
import time
from typing import Any

from ....common.exception_handler import handle_exception
from ....core.domain import DocumentResult, RAGResult
from ....core.ports.rag_engine_port import RAGEnginePort
from .models import SearchHit, ToolResult

logger = logging.getLogger(__name__)

# Constants
DEFAULT_MAX_RESULTS = 5
MIN_RESULTS = 1
MAX_RESULTS = 20
SUMMARY_RESULTS = 3
SUMMARY_PREVIEW_LENGTH = 200

NOT_READY_MESSAGE = "Repository indexing is still in progress. Please try again in a few moments."


def relevance_label(similarity: float) -> str:
    if similarity >= 0.9:
        return "Highly relevant"
    if similarity >= 0.8:
        return "Very relevant"
    if similarity >= 0.7:
        return "Relevant"
    return "Potentially relevant"


def _plural(count: int) -> str:
    return "" if count == 1 else "s"


class RAGSearchTool:
    """Searches indexed sources for code, documentation and issues.

    Failures never raise; they come back as an unsuccessful ``ToolResult``
    so the calling agent can report them.
    """

    name = "rag_search"
    description = "Search indexed repositories for code, documentation and issues using natural language queries"
    category = "Development"

    def __init__(self, engine: RAGEnginePort) -> None:
        self.engine = engine

    async def execute(self, parameters: dict[str, Any]) -> ToolResult:
        """Run a search.

        Args:
            parameters: ``query`` (required) and ``max_results`` (clamped to 1-20).

        Returns:
            ToolResult with formatted hits in ``data["results"]``.
        """
        started = time.perf_counter()
        query = str(parameters.get("query") or "").strip()
        if not query:
            return self._failure("Query parameter is required and cannot be empty", started)

        max_results = self._parse_max_results(parameters.get("max_results"))
        logger.info("Searching repositories for: '%s' (max results: %d)", query, max_results)

        if not self.engine.is_ready():
            logger.warning("RAG engine not ready for search")
            return self._failure(NOT_READY_MESSAGE, started)

        try:
            result = await self.engine.search(query, max_results)
        except Exception as e:
            error = handle_exception(e, context={"query": query}, reraise=False, log=logger)
            return self._failure(f"Search failed: {error['error']['message']}", started)

        query_time_ms = int(result.query_time.total_seconds() * 1000)
        if not result.documents:
            logger.info("No results found for query: '%s'", query)
            return ToolResult(
                tool_name=self.name,
                success=True,
                message=(
                    f"No relevant results found for '{query}'. Try a different search term "
                    "or check if repositories are properly indexed."
                ),
                data={"query": query, "results": [], "total_results": 0, "query_time_ms": query_time_ms},
                execution_time_ms=self._elapsed_ms(started),
            )

        hits = [self.format_hit(document) for document in result.documents]
        repositories = list(dict.fromkeys(hit.repository for hit in hits))

        logger.info(
            "Found %d results for query '%s' in %dms", len(hits), query, query_time_ms
        )
        return ToolResult(
            tool_name=self.name,
            success=True,
            message=self.summarize(query, result),
            data={
                "query": query,
                "results": [hit.model_dump() for hit in hits],
                "total_results": result.total_results,
                "query_time_ms": query_time_ms,
                "repositories_searched": repositories,
            },
            execution_time_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def format_hit(document: DocumentResult) -> SearchHit:
        return SearchHit(
            title=document.title,
            repository=document.repository,
            file_path=document.file_path,
            content_preview=document.content,
            similarity_score=round(document.similarity, 3),
            document_type=document.type.name.lower(),
            url=document.url,
            last_modified=document.last_modified.strftime("%Y-%m-%d"),
        )

    @staticmethod
    def summarize(query: str, result: RAGResult) -> str:
        """Markdown summary of the top hits for an AI model."""
        documents = result.documents
        repositories = list(dict.fromkeys(document.repository for document in documents))

        lines = [f"Found {len(documents)} relevant result{_plural(len(documents))} for '{query}'"]
        if len(repositories) > 1:
            lines[0] += f" across {len(repositories)} repositories ({', '.join(repositories)})"
        elif repositories:
            lines[0] += f" in {repositories[0]}"
        lines[0] += ":"

        for document in documents[:SUMMARY_RESULTS]:
            content = document.content.strip()
            if len(content) > SUMMARY_PREVIEW_LENGTH:
                content = content[:SUMMARY_PREVIEW_LENGTH].strip() + "..."
            entry = [
                f"\n- **{document.title}** ({relevance_label(document.similarity)})",
                f"  Repository: {document.repository}",
                f"  Path: {document.file_path}",
            ]
            if document.url:
                entry.append(f"  URL: {document.url}")
            entry.append(f"  Preview: {content}")
            lines.extend(entry)

        remaining = len(documents) - SUMMARY_RESULTS
        if remaining > 0:
            lines.append(f"\n... and {remaining} more result{_plural(remaining)}")
        return "\n".join(lines)

    @staticmethod
    def _parse_max_results(value: Any) -> int:
        try:
            requested = int(value)
        except (TypeError, ValueError):
            return DEFAULT_MAX_RESULTS
        return max(MIN_RESULTS, min(MAX_RESULTS, requested))

    def _failure(self, error_message: str, started: float) -> ToolResult:
        return ToolResult(
            tool_name=self.name,
            success=False,
            error_message=error_message,
            execution_time_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
