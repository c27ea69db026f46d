"""Common text utilities for the RAG core.

Text handling contract
----------------------
* Incoming documents have BOM markers stripped so downstream processing
  does not see spurious characters.
* Whitespace normalization is explicit: the tokenizer collapses runs of
  whitespace itself, document sources only clean and chunk.
* Display truncation happens once, when search hits are shaped for callers.
"""

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def clean_text(text: str, *, normalize: bool = True, ascii_only: bool = False) -> str:
    """Remove BOM markers and optionally normalize/ASCII-fold text.

    Args:
        text: Input text that may contain BOM or replacement characters.
        normalize: Whether to apply NFKC normalization. Enabled by default.
        ascii_only: Whether to discard non-ASCII characters.

    Returns:
        Cleaned text.
    """
    if not text:
        return ""

    cleaned = text.replace("\ufeff", "").replace("\ufffd", "")
    if normalize:
        cleaned = unicodedata.normalize("NFKC", cleaned)
    if ascii_only:
        cleaned = cleaned.encode("ascii", errors="ignore").decode("ascii")
    return cleaned


def normalize_whitespace(text: str) -> str:
    """Trim and collapse every run of whitespace to a single space."""
    return _WHITESPACE_RE.sub(" ", text.strip())


def chunk_text(
    text: str,
    chunk_size: int = 1000,
    chunk_overlap: int = 200,
) -> list[str]:
    """Split text into overlapping chunks for better vector search.

    Creates chunks of approximately chunk_size characters with overlap
    between consecutive chunks. Attempts to break at sentence boundaries
    for more coherent chunks.

    Args:
        text: Text to chunk.
        chunk_size: Target size of each chunk in characters (must be positive).
        chunk_overlap: Overlap between consecutive chunks (must be less than chunk_size).

    Returns:
        List of text chunks.

    Raises:
        ValueError: If chunk_overlap >= chunk_size or parameters are invalid.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if chunk_overlap < 0:
        raise ValueError("chunk_overlap must be non-negative")
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be less than chunk_size to avoid infinite loop")

    if not text:
        return []

    if len(text) <= chunk_size:
        return [text]

    chunks = []
    start = 0
    while start < len(text):
        end = start + chunk_size
        # Try to break at sentence boundary
        if end < len(text):
            for punct in [". ", ".\n", "? ", "?\n", "! ", "!\n", "\n\n"]:
                last_punct = text.rfind(punct, start, end)
                if last_punct > start + chunk_size // 2:
                    end = last_punct + 1
                    break
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= len(text):
            break
        start = end - chunk_overlap
    return chunks


def truncate_content(content: str, max_length: int) -> str:
    """Shorten content for display, preferring to break on a word boundary.

    Breaks at the last space when it lies beyond 80% of ``max_length``,
    otherwise cuts hard. A ``...`` suffix marks truncated output.
    """
    if len(content) <= max_length:
        return content

    truncated = content[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    return truncated + "..."
