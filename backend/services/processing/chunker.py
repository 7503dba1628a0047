"""
Budget-aware chunking for splitting transcripts into AI-request-sized pieces.

Splitting never cuts mid-sentence where a better break point exists, and it
never raises: malformed input degrades to the most conservative valid output.
"""
import logging
import math
import re
from typing import List, Optional, Pattern, Sequence, Tuple, Union

from models.processing_models import Chapter, Chunk
from core.config import (
    CHARS_PER_TOKEN,
    CHUNK_MAX_TOKENS,
    CHUNK_OVERLAP_TOKENS,
    CHAPTER_MARKER_PATTERN,
)

logger = logging.getLogger(__name__)

# Break points in priority order
PARAGRAPH_BREAKS = ("\n\n",)
LINE_BREAKS = ("\n",)
SENTENCE_BREAKS = (". ", "? ", "! ")
CLAUSE_BREAKS = (";", ",")
WORD_BREAKS = (" ",)
BREAK_PRIORITY = (
    PARAGRAPH_BREAKS,
    LINE_BREAKS,
    SENTENCE_BREAKS,
    CLAUSE_BREAKS,
    WORD_BREAKS,
)

# Fraction of the chunk (from its end) searched for a break point
BOUNDARY_SEARCH_RATIO = 0.5


def estimate_token_count(text: Optional[str]) -> int:
    """Rough token estimate (~4 characters per token). Budgeting only."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def boundary_search_window(max_chunk_size: int) -> int:
    """Number of characters before a naive cut that are searched for a break."""
    return max(1, int(max_chunk_size * BOUNDARY_SEARCH_RATIO))


def _find_break(text: str, start: int, end: int, window: int) -> int:
    """
    Find the best end position for a chunk running from start towards end.

    Searches backward from end, one priority tier at a time, and returns the
    position just after the latest separator of the first tier that has one.
    Falls back to a hard cut at end.
    """
    window_start = max(start + 1, end - window)
    for separators in BREAK_PRIORITY:
        best = -1
        for separator in separators:
            position = text.rfind(separator, window_start, end)
            if position != -1:
                best = max(best, position + len(separator))
        if best > start:
            return best
    return end


def _character_spans(text: str, max_chunk_size: int, overlap: int) -> List[Tuple[int, int]]:
    """Compute (start, end) offsets for every chunk of text."""
    length = len(text)
    # Overlap is capped at half a chunk so every step moves forward
    overlap = max(0, min(overlap, max_chunk_size // 2))
    window = boundary_search_window(max_chunk_size)

    spans = []
    start = 0
    while start < length:
        end = start + max_chunk_size
        if end < length:
            end = _find_break(text, start, end, window)
        else:
            end = length

        spans.append((start, end))
        if end >= length:
            break

        start = max(end - overlap, start + 1)

    return spans


def split_by_character_budget(
    text: str,
    max_chunk_size: int = 4000,
    overlap: int = 200,
) -> List[str]:
    """
    Split text into chunks of at most max_chunk_size characters.

    Consecutive chunks share up to `overlap` characters so the model keeps
    context across boundaries. Text that already fits is returned as-is.

    Args:
        text: Text to split
        max_chunk_size: Maximum characters per chunk
        overlap: Characters repeated at the start of the next chunk

    Returns:
        List of chunk strings (never empty)
    """
    if not text or max_chunk_size <= 0 or len(text) <= max_chunk_size:
        return [text if text else ""]

    return [text[start:end] for start, end in _character_spans(text, max_chunk_size, overlap)]


def split_by_token_budget(
    text: str,
    max_tokens: int = 4000,
    overlap_tokens: int = 200,
) -> List[str]:
    """Split text by estimated token count rather than characters."""
    return split_by_character_budget(
        text,
        max_chunk_size=max_tokens * CHARS_PER_TOKEN,
        overlap=overlap_tokens * CHARS_PER_TOKEN,
    )


def _numbered_parts(
    text: str,
    max_tokens_per_chunk: int,
    overlap_tokens: int,
) -> List[Chunk]:
    """Token-budget split with synthetic "Part N" titles."""
    parts = split_by_token_budget(text, max_tokens_per_chunk, overlap_tokens)
    return [
        Chunk(title=f"Part {index}", content=part, sequence=index)
        for index, part in enumerate(parts, 1)
    ]


def _compile_marker_pattern(marker_pattern: Union[str, Pattern]) -> Pattern:
    if isinstance(marker_pattern, str):
        return re.compile(marker_pattern, re.MULTILINE)
    return marker_pattern


def split_by_chapter_markers(
    text: str,
    marker_pattern: Union[str, Pattern] = CHAPTER_MARKER_PATTERN,
    max_tokens_per_chunk: int = CHUNK_MAX_TOKENS,
    overlap_tokens: int = CHUNK_OVERLAP_TOKENS,
) -> List[Chunk]:
    """
    Split text along chapter markers such as "# [00:12:30] Chapter title".

    Each chapter runs from its marker to the next marker (or end of text),
    with the marker line as its title. Oversized chapters are split further
    and titled "<title> (Part j)". Text before the first marker becomes an
    "Introduction" chunk.

    Falls back to token-budget splitting with "Part N" titles when no markers
    are found or the pattern cannot be used, and to a single truncated
    "Full Content" chunk if that fails as well.
    """
    if not text or not isinstance(text, str):
        logger.warning("Invalid text provided to split_by_chapter_markers, returning no chunks")
        return []

    try:
        try:
            pattern = _compile_marker_pattern(marker_pattern)
            markers = [(match.group(0).strip(), match.start()) for match in pattern.finditer(text)]
        except (re.error, TypeError) as e:
            logger.error(f"Chapter marker pattern failed ({e}), using token-based chunking")
            return _numbered_parts(text, max_tokens_per_chunk, overlap_tokens)

        if not markers:
            logger.info("No chapters found, falling back to token-based chunking")
            return _numbered_parts(text, max_tokens_per_chunk, overlap_tokens)

        logger.info(f"Found {len(markers)} chapters in text")

        sections = []
        preamble = text[:markers[0][1]]
        if preamble.strip():
            sections.append(("Introduction", preamble))

        for i, (title, start_index) in enumerate(markers):
            end_index = markers[i + 1][1] if i + 1 < len(markers) else len(text)
            if start_index >= end_index:
                logger.warning(f"Invalid chapter boundaries: start={start_index}, end={end_index}, skipping")
                continue
            sections.append((title, text[start_index:end_index]))

        chunks = []
        for title, content in sections:
            if estimate_token_count(content) > max_tokens_per_chunk:
                parts = split_by_token_budget(content, max_tokens_per_chunk, overlap_tokens)
                for j, part in enumerate(parts, 1):
                    chunks.append(Chunk(title=f"{title} (Part {j})", content=part, sequence=len(chunks) + 1))
            else:
                chunks.append(Chunk(title=title, content=content, sequence=len(chunks) + 1))

        if not chunks:
            logger.warning("No valid chapters after processing, falling back to token-based chunking")
            return _numbered_parts(text, max_tokens_per_chunk, overlap_tokens)

        return chunks

    except Exception as e:
        logger.error(f"Error splitting by chapters: {e}")
        try:
            return _numbered_parts(text, max_tokens_per_chunk, overlap_tokens)
        except Exception as fallback_error:
            logger.error(f"Error in fallback chunking: {fallback_error}")
            limit = max(1, max_tokens_per_chunk) * CHARS_PER_TOKEN
            return [Chunk(title="Full Content", content=text[:limit], sequence=1)]


def chunks_from_chapters(
    chapters: Sequence[Chapter],
    max_tokens_per_chunk: int = CHUNK_MAX_TOKENS,
    overlap_tokens: int = CHUNK_OVERLAP_TOKENS,
) -> List[Chapter]:
    """
    Bound caller-supplied chapters to the token budget.

    Chapters that fit are kept unchanged; oversized ones are split and each
    part is titled "<title> (Part j)". Order is preserved.
    """
    bounded = []
    for chapter in chapters:
        if estimate_token_count(chapter.text) <= max_tokens_per_chunk:
            bounded.append(chapter)
            continue

        parts = split_by_token_budget(chapter.text, max_tokens_per_chunk, overlap_tokens)
        logger.debug(f"Chapter '{chapter.title}' split into {len(parts)} parts")
        for j, part in enumerate(parts, 1):
            bounded.append(Chapter(title=f"{chapter.title} (Part {j})", text=part))

    return bounded
