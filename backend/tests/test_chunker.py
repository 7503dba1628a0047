"""
Unit tests for transcript chunking.
"""
import pytest

from models.processing_models import Chapter
from services.processing.chunker import (
    _character_spans,
    chunks_from_chapters,
    estimate_token_count,
    split_by_chapter_markers,
    split_by_character_budget,
    split_by_token_budget,
)


def reconstruct(text, max_chunk_size, overlap):
    """Join chunks back together, dropping each chunk's overlap with the previous one."""
    spans = _character_spans(text, max_chunk_size, overlap)
    chunks = split_by_character_budget(text, max_chunk_size, overlap)
    assert len(chunks) == len(spans)

    result = chunks[0]
    for (_, prev_end), (start, _), chunk in zip(spans, spans[1:], chunks[1:]):
        assert start <= prev_end
        result += chunk[prev_end - start:]
    return result


class TestTokenEstimate:
    """Test the 4-characters-per-token estimate."""

    def test_empty_text(self):
        assert estimate_token_count("") == 0
        assert estimate_token_count(None) == 0

    def test_rounds_up(self):
        assert estimate_token_count("abcd") == 1
        assert estimate_token_count("abcde") == 2
        assert estimate_token_count("a" * 4000) == 1000


class TestCharacterBudget:
    """Test splitting by character budget."""

    def test_short_text_returned_as_is(self):
        assert split_by_character_budget("hello world", 4000, 200) == ["hello world"]

    def test_empty_text(self):
        assert split_by_character_budget("", 100, 10) == [""]
        assert split_by_character_budget(None, 100, 10) == [""]

    def test_ten_thousand_chars_make_three_chunks(self):
        text = "a" * 10000
        chunks = split_by_character_budget(text, 4000, 200)

        assert len(chunks) == 3
        assert all(len(chunk) <= 4000 for chunk in chunks)

    def test_prefers_paragraph_break(self):
        text = "First paragraph, with a clause. And a sentence.\n\nSecond paragraph goes on for a while here."
        chunks = split_by_character_budget(text, 60, 0)

        assert chunks[0].endswith("\n\n")
        assert chunks[1].startswith("Second paragraph")

    def test_prefers_sentence_over_clause(self):
        text = "One sentence ends here. Then a clause, and another one keeps going on"
        chunks = split_by_character_budget(text, 40, 0)

        assert chunks[0] == "One sentence ends here. "

    def test_hard_cut_without_break_points(self):
        text = "x" * 250
        chunks = split_by_character_budget(text, 100, 0)

        assert [len(chunk) for chunk in chunks] == [100, 100, 50]

    def test_overlap_is_repeated(self):
        text = "x" * 250
        chunks = split_by_character_budget(text, 100, 20)

        assert chunks[1] == text[80:180]

    @pytest.mark.parametrize("max_chunk_size,overlap", [(50, 0), (50, 10), (64, 30), (7, 100)])
    def test_reconstruction(self, max_chunk_size, overlap):
        text = (
            "The quick brown fox jumps over the lazy dog. "
            "Pack my box with five dozen liquor jugs!\n"
            "How vexingly quick daft zebras jump; sphinx of black quartz, judge my vow.\n\n"
        ) * 5

        assert reconstruct(text, max_chunk_size, overlap) == text

    def test_terminates_with_huge_overlap(self):
        text = "word " * 100
        chunks = split_by_character_budget(text, 10, 1000)

        assert chunks
        assert all(len(chunk) <= 10 for chunk in chunks)

    def test_token_budget_uses_four_chars_per_token(self):
        text = "a" * 10000
        assert split_by_token_budget(text, 1000, 50) == split_by_character_budget(text, 4000, 200)


class TestChapterMarkers:
    """Test splitting on chapter markers."""

    def test_splits_on_markers(self):
        text = "# [00:00:00] Intro\nHello there.\n# [00:05:00] Deep dive\nMore content."
        chunks = split_by_chapter_markers(text)

        assert [chunk.title for chunk in chunks] == ["# [00:00:00] Intro", "# [00:05:00] Deep dive"]
        assert chunks[0].content == "# [00:00:00] Intro\nHello there.\n"
        assert chunks[1].content == "# [00:05:00] Deep dive\nMore content."
        assert [chunk.sequence for chunk in chunks] == [1, 2]

    def test_chunk_count_at_least_marker_count(self):
        text = "\n".join(f"# [00:0{i}:00] Chapter {i}\ntext {i}" for i in range(5))
        assert len(split_by_chapter_markers(text)) >= 5

    def test_preamble_becomes_introduction(self):
        text = "Welcome everyone.\n# [00:01:00] Start\nBody."
        chunks = split_by_chapter_markers(text)

        assert chunks[0].title == "Introduction"
        assert chunks[0].content == "Welcome everyone.\n"
        assert chunks[1].title == "# [00:01:00] Start"

    def test_no_markers_falls_back_to_parts(self):
        chunks = split_by_chapter_markers("just some plain text")

        assert len(chunks) == 1
        assert chunks[0].title == "Part 1"
        assert chunks[0].content == "just some plain text"

    def test_invalid_pattern_falls_back_to_parts(self):
        chunks = split_by_chapter_markers("# [00:00:00] A\ntext", marker_pattern="([unclosed")

        assert chunks[0].title == "Part 1"

    def test_oversized_chapter_is_split(self):
        text = "# [00:00:00] Long\n" + "word " * 200
        chunks = split_by_chapter_markers(text, max_tokens_per_chunk=50, overlap_tokens=5)

        assert len(chunks) > 1
        assert chunks[0].title == "# [00:00:00] Long (Part 1)"
        assert chunks[1].title == "# [00:00:00] Long (Part 2)"

    def test_empty_text(self):
        assert split_by_chapter_markers("") == []
        assert split_by_chapter_markers(None) == []


class TestChaptersFromInput:
    """Test bounding caller-supplied chapters."""

    def test_small_chapters_unchanged(self):
        chapters = [Chapter("A", "short"), Chapter("B", "also short")]
        assert chunks_from_chapters(chapters, 100) == chapters

    def test_large_chapter_split_in_order(self):
        chapters = [Chapter("A", "word " * 100), Chapter("B", "tail")]
        bounded = chunks_from_chapters(chapters, max_tokens_per_chunk=30, overlap_tokens=0)

        assert bounded[0].title == "A (Part 1)"
        assert bounded[-1] == Chapter("B", "tail")
        assert all(estimate_token_count(chapter.text) <= 30 for chapter in bounded)
