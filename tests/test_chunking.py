"""Unit tests for heading-aware markdown chunking."""

from __future__ import annotations

import pytest

from shelfindex.core.services.chunking import chunk_markdown


def test_empty_and_whitespace_produce_no_chunks() -> None:
    assert chunk_markdown("") == []
    assert chunk_markdown("   \n\n \t \n") == []


def test_short_document_is_one_chunk() -> None:
    assert chunk_markdown("# Title\n\nSome body text.") == ["# Title\n\nSome body text."]


def test_line_endings_are_normalized() -> None:
    assert chunk_markdown("first\r\n\r\nsecond\rthird") == ["first\n\nsecond\nthird"]


def test_sections_are_packed_together_when_they_fit() -> None:
    text = "# Title\nintro\n## Part\nbody"
    assert chunk_markdown(text) == ["# Title\nintro\n\n## Part\nbody"]


def test_sections_split_when_the_chunk_would_overflow() -> None:
    text = "# Title\nintro\n## Part\nbody"
    chunks = chunk_markdown(text, max_paragraph=50, min_chunk=10, max_chunk=20)
    assert chunks == ["# Title\nintro", "## Part\nbody"]


def test_long_paragraph_is_split_at_sentence_boundaries() -> None:
    sentences = [f"Sentence number {i} ends here." for i in range(20)]
    text = " ".join(sentences)

    chunks = chunk_markdown(text, max_paragraph=100, min_chunk=50, max_chunk=150)

    assert len(chunks) > 1
    assert all(len(c) <= 150 for c in chunks)
    joined = "\n\n".join(chunks)
    for s in sentences:
        assert s in joined


def test_single_oversized_sentence_is_kept_whole() -> None:
    """A sentence with no break points may exceed the limits."""
    text = "x" * 500
    assert chunk_markdown(text, max_paragraph=100, min_chunk=100, max_chunk=200) == [text]


def test_no_chunk_exceeds_max_for_regular_text() -> None:
    paragraphs = [("Lorem ipsum dolor sit amet. " * 8).strip() for _ in range(40)]
    text = "\n\n".join(paragraphs)

    chunks = chunk_markdown(text, max_paragraph=1200, min_chunk=600, max_chunk=750)

    assert len(chunks) > 1
    assert all(len(c) <= 750 for c in chunks)


def test_min_greater_than_max_is_rejected() -> None:
    with pytest.raises(ValueError):
        chunk_markdown("text", min_chunk=100, max_chunk=50)


def _sample_document() -> str:
    intro = "Intro paragraph with a few words."
    body = " ".join(f"Body sentence {i} talks about shelves and books." for i in range(60))
    return f"# Guide\n\n{intro}\n\n## Details\n\n{body}\n\n### Appendix\n\nLast words."


def test_chunking_is_deterministic() -> None:
    text = _sample_document()
    first = chunk_markdown(text, max_paragraph=300, min_chunk=400, max_chunk=600)
    assert first == chunk_markdown(text, max_paragraph=300, min_chunk=400, max_chunk=600)


def test_chunks_reproduce_the_input_content() -> None:
    text = _sample_document()

    chunks = chunk_markdown(text, max_paragraph=300, min_chunk=400, max_chunk=600)

    assert len(chunks) > 1
    assert all(c.strip() for c in chunks)
    assert " ".join("\n\n".join(chunks).split()) == " ".join(text.split())
