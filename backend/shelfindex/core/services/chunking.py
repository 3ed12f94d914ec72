from __future__ import annotations
import re
from typing import List

MAX_PARAGRAPH_LEN = 1200
MIN_CHUNK_LEN = 6000
MAX_CHUNK_LEN = 7500

_HEADING = re.compile(r"^#{1,3}\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENT_SPLIT = re.compile(r"(?<=[.!?])\s+")
_JOIN = "\n\n"


def _sections(text: str) -> List[str]:
    sections: List[str] = []
    cur: List[str] = []
    for line in text.split("\n"):
        if _HEADING.match(line) and cur:
            sections.append("\n".join(cur).strip())
            cur = []
        cur.append(line)
    if cur:
        sections.append("\n".join(cur).strip())
    return [s for s in sections if s]


def _paragraphs(section: str) -> List[str]:
    return [p for p in _PARAGRAPH_BREAK.split(section) if p.strip()]


def _split_sentences(paragraph: str, max_len: int) -> List[str]:
    out: List[str] = []
    buf = ""
    for sentence in _SENT_SPLIT.split(paragraph):
        sentence = sentence.strip()
        if not sentence:
            continue
        candidate = f"{buf} {sentence}" if buf else sentence
        if len(candidate) <= max_len:
            buf = candidate
        else:
            if buf:
                out.append(buf)
            # a single sentence longer than max_len is kept whole
            buf = sentence
    if buf:
        out.append(buf)
    return out


def chunk_markdown(
    text: str,
    max_paragraph: int = MAX_PARAGRAPH_LEN,
    min_chunk: int = MIN_CHUNK_LEN,
    max_chunk: int = MAX_CHUNK_LEN,
) -> List[str]:
    """
    Heading-aware Markdown chunking.

    Splits by headings (#, ##, ###), then by blank lines. Paragraphs longer than
    `max_paragraph` are broken at sentence ends and re-packed. Pieces are then
    packed greedily into chunks of at most `max_chunk` characters (separated by
    blank lines); a chunk is flushed as soon as the next piece would overflow,
    even when it is still shorter than `min_chunk`.
    """
    if min_chunk > max_chunk:
        raise ValueError(f"min_chunk ({min_chunk}) must not exceed max_chunk ({max_chunk})")

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    pieces: List[str] = []
    for section in _sections(normalized):
        for para in _paragraphs(section):
            if len(para) <= max_paragraph:
                pieces.append(para)
            else:
                pieces.extend(_split_sentences(para, max_paragraph))

    chunks: List[str] = []
    buf = ""
    for piece in pieces:
        if not buf:
            buf = piece
            continue
        joined = buf + _JOIN + piece
        if len(joined) <= max_chunk:
            buf = joined
        else:
            chunks.append(buf)
            buf = piece
    if buf.strip():
        chunks.append(buf)
    return chunks
