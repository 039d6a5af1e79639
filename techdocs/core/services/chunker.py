"""Split cleaned document text into bounded, retrievable chunks.

Paragraphs are packed greedily up to ``max_size``; a paragraph that is too
large on its own is split on sentence boundaries and packed the same way.
The output is deterministic, keeps source order, and never contains an
empty chunk or one longer than ``max_size``.
"""

import logging
import re

from ..domain import Chunk, make_chunk_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 1000

_PARAGRAPH_RE = re.compile(r"\n\s*\n")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "


def _hard_split(text: str, max_size: int) -> list[str]:
    """Split an oversized sentence on word boundaries, characters as a last resort."""
    pieces = []
    remaining = text
    while len(remaining) > max_size:
        cut = remaining.rfind(" ", 0, max_size + 1)
        if cut <= 0:
            cut = max_size
        piece = remaining[:cut].strip()
        if piece:
            pieces.append(piece)
        remaining = remaining[cut:].strip()
    if remaining:
        pieces.append(remaining)
    return pieces


def _pack(units: list[str], max_size: int, separator: str) -> list[str]:
    """Greedily join units with ``separator`` without exceeding ``max_size``."""
    packed: list[str] = []
    current = ""
    for unit in units:
        if len(unit) > max_size:
            if current:
                packed.append(current)
                current = ""
            packed.extend(_hard_split(unit, max_size))
            continue

        candidate = f"{current}{separator}{unit}" if current else unit
        if len(candidate) <= max_size:
            current = candidate
        else:
            packed.append(current)
            current = unit

    if current:
        packed.append(current)
    return packed


def _word_tail(text: str, size: int) -> str:
    """Last ``size`` characters of ``text``, starting on a word boundary."""
    if size <= 0:
        return ""
    if len(text) <= size:
        return text
    tail = text[-size:]
    if not text[-size - 1].isspace():
        space = tail.find(" ")
        tail = tail[space + 1 :] if space != -1 else ""
    return tail.strip()


def _apply_overlap(pieces: list[str], max_size: int, overlap: int) -> list[str]:
    """Prefix each chunk with the tail of the previous one while it still fits."""
    result = [pieces[0]]
    for previous, piece in zip(pieces, pieces[1:]):
        budget = min(overlap, max_size - len(piece) - 1)
        tail = _word_tail(previous, budget)
        result.append(f"{tail} {piece}" if tail else piece)
    return result


def chunk_text(
    text: str,
    max_size: int = DEFAULT_MAX_CHUNK_SIZE,
    overlap: int = 0,
) -> list[str]:
    """Split text into ordered chunk texts.

    Args:
        text: Cleaned document text.
        max_size: Maximum characters per chunk (must be positive).
        overlap: Characters of the previous chunk repeated at the start of the
            next one (must be less than max_size; 0 disables overlap).

    Returns:
        List of chunk texts in source order. Empty only for blank input.

    Raises:
        ValueError: If max_size or overlap are invalid.
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")
    if overlap < 0:
        raise ValueError("overlap must be non-negative")
    if overlap >= max_size:
        raise ValueError("overlap must be less than max_size")

    if not text or not text.strip():
        return []

    paragraphs = [p.strip() for p in _PARAGRAPH_RE.split(text) if p.strip()]

    pieces: list[str] = []
    current = ""
    for paragraph in paragraphs:
        if len(paragraph) > max_size:
            if current:
                pieces.append(current)
                current = ""
            sentences = [s.strip() for s in _SENTENCE_RE.split(paragraph) if s.strip()]
            pieces.extend(_pack(sentences, max_size, SENTENCE_SEPARATOR))
            continue

        candidate = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph
        if len(candidate) <= max_size:
            current = candidate
        else:
            pieces.append(current)
            current = paragraph

    if current:
        pieces.append(current)

    if not pieces:
        pieces = [text.strip()[:max_size]]

    if overlap and len(pieces) > 1:
        pieces = _apply_overlap(pieces, max_size, overlap)

    return pieces


class Chunker:
    """Chunker bound to a size and overlap policy."""

    def __init__(self, max_size: int = DEFAULT_MAX_CHUNK_SIZE, overlap: int = 0) -> None:
        if max_size <= 0 or overlap < 0 or overlap >= max_size:
            raise ValueError(f"Invalid chunking policy: max_size={max_size}, overlap={overlap}")
        self.max_size = max_size
        self.overlap = overlap

    def chunk(self, text: str) -> list[str]:
        return chunk_text(text, self.max_size, self.overlap)

    def build_chunks(self, document_id: str, text: str) -> list[Chunk]:
        """Chunk ``text`` into ``Chunk`` objects with increasing ordinals."""
        chunks = [
            Chunk(id=make_chunk_id(document_id, ordinal), document_id=document_id, ordinal=ordinal, text=piece)
            for ordinal, piece in enumerate(self.chunk(text))
        ]
        logger.debug("Split document %s into %d chunks", document_id, len(chunks))
        return chunks
