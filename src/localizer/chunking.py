"""
Sentence-respecting text chunking for backends with input-length limits.

Text is split at three levels, coarsest first: sentences, then comma-bounded
clauses for sentences that are still too long, then whole words. Words are
never split, so joining the chunks with a single space gives back the
whitespace-normalized input.
"""

import logging
import re

logger = logging.getLogger("localizer")

_SENT_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|(?<=[.!?][\"')\]])\s+")
_CLAUSE_SPLIT_RE = re.compile(r"(?<=,)\s+")
ABBR_SET = {"e.g.", "i.e.", "Mr.", "Mrs.", "Ms.", "Dr.", "Prof.", "Sr.", "Jr.", "vs.", "etc."}


def normalize_whitespace(text: str) -> str:
    return " ".join(text.split())


def split_sentences(text: str) -> list[str]:
    """Split on sentence-ending punctuation, keeping it and skipping common abbreviations."""
    parts: list[str] = []
    buf: list[str] = []
    for raw in _SENT_SPLIT_RE.split(normalize_whitespace(text)):
        piece = raw.strip()
        if not piece:
            continue
        buf.append(piece)
        if piece.split()[-1] in ABBR_SET:
            continue
        parts.append(" ".join(buf))
        buf = []
    if buf:
        parts.append(" ".join(buf))
    return parts


def _pack(pieces: list[str], max_chars: int) -> list[str]:
    """Greedily join pieces with single spaces while the result fits."""
    out: list[str] = []
    cur = ""
    for piece in pieces:
        if not cur:
            cur = piece
        elif len(cur) + 1 + len(piece) <= max_chars:
            cur = f"{cur} {piece}"
        else:
            out.append(cur)
            cur = piece
    if cur:
        out.append(cur)
    return out


def split_units(text: str, max_chars: int) -> list[str]:
    """Break text into sentence / clause / word-run units of at most ``max_chars``.

    A single word longer than ``max_chars`` is returned on its own.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    units: list[str] = []
    for sentence in split_sentences(text):
        if len(sentence) <= max_chars:
            units.append(sentence)
            continue
        for clause in _CLAUSE_SPLIT_RE.split(sentence):
            clause = clause.strip()
            if not clause:
                continue
            if len(clause) <= max_chars:
                units.append(clause)
            else:
                units.extend(_pack(clause.split(), max_chars))
    return units


def chunk_text(text: str, max_chars: int) -> list[str]:
    """Split ``text`` into backend-safe chunks of at most ``max_chars`` characters."""
    chunks = _pack(split_units(text, max_chars), max_chars)
    logger.debug("Chunked %d chars into %d chunks (max %d)", len(text), len(chunks), max_chars)
    return chunks
