"""Split long text into bounded blocks for speech synthesis."""

from __future__ import annotations

import re

DEFAULT_MAX_BLOCK_LENGTH = 500

# A sentence ends with terminators plus any closing quotes/brackets;
# a trailing run without a terminator is a unit of its own.
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+[\])'\"`’”]*|.+", re.DOTALL)


def _hard_split(sentence: str, max_length: int) -> list[str]:
    """Cut an oversized unit at the last space before the limit, else mid-word."""
    pieces: list[str] = []
    start = 0
    while start < len(sentence):
        if sentence[start].isspace():
            start += 1
            continue
        end = start + max_length
        if end < len(sentence):
            last_space = sentence.rfind(" ", start, end + 1)
            if last_space > start:
                end = last_space
        piece = sentence[start:end].strip()
        if piece:
            pieces.append(piece)
        start = end
    return pieces


def split_text_into_blocks(text: str, max_length: int = DEFAULT_MAX_BLOCK_LENGTH) -> list[str]:
    """Split text into ordered blocks of at most ``max_length`` characters.

    Boundaries prefer sentence terminators, then spaces. Blocks are stripped
    of surrounding whitespace; joining them back with the removed whitespace
    reproduces the source text. Empty or blank input yields no blocks.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    if not text:
        return []

    blocks: list[str] = []
    current = ""

    for sentence in _SENTENCE_PATTERN.findall(text):
        candidate = current + sentence
        if len(candidate.strip()) <= max_length:
            current = candidate
            continue

        if current.strip():
            blocks.append(current.strip())
        current = ""

        if len(sentence.strip()) > max_length:
            blocks.extend(_hard_split(sentence.strip(), max_length))
        else:
            current = sentence

    if current.strip():
        blocks.append(current.strip())
    return blocks
