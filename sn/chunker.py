"""Sentence-boundary chunking for SN."""

from __future__ import annotations

import re
from typing import List, Tuple

from .config import DEFAULT_CHUNK_SIZE

# Sentence end followed by whitespace; the whitespace is captured so it can be
# kept inside a chunk.
SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])(\s+)")


def _split_segments(text: str) -> List[Tuple[str, str]]:
    parts = SENTENCE_BOUNDARY_RE.split(text)
    segments = [("", parts[0])]
    for index in range(1, len(parts), 2):
        segments.append((parts[index], parts[index + 1]))
    return segments


def chunk_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if not text:
        return []

    chunks: List[str] = []
    buffer = ""

    for separator, segment in _split_segments(text):
        if not buffer:
            buffer = segment
            continue

        if len(buffer) + len(separator) + len(segment) > max_chunk_size:
            chunks.append(buffer)
            buffer = segment
        else:
            buffer += separator + segment

    if buffer:
        chunks.append(buffer)

    trimmed = (chunk.strip() for chunk in chunks)
    return [chunk for chunk in trimmed if chunk]
