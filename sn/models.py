"""Typed models used by the Simplify Notes (SN) module."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Set


@dataclass(frozen=True)
class Chunk:
    index: int
    text: str


@dataclass
class QueuedChunk:
    chunk: Chunk
    requeues: int = 0
    rejected_by: Set[str] = field(default_factory=set)


@dataclass
class RunState:
    completed: int
    total: int


@dataclass
class ChunkRow:
    index: int
    original: str
    simplified: str


@dataclass
class SimplifyResult:
    chunks: List[str]
    results: List[str]
    text: str
    workers: int = 0

    def rows(self) -> List[ChunkRow]:
        return [
            ChunkRow(index=i + 1, original=original, simplified=simplified)
            for i, (original, simplified) in enumerate(zip(self.chunks, self.results))
        ]
