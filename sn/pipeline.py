"""Chunk, dispatch and assemble: the SN simplification pipeline."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from .assembler import assemble
from .chunker import chunk_text
from .config import DEFAULT_CHUNK_SIZE, DEFAULT_DISPATCH, DispatchConfig
from .credentials import build_pool, load_pool
from .dispatcher import ChunkDispatcher, ChunkExecutor, ProgressCallback
from .errors import NoCredentialsError
from .llm import simplify_chunk, simplify_with_fallback
from .models import SimplifyResult

logger = logging.getLogger(__name__)


def _resolve_pool(credentials: Optional[Iterable[Optional[str]]]):
    return load_pool() if credentials is None else build_pool(credentials)


def simplify_document_text(
    text: str,
    max_chunk_size: int = DEFAULT_CHUNK_SIZE,
    credentials: Optional[Iterable[Optional[str]]] = None,
    progress_callback: Optional[ProgressCallback] = None,
    executor: ChunkExecutor = simplify_chunk,
    config: DispatchConfig = DEFAULT_DISPATCH,
    sleep: Callable[[float], None] = time.sleep,
    on_prepared: Optional[Callable[[int, int], None]] = None,
) -> SimplifyResult:
    pool = _resolve_pool(credentials)
    if not pool:
        raise NoCredentialsError()
    chunks = chunk_text(text, max_chunk_size)
    logger.info("Prepared %d chunks (max %d chars)", len(chunks), max_chunk_size)
    if on_prepared:
        on_prepared(len(chunks), len(pool))

    dispatcher = ChunkDispatcher(pool, executor=executor, config=config, sleep=sleep)
    results = dispatcher.run(chunks, progress_callback)
    return SimplifyResult(
        chunks=chunks,
        results=results,
        text=assemble(results, len(chunks)),
        workers=len(pool),
    )


def simplify_text(text: str, credentials: Optional[Iterable[Optional[str]]] = None) -> str:
    return simplify_with_fallback(text, _resolve_pool(credentials))
