"""Parallel chunk dispatch across the SN credential pool.

One worker thread runs per credential. Workers share a single pending queue
and pull from it until nothing is pending and nothing is in flight, so a fast
credential ends up handling more chunks than a slow one. Transient provider
errors are retried on the same credential with a linear backoff; a chunk that
keeps failing is requeued for the other credentials, and a credential that is
rejected outright takes its worker out of the run.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_DISPATCH, DispatchConfig
from .credentials import mask_key
from .errors import (
    AuthInvalidError,
    IncompleteProcessingError,
    NoCredentialsError,
    ProviderError,
    RateLimitedError,
)
from .llm import simplify_chunk
from .models import Chunk, QueuedChunk, RunState

logger = logging.getLogger(__name__)

ChunkExecutor = Callable[[str, str], str]
ProgressCallback = Callable[[int, int], None]


class _Outcome(Enum):
    RESOLVED = "resolved"
    REQUEUE = "requeue"
    DEAD = "dead"


class _DispatchRun:
    """Shared state of one dispatch run.

    Every chunk is either in ``queue``, held by exactly one worker
    (``in_flight``), or has its entry in ``results``. All mutation happens
    under ``_cond``; the network call and the backoff sleep never do.
    """

    def __init__(self, chunks: Sequence[str], credentials: Sequence[str], max_requeues: int):
        self.total = len(chunks)
        self.queue: Deque[QueuedChunk] = deque(
            QueuedChunk(Chunk(index=index, text=text)) for index, text in enumerate(chunks)
        )
        self.results: List[Optional[str]] = [None] * self.total
        self.state = RunState(completed=0, total=self.total)
        self.max_requeues = max_requeues
        self.in_flight = 0
        self.aborted = False
        self.live: Dict[int, str] = dict(enumerate(credentials))
        self._cond = threading.Condition()
        self._progress_lock = threading.Lock()

    def _eligible(self, item: QueuedChunk, api_key: str) -> bool:
        # A chunk bounced off this credential waits for another live one,
        # unless every live credential has already bounced it.
        if api_key not in item.rejected_by:
            return True
        return all(key in item.rejected_by for key in self.live.values())

    def claim(self, api_key: str) -> Optional[QueuedChunk]:
        with self._cond:
            while True:
                if self.aborted:
                    return None
                for position, item in enumerate(self.queue):
                    if self._eligible(item, api_key):
                        del self.queue[position]
                        self.in_flight += 1
                        return item
                if not self.queue and self.in_flight == 0:
                    return None
                self._cond.wait()

    def resolve(self, item: QueuedChunk, text: str) -> None:
        with self._cond:
            self.results[item.chunk.index] = text
            self.in_flight -= 1
            self.state.completed += 1
            self._cond.notify_all()

    def requeue(self, item: QueuedChunk, api_key: str) -> None:
        with self._cond:
            item.requeues += 1
            item.rejected_by.add(api_key)
            self.in_flight -= 1
            self.queue.append(item)
            if item.requeues > self.max_requeues:
                logger.error(
                    "Chunk %d requeued %d times; abandoning run",
                    item.chunk.index,
                    item.requeues,
                )
                self.aborted = True
            self._cond.notify_all()

    def finish_worker(self, worker_id: int, held: Optional[QueuedChunk]) -> None:
        with self._cond:
            if held is not None:
                self.in_flight -= 1
                self.queue.append(held)
            self.live.pop(worker_id, None)
            self._cond.notify_all()

    def report(self, progress_callback: Optional[ProgressCallback]) -> None:
        if progress_callback is None:
            return
        # Serialised so delivered counts never go backwards.
        with self._progress_lock:
            progress_callback(self.state.completed, self.total)

    def missing(self) -> List[int]:
        with self._cond:
            return [index for index, result in enumerate(self.results) if result is None]


class ChunkDispatcher:
    """Drive every chunk to a result using one worker per credential."""

    def __init__(
        self,
        credentials: Sequence[str],
        executor: ChunkExecutor = simplify_chunk,
        config: DispatchConfig = DEFAULT_DISPATCH,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.credentials = list(credentials)
        self.config = config
        self._executor = executor
        self._sleep = sleep

    def run(
        self,
        chunks: Sequence[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[str]:
        if not self.credentials:
            raise NoCredentialsError()
        if not chunks:
            return []

        run = _DispatchRun(chunks, self.credentials, self.config.max_requeues)
        logger.info(
            "Dispatching %d chunks across %d credentials",
            run.total,
            len(self.credentials),
        )

        with ThreadPoolExecutor(
            max_workers=len(self.credentials), thread_name_prefix="sn_worker"
        ) as pool:
            futures = [
                pool.submit(self._work, run, worker_id, api_key, progress_callback)
                for worker_id, api_key in enumerate(self.credentials)
            ]

        crashes = [future.exception() for future in futures if future.exception() is not None]
        for crash in crashes:
            logger.error("Worker stopped on unexpected error: %r", crash)

        missing = run.missing()
        if missing:
            logger.error("Run ended with %d of %d chunks unresolved", len(missing), run.total)
            error = IncompleteProcessingError(missing)
            if crashes:
                raise error from crashes[0]
            raise error

        logger.info("All %d chunks simplified", run.total)
        return [result for result in run.results if result is not None]

    def _work(
        self,
        run: _DispatchRun,
        worker_id: int,
        api_key: str,
        progress_callback: Optional[ProgressCallback],
    ) -> None:
        held: Optional[QueuedChunk] = None
        try:
            while True:
                held = run.claim(api_key)
                if held is None:
                    return

                outcome, text = self._attempt(held.chunk, api_key)
                if outcome is _Outcome.DEAD:
                    logger.warning(
                        "Invalid API key %s detected, worker stopping", mask_key(api_key)
                    )
                    return

                if outcome is _Outcome.RESOLVED:
                    run.resolve(held, text)
                    held = None
                    run.report(progress_callback)
                else:
                    logger.warning(
                        "Chunk %d exhausted retries on key %s; requeueing",
                        held.chunk.index,
                        mask_key(api_key),
                    )
                    run.requeue(held, api_key)
                    held = None
        finally:
            run.finish_worker(worker_id, held)

    def _attempt(self, chunk: Chunk, api_key: str) -> Tuple[_Outcome, str]:
        retries = 0
        while True:
            try:
                return _Outcome.RESOLVED, self._executor(chunk.text, api_key)
            except AuthInvalidError:
                return _Outcome.DEAD, ""
            except RateLimitedError:
                retries += 1
                delay = self.config.rate_limit_backoff * retries
                logger.info("Rate limit hit on chunk %d (attempt %d)", chunk.index, retries)
            except ProviderError as exc:
                retries += 1
                delay = self.config.provider_error_backoff * retries
                logger.info(
                    "Provider error %s on chunk %d (attempt %d)", exc.status, chunk.index, retries
                )

            if retries >= self.config.max_retries:
                return _Outcome.REQUEUE, ""
            self._sleep(delay)
