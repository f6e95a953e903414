"""
Worker pool: one chunk per worker, fail-fast.

Process workers receive the base sieve and the shared stop event once,
through the pool initializer. Thread workers get them bound to the task
function, so concurrent scans in one process never share worker state.
Either way each chunk comes back as a polars frame.
"""

from __future__ import annotations

import functools
import logging
import multiprocessing as mp
import threading
import time
from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np
import polars as pl

from .errors import ConfigError
from .partition import Chunk, validate_workers
from .primality import iter_records
from .sieve import BaseSieve

RECORD_SCHEMA = {'value': pl.UInt64, 'is_prime': pl.Boolean}

BACKENDS = ('process', 'thread')

# Per-process worker state, set by _init_worker in process workers only
_worker_sieve = None
_worker_stop = None


@dataclass
class ChunkResult:
    """Records of one chunk, ascending by value."""
    index: int
    frame: pl.DataFrame
    elapsed: float = 0.0

    @property
    def height(self) -> int:
        return self.frame.height


def _init_worker(sieve, stop):
    global _worker_sieve, _worker_stop
    _worker_sieve = sieve
    _worker_stop = stop


def scan_chunk(chunk: Chunk, sieve: Optional[BaseSieve] = None, stop=None) -> ChunkResult:
    """
    Module-level worker function for multiprocessing spawn compatibility.

    Classifies every candidate of the chunk into pre-allocated arrays and
    converts them to a frame once at the end. Without an explicit sieve the
    one installed by the process initializer is used.
    """
    if sieve is None:
        sieve, stop = _worker_sieve, _worker_stop
    t0 = time.perf_counter()
    values = np.empty(len(chunk), dtype=np.uint64)
    flags = np.empty(len(chunk), dtype=np.bool_)

    for row, record in enumerate(iter_records(chunk, sieve, stop)):
        values[row] = record.value
        flags[row] = record.is_prime

    frame = pl.DataFrame({'value': values, 'is_prime': flags}, schema=RECORD_SCHEMA)
    return ChunkResult(chunk.index, frame, time.perf_counter() - t0)


class WorkerPool:
    """Fixed pool sized to the chunk list, one chunk per worker."""

    def __init__(self, workers: int, backend: str = 'process', start_method: str = 'spawn'):
        self.workers = validate_workers(workers)
        if backend not in BACKENDS:
            raise ConfigError(f"Unknown backend {backend!r}, expected one of {BACKENDS}")
        self.backend = backend
        self.start_method = start_method

    def _make_pool(self, size: int, sieve: BaseSieve) -> Tuple[object, Callable, object]:
        if self.backend == 'thread':
            stop = threading.Event()
            func = functools.partial(scan_chunk, sieve=sieve, stop=stop)
            return ThreadPool(size), func, stop
        ctx = mp.get_context(self.start_method)
        stop = ctx.Event()
        return ctx.Pool(size, _init_worker, (sieve, stop)), scan_chunk, stop

    def scan(self, chunks: List[Chunk], sieve: BaseSieve) -> Iterator[ChunkResult]:
        """
        Scan every chunk in parallel.

        Args:
            chunks: Chunks from partition(), at most one per worker.
            sieve: Base sieve shared by every worker.

        Yields:
            ChunkResult in completion order.

        Raises:
            The first worker error. Remaining workers are told to stop and
            the pool is terminated before the error propagates.
        """
        if not chunks:
            return
        size = min(self.workers, len(chunks))
        pool, func, stop = self._make_pool(size, sieve)
        logging.info(f"Dispatching {len(chunks)} chunks to {size} {self.backend} workers")
        try:
            for result in pool.imap_unordered(func, chunks):
                logging.debug(f"Chunk {result.index} finished: {result.height:,} records in {result.elapsed:.3f}s")
                yield result
        except BaseException:
            stop.set()
            raise
        else:
            pool.close()
            pool.join()
        finally:
            pool.terminate()
