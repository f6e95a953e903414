"""
Ordered fan-in of chunk results.

Chunks are contiguous and index-ordered, and each chunk's records are
ascending, so writing whole chunks strictly in index order yields the same
sequence as a single-threaded ascending scan. Results that finish early wait
in a buffer until every lower index has been committed.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List

import polars as pl

from .errors import DomainError
from .partition import Chunk
from .pool import ChunkResult
from .sink import WriteSink


class OrderedAggregator:
    """Commit barrier keyed on chunk index."""

    def __init__(self, sink: WriteSink, chunks: List[Chunk]):
        self.sink = sink
        self.chunks = chunks
        self.next_index = 0
        self.committed = 0
        self._pending: Dict[int, pl.DataFrame] = {}
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self.next_index == len(self.chunks)

    @property
    def buffered(self) -> int:
        return len(self._pending)

    def submit(self, result: ChunkResult) -> int:
        """
        Hand over a finished chunk and commit everything that is now unblocked.

        Returns:
            Number of records committed by this call.
        """
        if not 0 <= result.index < len(self.chunks):
            raise DomainError("Result for an unknown chunk", chunk_index=result.index)

        committed = 0
        with self._lock:
            if result.index < self.next_index or result.index in self._pending:
                raise DomainError("Chunk delivered twice", chunk_index=result.index)
            self._pending[result.index] = result.frame
            while self.next_index in self._pending:
                frame = self._pending.pop(self.next_index)
                self._check(self.chunks[self.next_index], frame)
                self._commit(self.next_index, frame)
                committed += frame.height
                self.next_index += 1
            self.committed += committed
        return committed

    def _check(self, chunk: Chunk, frame: pl.DataFrame):
        """The frame must hold exactly the chunk's values."""
        values = frame['value']
        if (frame.height != len(chunk) or values[0] != chunk.start
                or values[-1] != chunk.end - 1):
            raise DomainError(f"Records do not match chunk interval {chunk.interval}",
                              chunk_index=chunk.index)

    def _commit(self, index: int, frame: pl.DataFrame):
        is_prime = frame['is_prime']
        primes = frame['value'].filter(is_prime)
        non_primes = frame['value'].filter(~is_prime)
        self.sink.append(index, primes, non_primes)
        self.sink.flush()
        logging.debug(f"Committed chunk {index}: {len(primes):,} primes, {len(non_primes):,} non-primes")

    def commit(self, results: Iterable[ChunkResult]) -> int:
        """
        Commit a stream of results in any completion order.

        Returns:
            Total number of records committed.

        Raises:
            DomainError: the stream ended before every chunk arrived.
        """
        for result in results:
            self.submit(result)
        if not self.done:
            raise DomainError(f"Scan ended with {len(self.chunks) - self.next_index} chunks uncommitted",
                              chunk_index=self.next_index)
        return self.committed

    def discard(self):
        """Drop buffered chunks that were never committed."""
        with self._lock:
            if self._pending:
                logging.warning(f"Discarding {len(self._pending)} buffered chunks")
            self._pending.clear()
