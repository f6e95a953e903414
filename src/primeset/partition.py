"""
Range partitioning: split a half-open interval into contiguous chunks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List

from .errors import ConfigError, DomainError
from .sieve import U64_MAX

U32_MAX = 2**32 - 1


@dataclass(frozen=True)
class Interval:
    """Half-open interval [start, end) of u64 values."""
    start: int
    end: int

    def __post_init__(self):
        for name, value in (("start", self.start), ("end", self.end)):
            if not 0 <= value <= U64_MAX:
                raise DomainError(f"Interval {name} {value} is outside the u64 domain [0, {U64_MAX}]")
        if self.start >= self.end:
            raise ConfigError(f"Empty interval [{self.start}, {self.end}): start must be below end")

    @property
    def span(self) -> int:
        return self.end - self.start

    def __len__(self):
        return self.span

    def __contains__(self, value) -> bool:
        return self.start <= value < self.end

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    def __str__(self):
        return f"[{self.start}, {self.end})"


@dataclass(frozen=True)
class Chunk:
    """Contiguous sub-interval owned by exactly one worker."""
    index: int
    interval: Interval

    @property
    def start(self) -> int:
        return self.interval.start

    @property
    def end(self) -> int:
        return self.interval.end

    def __len__(self):
        return self.interval.span


def validate_workers(workers: int) -> int:
    """Reject worker counts that are not in [1, U32_MAX]."""
    if isinstance(workers, bool) or not isinstance(workers, int):
        raise ConfigError(f"Worker count must be an integer, got {workers!r}")
    if workers < 1:
        raise ConfigError(f"Worker count must be at least 1, got {workers}")
    if workers > U32_MAX:
        raise ConfigError(f"Worker count {workers} exceeds {U32_MAX}")
    return workers


def partition(interval: Interval, workers: int) -> List[Chunk]:
    """
    Divide an interval into contiguous, gap-free, non-overlapping chunks.

    The first span % workers chunks receive one extra element, so any two
    chunk sizes differ by at most one. When there are more workers than
    candidates, the chunk count is capped at the span so that no chunk is
    empty.

    Args:
        interval: Parent interval.
        workers: Requested worker count.

    Returns:
        Chunks ordered by index, which is also ascending numeric order.
    """
    validate_workers(workers)
    span = interval.span
    count = workers
    if workers > span:
        logging.warning(f"Requested {workers} workers for {span} candidates, using {span} chunks")
        count = span

    base, remainder = divmod(span, count)
    chunks = []
    lo = interval.start
    for index in range(count):
        hi = lo + base + (1 if index < remainder else 0)
        chunks.append(Chunk(index=index, interval=Interval(lo, hi)))
        lo = hi
    return chunks
