"""
Primality engine: trial division bounded by the base sieve.

Every composite n below end has a prime factor <= sqrt(n) <= sieve limit,
so dividing by the sieve primes whose square does not exceed n decides n.
"""

from __future__ import annotations

import math
from typing import Iterator, List, NamedTuple

from .errors import DomainError, ScanCancelled
from .partition import Chunk
from .sieve import U64_MAX, BaseSieve

# Candidates scanned between two looks at the stop event
CANCEL_CHECK_INTERVAL = 1024


class Record(NamedTuple):
    value: int
    is_prime: bool


def is_prime(candidate: int, sieve: BaseSieve) -> bool:
    """
    Classify a single candidate.

    Args:
        candidate: Value in the u64 domain.
        sieve: Base sieve covering the candidate.

    Returns:
        True if the candidate is prime. 0 and 1 are non-prime.

    Raises:
        DomainError: candidate is outside the u64 domain, a divisor square
            leaves the u64 domain, or the sieve is too small for the candidate.
    """
    if not 0 <= candidate <= U64_MAX:
        raise DomainError("Candidate is outside the u64 domain", candidate=candidate)
    return _trial_divide(candidate, sieve.divisors_for(math.isqrt(candidate)), sieve.limit)


def _trial_divide(candidate: int, divisors: List[int], limit: int) -> bool:
    """Decide candidate given the ascending sieve primes up to past isqrt(candidate)."""
    if candidate < 2:
        return False
    if candidate < 4:
        return True
    if candidate % 2 == 0:
        return False

    for p in divisors:
        square = p * p
        if square > U64_MAX:
            raise DomainError(f"Square of sieve prime {p} overflows u64", candidate=candidate)
        if square > candidate:
            return True
        if candidate % p == 0:
            return False

    # Ran out of sieve primes with p*p still <= candidate
    if limit >= math.isqrt(candidate):
        return True
    raise DomainError(
        f"Base sieve limit {limit} is too small (needs {math.isqrt(candidate)})",
        candidate=candidate,
    )


def iter_records(chunk: Chunk, sieve: BaseSieve, stop=None) -> Iterator[Record]:
    """
    Yield a Record for every candidate of a chunk, in ascending order.

    Args:
        chunk: Chunk to scan.
        sieve: Shared base sieve.
        stop: Optional event; when set, the scan stops at the next check.

    Raises:
        ScanCancelled: the stop event was set.
        DomainError: from the trial division, annotated with the chunk index.
    """
    # Chunk bounds are already inside the u64 domain
    divisors = sieve.divisors_for(math.isqrt(chunk.end - 1))
    for offset, value in enumerate(range(chunk.start, chunk.end)):
        if stop is not None and offset % CANCEL_CHECK_INTERVAL == 0 and stop.is_set():
            raise ScanCancelled("Scan stopped", chunk_index=chunk.index, candidate=value)
        try:
            yield Record(value, _trial_divide(value, divisors, sieve.limit))
        except DomainError as e:
            e.chunk_index = chunk.index
            raise
