"""
Base prime sieve.

The sieve holds every prime up to ceil(sqrt(end)), which is the only divisor
source needed to classify any candidate below end. It is built once per scan,
before workers are dispatched, and never mutated afterwards.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List

import numpy as np

from .errors import DomainError

U64_MAX = 2**64 - 1

# ceil(sqrt(U64_MAX)); a larger table is never needed for a u64 candidate
SIEVE_LIMIT_MAX = 2**32


@dataclass(frozen=True, eq=False)
class BaseSieve:
    """Immutable ascending table of primes p <= limit."""
    limit: int
    primes: np.ndarray

    def __post_init__(self):
        self.primes.flags.writeable = False

    def __len__(self):
        return len(self.primes)

    def divisors_for(self, bound: int) -> List[int]:
        """
        Primes needed to decide any candidate whose square root is <= bound.

        Returns the primes <= bound plus the next one, which ends the trial
        division loop. Values are Python ints so squaring never wraps at 64
        bits; only this prefix of the table is converted.
        """
        stop = int(np.searchsorted(self.primes, np.uint64(max(bound, 0)), side="right"))
        return self.primes[:stop + 1].tolist()

    @property
    def largest(self) -> int:
        return int(self.primes[-1]) if len(self.primes) else 0

    def covers(self, candidate: int) -> bool:
        """Whether every composite <= candidate has a factor in the table."""
        return self.limit * self.limit >= candidate

    def __setstate__(self, state):
        self.__dict__.update(state)
        self.primes.flags.writeable = False


def sieve_limit(end: int) -> int:
    """Return ceil(sqrt(end))."""
    if end < 0:
        raise DomainError(f"Interval end {end} is negative")
    root = math.isqrt(end)
    return root if root * root == end else root + 1


def build(limit: int) -> BaseSieve:
    """
    Build the base sieve with the sieve of Eratosthenes over [2, limit].

    Args:
        limit: Largest value the table must cover.

    Returns:
        BaseSieve with every prime <= limit in ascending order.

    Raises:
        DomainError: limit is negative or larger than SIEVE_LIMIT_MAX.
    """
    if limit < 0:
        raise DomainError(f"Sieve limit {limit} is negative")
    if limit > SIEVE_LIMIT_MAX:
        raise DomainError(
            f"Sieve limit {limit} exceeds the index width of the sieve table ({SIEVE_LIMIT_MAX})"
        )

    table = np.ones(limit + 1, dtype=np.bool_)
    table[:2] = False
    for p in range(2, math.isqrt(limit) + 1):
        if table[p]:
            table[p * p::p] = False

    primes = np.flatnonzero(table).astype(np.uint64)
    logging.info(f"Base sieve built: {len(primes):,} primes up to {limit:,}")
    return BaseSieve(limit=limit, primes=primes)


def build_for(end: int) -> BaseSieve:
    """Build the sieve needed to classify every candidate below end."""
    return build(sieve_limit(end))
