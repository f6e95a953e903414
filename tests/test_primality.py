"""
Primality engine tests.
"""

import math
import threading

import numpy as np
import pytest

from primeset import BaseSieve, Chunk, DomainError, Interval, build, build_for, is_prime, iter_records
from primeset.errors import ScanCancelled


def naive_is_prime(n):
    if n < 2:
        return False
    return all(n % d for d in range(2, math.isqrt(n) + 1))


class TestIsPrime:

    def test_agrees_with_naive_division(self):
        sieve = build_for(10_001)
        for n in range(0, 10_001):
            assert is_prime(n, sieve) == naive_is_prime(n), n

    @pytest.mark.parametrize("n, expected", [(0, False), (1, False), (2, True), (3, True), (4, False), (9, False), (25, False), (49, False)])
    def test_small_values(self, n, expected):
        assert is_prime(n, build(10)) is expected

    def test_large_values(self):
        sieve = build(2**16)
        assert is_prime(4294967291, sieve)  # largest prime below 2**32
        assert not is_prime(4294967297, sieve)  # 641 * 6700417
        assert not is_prime(65521 * 65519, sieve)

    def test_outside_domain(self):
        with pytest.raises(DomainError):
            is_prime(-1, build(10))
        with pytest.raises(DomainError):
            is_prime(2**64, build(10))

    def test_sieve_too_small(self):
        with pytest.raises(DomainError) as exc_info:
            is_prime(25, build(3))
        assert exc_info.value.candidate == 25

    def test_sieve_too_small_but_factor_found(self):
        assert not is_prime(21, build(3))

    def test_divisor_square_overflow(self):
        bogus = BaseSieve(limit=2**33, primes=np.array([2**32 + 15], dtype=np.uint64))
        with pytest.raises(DomainError):
            is_prime(2**64 - 59, bogus)


class TestIterRecords:

    def test_ascending_records(self):
        chunk = Chunk(0, Interval(2, 12))
        records = list(iter_records(chunk, build(4)))
        assert [r.value for r in records] == list(range(2, 12))
        assert [r.value for r in records if r.is_prime] == [2, 3, 5, 7, 11]

    def test_table_larger_than_chunk_needs(self):
        sieve = build(10_000)
        chunk = Chunk(0, Interval(900, 1100))
        records = list(iter_records(chunk, sieve))
        assert [r.value for r in records if r.is_prime] == [n for n in range(900, 1100) if naive_is_prime(n)]
        assert all(r.is_prime == is_prime(r.value, sieve) for r in records)

    def test_domain_error_carries_chunk(self):
        chunk = Chunk(3, Interval(20, 30))
        with pytest.raises(DomainError) as exc_info:
            list(iter_records(chunk, build(3)))
        assert exc_info.value.chunk_index == 3
        assert exc_info.value.candidate == 23

    def test_stop_event(self):
        stop = threading.Event()
        stop.set()
        with pytest.raises(ScanCancelled):
            list(iter_records(Chunk(0, Interval(0, 10)), build(4), stop))
