"""
Interval and partition tests.
"""

import pytest

from primeset import ConfigError, DomainError, Interval, partition


def sizes(chunks):
    return [len(c) for c in chunks]


class TestInterval:

    def test_span(self):
        interval = Interval(2, 20)
        assert interval.span == 18
        assert 2 in interval
        assert 20 not in interval

    @pytest.mark.parametrize("start, end", [(5, 5), (6, 5)])
    def test_empty(self, start, end):
        with pytest.raises(ConfigError):
            Interval(start, end)

    @pytest.mark.parametrize("start, end", [(-1, 5), (0, 2**64)])
    def test_outside_u64(self, start, end):
        with pytest.raises(DomainError):
            Interval(start, end)

    def test_u64_upper_bound(self):
        interval = Interval(2**64 - 10, 2**64 - 1)
        assert interval.span == 9


class TestPartition:

    @pytest.mark.parametrize("start, end", [(0, 1), (0, 2), (2, 20), (7, 1000), (10**12, 10**12 + 97)])
    @pytest.mark.parametrize("workers", [1, 2, 3, 4, 7, 16])
    def test_exact_coverage(self, start, end, workers):
        chunks = partition(Interval(start, end), workers)

        assert chunks[0].start == start
        assert chunks[-1].end == end
        for prev, cur in zip(chunks, chunks[1:]):
            assert prev.end == cur.start
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert sum(sizes(chunks)) == end - start
        assert max(sizes(chunks)) - min(sizes(chunks)) <= 1
        assert all(len(c) > 0 for c in chunks)

    def test_remainder_goes_first(self):
        chunks = partition(Interval(2, 20), 4)
        assert [(c.start, c.end) for c in chunks] == [(2, 7), (7, 12), (12, 16), (16, 20)]

    def test_single_worker(self):
        chunks = partition(Interval(2, 20), 1)
        assert len(chunks) == 1
        assert chunks[0].interval == Interval(2, 20)

    def test_idempotent(self):
        interval = Interval(123, 98765)
        assert partition(interval, 6) == partition(interval, 6)

    def test_more_workers_than_candidates(self):
        chunks = partition(Interval(0, 2), 16)
        assert [(c.start, c.end) for c in chunks] == [(0, 1), (1, 2)]

    @pytest.mark.parametrize("workers", [0, -3, 2**32])
    def test_invalid_workers(self, workers):
        with pytest.raises(ConfigError):
            partition(Interval(0, 10), workers)
