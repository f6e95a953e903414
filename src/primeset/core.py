"""
Scan orchestration: sieve -> partition -> worker pool -> ordered commit -> sink.

A scan either seals a complete dataset or raises; on any failure the
buffered chunks and everything already written to the sink are discarded.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from tqdm import tqdm

from .aggregator import OrderedAggregator
from .partition import Interval, partition, validate_workers
from .pool import WorkerPool
from .sieve import BaseSieve, build_for
from .sink import WriteSink
from .utils import TimingCollector


@dataclass
class ScanSummary:
    """Outcome of a sealed scan."""
    interval: Interval
    workers: int
    chunks: int
    records: int
    primes: int
    non_primes: int
    elapsed: float

    def print(self):
        print(f"\nScanned {self.interval} with {self.workers} workers in {self.chunks} chunks")
        print(f"  Records: {self.records:,}")
        print(f"  Primes: {self.primes:,}")
        print(f"  Non-primes: {self.non_primes:,}")
        print(f"  Time taken: {self.elapsed:.3f}s")


def _progress(results, total, enabled):
    """Wrap a result stream in a tqdm bar counting records."""
    if not enabled:
        yield from results
        return
    with tqdm(total=total, desc="Prime scan", unit="n") as pbar:
        for result in results:
            yield result
            pbar.update(result.height)
            pbar.set_postfix({"Chunk": result.index, "Time": f"{result.elapsed:.2f}s"})


def run_scan(start: int, end: int, workers: int, sink: WriteSink,
             backend: str = 'process', start_method: str = 'spawn',
             progress: bool = False, timer: Optional[TimingCollector] = None,
             sieve: Optional[BaseSieve] = None) -> ScanSummary:
    """
    Scan [start, end) and write the labeled dataset to the sink.

    Args:
        start: First candidate.
        end: One past the last candidate.
        workers: Number of workers, one chunk each.
        sink: Dataset target; sealed on success, discarded on failure.
        backend: 'process' or 'thread'.
        start_method: multiprocessing start method for the process backend.
        progress: Show a tqdm progress bar.
        timer: Optional collector for sieve, chunk and commit timings.
        sieve: Prebuilt base sieve; built from end when omitted.

    Returns:
        ScanSummary of the sealed dataset.

    Raises:
        ConfigError: invalid interval or worker count, before any work.
        DomainError: u64 overflow or sieve inconsistency in any worker.
        IoError: sink failure while committing or sealing.
    """
    timer = timer or TimingCollector()
    aggregator = None
    scan = None

    def timed(results):
        for result in results:
            timer.record('chunk_scan', result.elapsed, chunk=result.index)
            yield result

    try:
        interval = Interval(start, end)
        validate_workers(workers)
        pool = WorkerPool(workers, backend=backend, start_method=start_method)

        t0 = time.perf_counter()
        logging.info(f"Scanning {interval} ({interval.span:,} candidates) with {workers} workers")

        if sieve is None:
            with timer.time_operation('sieve_build'):
                sieve = build_for(end)
        chunks = partition(interval, workers)
        aggregator = OrderedAggregator(sink, chunks)

        scan = pool.scan(chunks, sieve)
        results = _progress(timed(scan), interval.span, progress)
        with timer.time_operation('commit'):
            records = aggregator.commit(results)
        sink.seal()
    except BaseException as e:
        logging.error(f"Scan of [{start}, {end}) failed: {e}")
        if scan is not None:
            scan.close()
        if aggregator is not None:
            aggregator.discard()
        sink.discard()
        raise

    summary = ScanSummary(
        interval=interval,
        workers=workers,
        chunks=len(chunks),
        records=records,
        primes=sink.prime_count,
        non_primes=sink.non_prime_count,
        elapsed=time.perf_counter() - t0,
    )
    logging.info(f"Scan complete: {summary.primes:,} primes, {summary.non_primes:,} non-primes "
                 f"in {summary.elapsed:.3f}s")
    return summary
