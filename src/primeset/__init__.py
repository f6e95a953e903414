"""
Primeset: labeled prime / non-prime datasets over u64 ranges.

Scans [start, end) in parallel chunks, classifies every integer by trial
division against a shared base sieve, and commits the results in ascending
order to a dataset sink.
"""

__version__ = "0.1.0"

from .errors import ScanError, ConfigError, DomainError, IoError
from .sieve import BaseSieve, build, build_for, sieve_limit
from .partition import Interval, Chunk, partition
from .primality import Record, is_prime, iter_records
from .pool import WorkerPool, ChunkResult
from .aggregator import OrderedAggregator
from .sink import WriteSink, MemorySink, TextSink, CsvSink, ParquetSink, make_sink
from .core import run_scan, ScanSummary
from .integrity import check_dataset

__all__ = ['ScanError', 'ConfigError', 'DomainError', 'IoError', 'BaseSieve', 'build', 'build_for',
           'sieve_limit', 'Interval', 'Chunk', 'partition', 'Record', 'is_prime', 'iter_records',
           'WorkerPool', 'ChunkResult', 'OrderedAggregator', 'WriteSink', 'MemorySink', 'TextSink',
           'CsvSink', 'ParquetSink', 'make_sink', 'run_scan', 'ScanSummary', 'check_dataset']
