"""
Utility functions for logging, configuration, timing and hardware detection.
"""

import logging
import os
import time
import tomllib
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl
import psutil


class TimingCollector:
    """
    Collect phase and per-chunk timings of a scan.

    Chunk timings are measured inside the workers and recorded with the
    chunk index, so the summary can name the slowest chunk.
    """

    def __init__(self, verbose: bool = False):
        self.timings: List[Dict] = []
        self.verbose = verbose
        self.active_timers: Dict[str, float] = {}

    def start_timer(self, operation: str) -> str:
        """Start timing an operation. Returns timer_id for ending."""
        timer_id = f"{operation}_{len(self.timings)}_{len(self.active_timers)}"
        self.active_timers[timer_id] = time.perf_counter()
        return timer_id

    def end_timer(self, timer_id: str, operation: str, chunk: Optional[int] = None):
        """End timing and record the result."""
        end_time = time.perf_counter()
        start_time = self.active_timers.pop(timer_id, end_time)
        self.record(operation, end_time - start_time, chunk)

    def record(self, operation: str, duration: float, chunk: Optional[int] = None):
        """Record a duration measured elsewhere, e.g. inside a worker."""
        self.timings.append({'operation': operation, 'duration_ms': duration * 1000, 'chunk': chunk})

        if self.verbose:
            where = f" (chunk {chunk})" if chunk is not None else ""
            logging.info(f"Completed: {operation}{where} in {duration*1000:.2f}ms")

    def time_operation(self, operation: str):
        """Context manager for timing operations."""
        return TimingContext(self, operation)

    def get_stats(self) -> Dict:
        """
        Get timing statistics per operation.

        Operations recorded per chunk also report 'slowest_chunk', the index
        of the chunk with the largest duration.
        """
        if not self.timings:
            return {}

        df = pl.DataFrame(self.timings, schema={'operation': pl.Utf8, 'duration_ms': pl.Float64, 'chunk': pl.Int64})
        stats = {}

        for operation in df['operation'].unique(maintain_order=True):
            op_df = df.filter(pl.col('operation') == operation)
            op_data = op_df['duration_ms']
            stats[operation] = {
                'count': len(op_data),
                'mean_ms': op_data.mean(),
                'median_ms': op_data.median(),
                'min_ms': op_data.min(),
                'max_ms': op_data.max(),
                'std_ms': op_data.std() or 0.0
            }
            chunks = op_df.drop_nulls('chunk')
            if chunks.height:
                stats[operation]['slowest_chunk'] = chunks.sort('duration_ms', descending=True)['chunk'][0]
        return stats

    def print_summary(self):
        """Print timing summary to console."""
        stats = self.get_stats()
        if not stats:
            print("No timing data collected")
            return

        print("\n=== TIMING SUMMARY ===")
        for operation, data in stats.items():
            line = (f"{operation:25s}: {data['mean_ms']:10.2f}ms avg ({data['count']:4d} calls, "
                    f"{data['min_ms']:.2f}-{data['max_ms']:.2f}ms)")
            if 'slowest_chunk' in data:
                line += f", slowest chunk {data['slowest_chunk']}"
            print(line)


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, collector: TimingCollector, operation: str):
        self.collector = collector
        self.operation = operation
        self.timer_id = None

    def __enter__(self):
        self.timer_id = self.collector.start_timer(self.operation)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.timer_id:
            self.collector.end_timer(self.timer_id, self.operation)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Set up logging configuration."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def get_config_file():
    """Get the application configuration file path."""
    # PRIMESET_CONFIG points at any TOML file with a [tool.primeset] table
    if config_file := os.getenv('PRIMESET_CONFIG'):
        return Path(config_file)
    return Path('pyproject.toml')


def get_config():
    """Get application configuration from the [tool.primeset] table."""
    config_file = get_config_file()
    try:
        with open(config_file, "rb") as f:
            config = tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as e:
        logging.warning(f"Could not parse {config_file} ({e}), using defaults")
        return {}

    return config.get("tool", {}).get("primeset", {})


def get_output_dir(config=None):
    """Get the dataset output directory following configuration hierarchy."""
    # 1. Environment variable (highest priority)
    if output_dir := os.getenv('PRIMESET_OUTPUT_DIR'):
        return Path(output_dir)

    # 2. Configuration file
    if config is None:
        config = get_config()
    if output_dir := config.get('output_dir'):
        return Path(output_dir)

    # 3. Fallback to default
    return Path('data')


def default_workers() -> int:
    """Number of physical cores, falling back to logical cores."""
    return psutil.cpu_count(logical=False) or os.cpu_count() or 1
