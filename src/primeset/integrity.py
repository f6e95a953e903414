"""
Data integrity checks for a sealed dataset.

Capabilities:
- Ordering: each collection strictly ascending (sorted, no duplicates)
- Disjointness: no value labeled both prime and non-prime
- Coverage: together the collections hold exactly [start, end) when known
- Label spot checks: re-classify a random sample with the primality engine
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl

from .partition import Interval
from .primality import is_prime
from .sieve import build_for
from .sink import NON_PRIMES, PRIMES, VALUE_SCHEMA, dataset_paths


@dataclass
class IntegrityReport:
    output_dir: Path
    fmt: str
    counts: Dict[str, int] = field(default_factory=dict)
    problems: List[str] = field(default_factory=list)
    sampled: int = 0

    @property
    def ok(self) -> bool:
        return not self.problems

    def format(self) -> str:
        lines = ["=== DATA INTEGRITY REPORT ==="]
        lines.append(f"Dataset: {self.output_dir} ({self.fmt})")
        for name, count in self.counts.items():
            lines.append(f"  {name}: {count:,} values")
        if self.sampled:
            lines.append(f"Labels re-checked: {self.sampled:,}")
        if self.problems:
            lines.append("Problems:")
            lines.extend(f"  {p}" for p in self.problems)
        else:
            lines.append("No problems detected.")
        return "\n".join(lines)


def read_collection(path: Path, fmt: str) -> pl.Series:
    """Read one collection of a dataset as a UInt64 series."""
    if fmt == 'parquet':
        return pl.read_parquet(path)['value'].cast(pl.UInt64)
    if path.stat().st_size == 0:
        return pl.Series('value', [], dtype=pl.UInt64)
    if fmt == 'text':
        return pl.read_csv(path, has_header=False, schema=VALUE_SCHEMA)['value']
    # csv: the primes file leads with a 'prime' column
    df = pl.read_csv(path, infer_schema=False)
    return df[df.columns[0]].cast(pl.UInt64).alias('value')


def _check_ordered(name: str, values: pl.Series, problems: List[str]):
    if not values.is_sorted():
        problems.append(f"{name}: values are not in ascending order")
    dups = len(values) - values.n_unique()
    if dups:
        problems.append(f"{name}: {dups:,} duplicate values")


def check_dataset(output_dir, fmt: str = 'text', interval: Optional[Interval] = None,
                  sample: int = 0, seed: Optional[int] = None) -> IntegrityReport:
    """
    Verify a sealed dataset.

    Args:
        output_dir: Directory holding the dataset.
        fmt: Dataset format ('text', 'csv' or 'parquet').
        interval: Expected coverage; skipped when None.
        sample: Number of labels to re-classify per collection.
        seed: Seed for the label sample.

    Returns:
        IntegrityReport listing every problem found.
    """
    paths = dataset_paths(fmt, output_dir)
    report = IntegrityReport(output_dir=Path(output_dir), fmt=fmt)

    missing = [str(p) for p in paths.values() if not p.exists()]
    if missing:
        report.problems.append(f"Missing dataset files: {', '.join(missing)}")
        return report

    collections = {name: read_collection(path, fmt) for name, path in paths.items()}
    for name, values in collections.items():
        report.counts[name] = len(values)
        _check_ordered(name, values, report.problems)

    primes, non_primes = collections[PRIMES], collections[NON_PRIMES]
    both = primes.is_in(non_primes).sum()
    if both:
        report.problems.append(f"{both:,} values labeled both prime and non-prime")

    if interval is not None:
        combined = pl.concat([primes, non_primes])
        if len(combined) != interval.span:
            report.problems.append(f"Expected {interval.span:,} values for {interval}, found {len(combined):,}")
        elif len(combined) and (combined.min() != interval.start or combined.max() != interval.end - 1):
            report.problems.append(f"Values span [{combined.min()}, {combined.max()}], expected {interval}")

    if sample > 0:
        rng = random.Random(seed)
        upper = max([int(s.max()) for s in collections.values() if len(s)], default=0)
        sieve = build_for(upper + 1)
        for name, values in collections.items():
            expected = name == PRIMES
            picks = rng.sample(values.to_list(), min(sample, len(values)))
            for value in picks:
                if is_prime(value, sieve) != expected:
                    report.problems.append(f"{name}: {value} is mislabeled")
            report.sampled += len(picks)

    return report
