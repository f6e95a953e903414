"""
Dataset sinks: append-only ordered write targets for the two collections.

A sink receives each committed chunk already split into primes and
non-primes, flushes it durably, and only exposes the dataset under its final
file names once sealed. Discarding removes everything written so far.
"""

from __future__ import annotations

import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

import polars as pl

from .errors import ConfigError, IoError

FORMATS = ('text', 'csv', 'parquet')

PRIMES = 'primes'
NON_PRIMES = 'non_primes'

VALUE_SCHEMA = {'value': pl.UInt64}
POWERS_SCHEMA = {'prime': pl.UInt64, 'squared': pl.Utf8, 'cubed': pl.Utf8, 'to_fourth_power': pl.Utf8}

_EXTENSIONS = {'text': 'txt', 'csv': 'csv', 'parquet': 'parquet'}


def _fsync_path(path: Path):
    """fsync a file or directory by path."""
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def dataset_paths(fmt: str, output_dir) -> Dict[str, Path]:
    """Final file paths of both collections for a given format."""
    if fmt not in FORMATS:
        raise ConfigError(f"Unknown dataset format {fmt!r}, expected one of {FORMATS}")
    output_dir = Path(output_dir)
    ext = _EXTENSIONS[fmt]
    return {PRIMES: output_dir / f"{PRIMES}.{ext}", NON_PRIMES: output_dir / f"{NON_PRIMES}.{ext}"}


class WriteSink(ABC):
    """Ordered, append-only dataset target."""

    def __init__(self):
        self.sealed = False
        self.prime_count = 0
        self.non_prime_count = 0

    @property
    def record_count(self) -> int:
        return self.prime_count + self.non_prime_count

    def append(self, chunk_index: int, primes: pl.Series, non_primes: pl.Series):
        """Append one committed chunk. Values arrive in ascending order."""
        if self.sealed:
            raise IoError("Sink is sealed", chunk_index=chunk_index)
        try:
            self._append(chunk_index, primes, non_primes)
        except (OSError, pl.exceptions.PolarsError) as e:
            raise IoError(f"Could not write to sink: {e}", chunk_index=chunk_index) from e
        self.prime_count += len(primes)
        self.non_prime_count += len(non_primes)

    def flush(self):
        try:
            self._flush()
        except OSError as e:
            raise IoError(f"Could not flush sink: {e}") from e

    def seal(self):
        """Make the dataset final. No writes are accepted afterwards."""
        if self.sealed:
            return
        try:
            self._seal()
        except (OSError, pl.exceptions.PolarsError) as e:
            raise IoError(f"Could not seal sink: {e}") from e
        self.sealed = True

    def discard(self):
        """Drop everything written so far. Safe to call more than once."""
        self._discard()
        self.prime_count = 0
        self.non_prime_count = 0

    @abstractmethod
    def _append(self, chunk_index, primes, non_primes): ...

    def _flush(self):
        pass

    @abstractmethod
    def _seal(self): ...

    @abstractmethod
    def _discard(self): ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.discard()
        elif not self.sealed:
            self.seal()


class MemorySink(WriteSink):
    """Keeps both collections in Python lists."""

    def __init__(self):
        super().__init__()
        self.primes: List[int] = []
        self.non_primes: List[int] = []
        self.chunks: List[int] = []

    def _append(self, chunk_index, primes, non_primes):
        self.chunks.append(chunk_index)
        self.primes.extend(primes.to_list())
        self.non_primes.extend(non_primes.to_list())

    def _seal(self):
        pass

    def _discard(self):
        self.primes.clear()
        self.non_primes.clear()
        self.chunks.clear()


class TextSink(WriteSink):
    """
    One decimal value per line, one file per collection.

    Files are written as <name>.partial and renamed when sealed, so an
    interrupted scan never leaves a file under the final name.
    """
    fmt = 'text'

    def __init__(self, output_dir):
        super().__init__()
        self.output_dir = Path(output_dir)
        self.paths = dataset_paths(self.fmt, self.output_dir)
        self._handles = {}
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            for name, path in self.paths.items():
                self._handles[name] = open(self._partial(path), 'wb')
                self._write_header(name, self._handles[name])
        except OSError as e:
            self._close()
            raise IoError(f"Could not open dataset in {self.output_dir}: {e}") from e

    @staticmethod
    def _partial(path: Path) -> Path:
        return path.with_name(path.name + '.partial')

    def _write_header(self, name, handle):
        pass

    def _frame(self, name, values: pl.Series) -> pl.DataFrame:
        return values.cast(pl.UInt64).to_frame('value')

    def _append(self, chunk_index, primes, non_primes):
        for name, values in ((PRIMES, primes), (NON_PRIMES, non_primes)):
            if len(values):
                self._frame(name, values).write_csv(self._handles[name], include_header=False)

    def _flush(self):
        for handle in self._handles.values():
            handle.flush()
            os.fsync(handle.fileno())

    def _close(self):
        for handle in self._handles.values():
            handle.close()
        self._handles = {}

    def _seal(self):
        self._flush()
        self._close()
        for path in self.paths.values():
            os.replace(self._partial(path), path)
        logging.info(f"Dataset sealed in {self.output_dir}: {self.prime_count:,} primes, {self.non_prime_count:,} non-primes")

    def _discard(self):
        self._close()
        for path in self.paths.values():
            self._partial(path).unlink(missing_ok=True)


class CsvSink(TextSink):
    """
    CSV with headers. Each prime row also carries its square, cube and
    fourth power as decimal strings, which overflow u64 for large primes.
    """
    fmt = 'csv'

    def _write_header(self, name, handle):
        columns = POWERS_SCHEMA if name == PRIMES else VALUE_SCHEMA
        handle.write((','.join(columns) + '\n').encode())

    def _frame(self, name, values):
        if name != PRIMES:
            return super()._frame(name, values)
        rows = [(p, str(p**2), str(p**3), str(p**4)) for p in values.to_list()]
        return pl.DataFrame(rows, schema=POWERS_SCHEMA, orient='row')


class ParquetSink(WriteSink):
    """
    Writes one part file per committed chunk into a staging directory, then
    concatenates the parts in chunk order into the final files on seal.
    """
    fmt = 'parquet'

    def __init__(self, output_dir):
        super().__init__()
        self.output_dir = Path(output_dir)
        self.paths = dataset_paths(self.fmt, self.output_dir)
        self.parts_dir = self.output_dir / '_parts'
        self._parts: Dict[str, List[Path]] = {PRIMES: [], NON_PRIMES: []}
        self._unsynced: List[Path] = []
        try:
            if self.parts_dir.exists():
                shutil.rmtree(self.parts_dir)
            self.parts_dir.mkdir(parents=True)
        except OSError as e:
            raise IoError(f"Could not create staging directory {self.parts_dir}: {e}") from e

    def _append(self, chunk_index, primes, non_primes):
        for name, values in ((PRIMES, primes), (NON_PRIMES, non_primes)):
            part = self.parts_dir / f"{name}_c{chunk_index:06d}.parquet"
            values.cast(pl.UInt64).to_frame('value').write_parquet(part)
            self._parts[name].append(part)
            self._unsynced.append(part)

    def _flush(self):
        # Part files first, then the directory entries that name them
        for part in self._unsynced:
            _fsync_path(part)
        _fsync_path(self.parts_dir)
        self._unsynced = []

    def _seal(self):
        for name, path in self.paths.items():
            parts = self._parts[name]
            if parts:
                frame = pl.concat([pl.read_parquet(p) for p in parts])
            else:
                frame = pl.DataFrame(schema=VALUE_SCHEMA)
            tmp = path.with_name(path.name + '.partial')
            frame.write_parquet(tmp)
            os.replace(tmp, path)
        shutil.rmtree(self.parts_dir)
        logging.info(f"Dataset sealed in {self.output_dir}: {self.prime_count:,} primes, {self.non_prime_count:,} non-primes")

    def _discard(self):
        shutil.rmtree(self.parts_dir, ignore_errors=True)
        for path in self.paths.values():
            path.with_name(path.name + '.partial').unlink(missing_ok=True)
        self._parts = {PRIMES: [], NON_PRIMES: []}
        self._unsynced = []


def make_sink(fmt: str, output_dir) -> WriteSink:
    """Create the file sink for a dataset format."""
    if fmt == 'text':
        return TextSink(output_dir)
    if fmt == 'csv':
        return CsvSink(output_dir)
    if fmt == 'parquet':
        return ParquetSink(output_dir)
    raise ConfigError(f"Unknown dataset format {fmt!r}, expected one of {FORMATS}")
