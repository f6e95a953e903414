"""
Dataset sink tests.
"""

import polars as pl
import pytest

from primeset import ConfigError, CsvSink, IoError, MemorySink, ParquetSink, TextSink, make_sink
from primeset.sink import dataset_paths


def series(values):
    return pl.Series('value', values, dtype=pl.UInt64)


def fill(sink):
    sink.append(0, series([2, 3, 5, 7]), series([0, 1, 4, 6, 8, 9]))
    sink.flush()
    sink.append(1, series([11, 13]), series([10, 12, 14]))
    sink.flush()


class TestTextSink:

    def test_write_and_seal(self, tmp_path):
        sink = TextSink(tmp_path)
        fill(sink)
        sink.seal()

        paths = dataset_paths('text', tmp_path)
        assert paths['primes'].read_text() == "2\n3\n5\n7\n11\n13\n"
        assert paths['non_primes'].read_text() == "0\n1\n4\n6\n8\n9\n10\n12\n14\n"
        assert sink.prime_count == 6
        assert sink.non_prime_count == 9
        assert not list(tmp_path.glob('*.partial'))

    def test_not_visible_before_seal(self, tmp_path):
        sink = TextSink(tmp_path)
        fill(sink)
        assert not dataset_paths('text', tmp_path)['primes'].exists()
        assert (tmp_path / 'primes.txt.partial').exists()
        sink.discard()

    def test_discard(self, tmp_path):
        sink = TextSink(tmp_path)
        fill(sink)
        sink.discard()
        assert list(tmp_path.iterdir()) == []

    def test_large_values(self, tmp_path):
        sink = TextSink(tmp_path)
        sink.append(0, series([2**64 - 59]), series([2**64 - 2]))
        sink.seal()
        assert (tmp_path / 'primes.txt').read_text() == f"{2**64 - 59}\n"

    def test_append_after_seal(self, tmp_path):
        sink = TextSink(tmp_path)
        sink.seal()
        with pytest.raises(IoError):
            sink.append(0, series([2]), series([]))

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        with pytest.raises(IoError):
            TextSink(blocker / 'out')

    def test_context_manager_discards_on_error(self, tmp_path):
        with pytest.raises(RuntimeError):
            with TextSink(tmp_path) as sink:
                fill(sink)
                raise RuntimeError("boom")
        assert list(tmp_path.iterdir()) == []


class TestCsvSink:

    def test_powers(self, tmp_path):
        sink = CsvSink(tmp_path)
        sink.append(0, series([2, 3]), series([4]))
        sink.seal()

        primes = pl.read_csv(tmp_path / 'primes.csv', infer_schema=False)
        assert primes.columns == ['prime', 'squared', 'cubed', 'to_fourth_power']
        assert primes.rows() == [('2', '4', '8', '16'), ('3', '9', '27', '81')]
        assert (tmp_path / 'non_primes.csv').read_text() == "value\n4\n"

    def test_powers_beyond_u64(self, tmp_path):
        p = 4294967291
        sink = CsvSink(tmp_path)
        sink.append(0, series([p]), series([]))
        sink.seal()
        primes = pl.read_csv(tmp_path / 'primes.csv', infer_schema=False)
        assert primes['to_fourth_power'][0] == str(p**4)


class TestParquetSink:

    def test_parts_concatenated_in_order(self, tmp_path):
        sink = ParquetSink(tmp_path)
        fill(sink)
        assert (tmp_path / '_parts').is_dir()
        sink.seal()

        assert not (tmp_path / '_parts').exists()
        assert pl.read_parquet(tmp_path / 'primes.parquet')['value'].to_list() == [2, 3, 5, 7, 11, 13]
        assert pl.read_parquet(tmp_path / 'non_primes.parquet')['value'].dtype == pl.UInt64

    def test_discard(self, tmp_path):
        sink = ParquetSink(tmp_path)
        fill(sink)
        sink.discard()
        assert list(tmp_path.iterdir()) == []

    def test_flush_syncs_parts_and_directory(self, tmp_path, monkeypatch):
        synced = []
        monkeypatch.setattr('primeset.sink.os.fsync', synced.append)
        sink = ParquetSink(tmp_path)
        fill(sink)
        # Two part files and the staging directory per flushed chunk
        assert len(synced) == 6
        sink.flush()
        assert len(synced) == 7
        sink.discard()

    def test_flush_failure(self, tmp_path, monkeypatch):
        def broken(fd):
            raise OSError("I/O error")
        sink = ParquetSink(tmp_path)
        sink.append(0, series([2]), series([0, 1]))
        monkeypatch.setattr('primeset.sink.os.fsync', broken)
        with pytest.raises(IoError):
            sink.flush()
        sink.discard()


class TestMakeSink:

    def test_formats(self, tmp_path):
        for fmt, cls in (('text', TextSink), ('csv', CsvSink), ('parquet', ParquetSink)):
            sink = make_sink(fmt, tmp_path / fmt)
            assert type(sink) is cls
            sink.discard()

    def test_unknown_format(self, tmp_path):
        with pytest.raises(ConfigError):
            make_sink('json', tmp_path)

    def test_memory_sink(self):
        sink = MemorySink()
        fill(sink)
        sink.seal()
        assert sink.sealed
        assert sink.chunks == [0, 1]
        assert sink.primes == [2, 3, 5, 7, 11, 13]
