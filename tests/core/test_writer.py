"""Tests for the archive writer."""

from __future__ import annotations

import io
import struct

import pytest

from cmzip.core.compression import compress_block, decompress_block
from cmzip.core.constants import INDEX_LEVEL, TrailingPolicy
from cmzip.core.errors import InvalidLevelError, TrailingFragmentError
from cmzip.core.writer import write_archive
from tests.conftest import build_archive, make_sd_file


class TestWriteArchive:
    def test_layout(self, three_records):
        sink = io.BytesIO()
        index = write_archive(io.BytesIO(b"".join(three_records)), sink, 6)
        data = sink.getvalue()

        blocks = [compress_block(r, 6) for r in three_records]
        assert index.sizes == [0] + [len(b) for b in blocks]
        assert data.startswith(b"".join(blocks))

        blob_length = struct.unpack("<Q", data[-8:])[0]
        blob = data[-8 - blob_length:-8]
        assert blob == compress_block(index.to_bytes(), INDEX_LEVEL)
        assert len(data) == sum(index.sizes) + blob_length + 8

    def test_blocks_decode_independently(self, three_records):
        sink = io.BytesIO()
        index = write_archive(io.BytesIO(b"".join(three_records)), sink)
        data = sink.getvalue()
        for i, record in enumerate(three_records):
            start = index.offset(i)
            block = data[start:start + index.block_size(i)]
            assert decompress_block(block) == record

    def test_empty_input(self):
        sink = io.BytesIO()
        index = write_archive(io.BytesIO(b""), sink)
        data = sink.getvalue()
        blob = compress_block(struct.pack("<Q", 0), INDEX_LEVEL)
        assert index.sizes == [0]
        assert data == blob + struct.pack("<Q", len(blob))

    def test_index_level_independent_of_record_level(self, three_records):
        for level in (0, 9):
            data = build_archive(b"".join(three_records), level)
            blob_length = struct.unpack("<Q", data[-8:])[0]
            raw = decompress_block(data[-8 - blob_length:-8])
            assert compress_block(raw, INDEX_LEVEL) == data[-8 - blob_length:-8]

    def test_invalid_level(self):
        with pytest.raises(InvalidLevelError):
            write_archive(io.BytesIO(b""), io.BytesIO(), 10)

    def test_invalid_workers(self):
        with pytest.raises(ValueError, match="workers"):
            write_archive(io.BytesIO(b""), io.BytesIO(), workers=0)

    def test_trailing_fragment_included(self):
        data = make_sd_file(["a", "b"]) + b"dangling\n"
        sink = io.BytesIO()
        index = write_archive(io.BytesIO(data), sink)
        assert index.record_count == 3

    def test_trailing_fragment_error(self):
        data = make_sd_file(["a"]) + b"dangling\n"
        with pytest.raises(TrailingFragmentError):
            write_archive(io.BytesIO(data), io.BytesIO(), trailing=TrailingPolicy.ERROR)

    def test_progress_callback(self, three_records):
        calls = []
        write_archive(
            io.BytesIO(b"".join(three_records)), io.BytesIO(),
            progress=lambda n, raw: calls.append((n, raw)),
        )
        assert [n for n, _ in calls] == [1, 2, 3]
        assert calls[-1][1] == sum(len(r) for r in three_records)


class TestParallelWrite:
    @pytest.mark.parametrize("workers", [2, 4])
    def test_identical_to_sequential(self, workers):
        data = make_sd_file([f"mol{i}" for i in range(150)])
        assert build_archive(data, 3, workers=workers) == build_archive(data, 3)

    def test_parallel_empty_input(self):
        assert build_archive(b"", workers=3) == build_archive(b"")
