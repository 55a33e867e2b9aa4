"""Archive reader: random access to the records of a CmZ archive."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from cmzip.core.compression import decompress_block, decompress_to
from cmzip.core.errors import (
    ArchiveIOError,
    DecodeError,
    InputNotFoundError,
    RecordDecodeError,
)
from cmzip.core.index import read_index

logger = logging.getLogger(__name__)


@dataclass
class RecordFailure:
    """A requested record that could not be extracted."""
    record: int
    reason: str


@dataclass
class ExtractResult:
    records_written: int = 0
    bytes_written: int = 0
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failed_records(self) -> list[int]:
        return [f.record for f in self.failures]


class ArchiveReader:
    """Parses the footer and index once, then serves records by number.

    Works on any seekable binary stream.  Use ``ArchiveReader.open(path)`` to
    let the reader own the file handle.
    """

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self._owns_stream = False
        self.file_size = stream.seek(0, os.SEEK_END)
        self.index, self.index_blob_size = read_index(stream, self.file_size)

    @classmethod
    def open(cls, path: str | Path) -> ArchiveReader:
        path = Path(path)
        if not path.is_file():
            raise InputNotFoundError(path)
        try:
            fh = open(path, "rb")
        except OSError as e:
            raise ArchiveIOError(f"Cannot open {path}: {e}") from e
        try:
            reader = cls(fh)
        except Exception:
            fh.close()
            raise
        reader._owns_stream = True
        return reader

    def close(self) -> None:
        if self._owns_stream:
            self._stream.close()

    def __enter__(self) -> ArchiveReader:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def record_count(self) -> int:
        return self.index.record_count

    def __len__(self) -> int:
        return self.record_count

    def resolve(self, requested: Sequence[int] | None) -> list[int]:
        """Expand None to all records and range-check an explicit request.

        Order and repeats are kept as given.
        """
        if requested is None:
            return list(range(self.record_count))
        records = list(requested)
        for record in records:
            self.index.check_record(record)
        return records

    def read_block(self, record: int) -> bytes:
        """Raw compressed bytes of one record."""
        offset = self.index.offset(record)
        size = self.index.block_size(record)
        self._stream.seek(offset)
        block = self._stream.read(size)
        if len(block) != size:
            raise ArchiveIOError(
                f"Unexpected end of file reading record {record} "
                f"({len(block)} of {size} bytes at offset {offset})"
            )
        return block

    def read_record(self, record: int) -> bytes:
        """Decompressed bytes of one record."""
        block = self.read_block(record)
        try:
            return decompress_block(block)
        except DecodeError as e:
            raise RecordDecodeError(record, str(e)) from e

    def iter_records(self, requested: Sequence[int] | None = None) -> Iterator[bytes]:
        for record in self.resolve(requested):
            yield self.read_record(record)

    def extract(
        self,
        sink: BinaryIO,
        requested: Sequence[int] | None = None,
        *,
        keep_going: bool = False,
        progress: Callable[[int, int], None] | None = None,
    ) -> ExtractResult:
        """Write requested records, decompressed, to sink in the requested order.

        Every index is range-checked before the first byte is written.  A
        record that fails to decode raises RecordDecodeError, or with
        keep_going is recorded in the result and skipped.
        """
        records = self.resolve(requested)
        result = ExtractResult()
        for done, record in enumerate(records, start=1):
            try:
                written = decompress_to(self.read_block(record), sink)
            except DecodeError as e:
                if not keep_going:
                    raise RecordDecodeError(record, str(e)) from e
                logger.warning("Skipping record %d: %s", record, e)
                result.failures.append(RecordFailure(record=record, reason=str(e)))
            else:
                result.records_written += 1
                result.bytes_written += written
            if progress is not None:
                progress(done, len(records))

        logger.info(
            "Extracted %d of %d requested records (%d bytes)",
            result.records_written, len(records), result.bytes_written,
        )
        return result


def read_records(
    archive: BinaryIO,
    sink: BinaryIO,
    requested: Sequence[int] | None = None,
    *,
    keep_going: bool = False,
) -> ExtractResult:
    """Extract records from an open archive stream into sink.

    requested=None extracts all records in ascending order; otherwise the
    given indices are extracted in exactly that order and multiplicity.
    """
    return ArchiveReader(archive).extract(sink, requested, keep_going=keep_going)
