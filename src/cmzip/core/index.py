"""Record index and footer for CmZ archives.

Archive layout (all integers little-endian u64):
  [block 0][block 1]...[block N-1][compressed index blob][footer: blob length]

Index blob before compression:
  N + 1 entries; entry 0 is the sentinel 0, entry i is the compressed length
  of block i - 1.  The start of block i is the sum of entries 0..i, which for
  i == N is the start of the index blob itself.
"""

from __future__ import annotations

import logging
import os
import struct
from dataclasses import dataclass, field
from itertools import accumulate
from typing import BinaryIO

from cmzip.core.compression import compress_block, decompress_block
from cmzip.core.constants import (
    FOOTER_FORMAT,
    FOOTER_SIZE,
    INDEX_ENTRY_FORMAT,
    INDEX_ENTRY_SIZE,
    INDEX_LEVEL,
)
from cmzip.core.errors import (
    CorruptFooterError,
    CorruptIndexError,
    IndexOutOfRangeError,
)

logger = logging.getLogger(__name__)


@dataclass
class ArchiveIndex:
    """Compressed block sizes, with the leading 0 sentinel."""

    sizes: list[int] = field(default_factory=lambda: [0])
    _offsets: list[int] | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.sizes or self.sizes[0] != 0:
            raise CorruptIndexError("Index must start with a 0 sentinel entry")

    @property
    def record_count(self) -> int:
        return len(self.sizes) - 1

    def __len__(self) -> int:
        return self.record_count

    def append(self, size: int) -> None:
        """Register the compressed length of the next block."""
        if size < 0:
            raise ValueError(f"Block size cannot be negative: {size}")
        self.sizes.append(size)
        self._offsets = None

    @property
    def offsets(self) -> list[int]:
        """Cumulative start offsets; offsets[i] == sum(sizes[0..=i]).

        offsets[N] is where the index blob starts.  Computed once and reused
        until the index is modified.
        """
        if self._offsets is None:
            self._offsets = list(accumulate(self.sizes))
        return self._offsets

    def check_record(self, record: int) -> None:
        if not 0 <= record < self.record_count:
            raise IndexOutOfRangeError(record, self.record_count)

    def offset(self, record: int) -> int:
        """Absolute start offset of a record's compressed block."""
        self.check_record(record)
        return self.offsets[record]

    def block_size(self, record: int) -> int:
        """Compressed length of a record's block."""
        self.check_record(record)
        return self.sizes[record + 1]

    @property
    def index_offset(self) -> int:
        """Start of the index blob (the end of the last block)."""
        return self.offsets[-1]

    def to_bytes(self) -> bytes:
        return b"".join(struct.pack(INDEX_ENTRY_FORMAT, size) for size in self.sizes)

    @classmethod
    def from_bytes(cls, raw: bytes) -> ArchiveIndex:
        """Deserialize a decompressed index blob."""
        if not raw:
            raise CorruptIndexError("Index blob is empty")
        if len(raw) % INDEX_ENTRY_SIZE:
            raise CorruptIndexError(
                f"Index blob size {len(raw)} is not a multiple of {INDEX_ENTRY_SIZE}"
            )
        sizes = [value for (value,) in struct.iter_unpack(INDEX_ENTRY_FORMAT, raw)]
        return cls(sizes=sizes)

    def to_blob(self) -> bytes:
        """Serialized index compressed at the fixed index level."""
        return compress_block(self.to_bytes(), INDEX_LEVEL)


def pack_footer(blob_length: int) -> bytes:
    return struct.pack(FOOTER_FORMAT, blob_length)


def unpack_footer(raw: bytes) -> int:
    if len(raw) != FOOTER_SIZE:
        raise CorruptFooterError(
            f"Footer must be {FOOTER_SIZE} bytes, got {len(raw)}"
        )
    return struct.unpack(FOOTER_FORMAT, raw)[0]


def write_index(index: ArchiveIndex, stream: BinaryIO) -> int:
    """Append the compressed index blob and the footer. Returns the blob length."""
    blob = index.to_blob()
    stream.write(blob)
    stream.write(pack_footer(len(blob)))
    return len(blob)


def read_index(stream: BinaryIO, file_size: int | None = None) -> tuple[ArchiveIndex, int]:
    """Recover the index from the end of a seekable archive stream.

    Returns:
        Tuple of (index, compressed_index_blob_length).

    Raises:
        CorruptFooterError: file too short or footer points outside the file.
        DecodeError: the index blob does not decompress.
        CorruptIndexError: the decoded sizes do not match the file layout.
    """
    if file_size is None:
        file_size = stream.seek(0, os.SEEK_END)
    if file_size < FOOTER_SIZE:
        raise CorruptFooterError(
            f"Archive is {file_size} bytes, too short to hold the {FOOTER_SIZE}-byte footer"
        )

    stream.seek(file_size - FOOTER_SIZE)
    blob_length = unpack_footer(stream.read(FOOTER_SIZE))
    if blob_length == 0 or blob_length > file_size - FOOTER_SIZE:
        raise CorruptFooterError(
            f"Footer index length {blob_length} does not fit in a {file_size}-byte archive"
        )

    blob_start = file_size - FOOTER_SIZE - blob_length
    stream.seek(blob_start)
    blob = stream.read(blob_length)
    if len(blob) != blob_length:
        raise CorruptFooterError("Unexpected end of file reading index blob")

    index = ArchiveIndex.from_bytes(decompress_block(blob))
    if index.index_offset != blob_start:
        raise CorruptIndexError(
            f"Index describes {index.index_offset} bytes of records "
            f"but the index blob starts at {blob_start}"
        )
    logger.debug(
        "Read index: %d records, blob %d bytes at offset %d",
        index.record_count, blob_length, blob_start,
    )
    return index, blob_length
