"""Archive writer: SD file stream → CmZ archive stream."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from itertools import islice
from typing import BinaryIO

from cmzip.core.compression import compress_block, validate_level
from cmzip.core.constants import DEFAULT_LEVEL, WRITE_BATCH_SIZE, TrailingPolicy
from cmzip.core.index import ArchiveIndex, write_index
from cmzip.core.splitter import split_records

logger = logging.getLogger(__name__)

# (records_done, raw_bytes_done)
ProgressCallback = Callable[[int, int], None]


def write_archive(
    source: BinaryIO,
    sink: BinaryIO,
    level: int = DEFAULT_LEVEL,
    *,
    trailing: TrailingPolicy = TrailingPolicy.INCLUDE,
    workers: int = 1,
    progress: ProgressCallback | None = None,
) -> ArchiveIndex:
    """Compress every record of source into a CmZ archive written to sink.

    Each record is compressed on its own and written as soon as it is ready,
    so with a single worker only one record is held in memory.  With more
    workers, records are compressed in parallel in bounded batches and still
    written in input order; the output is byte-identical either way.

    Returns:
        The index that was appended to the archive.
    """
    validate_level(level)
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")

    index = ArchiveIndex()
    records = split_records(source, trailing=trailing)

    raw_total = 0
    for raw_size, block in _compressed_blocks(records, level, workers):
        sink.write(block)
        index.append(len(block))
        raw_total += raw_size
        if progress is not None:
            progress(index.record_count, raw_total)
        logger.debug(
            "Record %d: %d -> %d bytes", index.record_count - 1, raw_size, len(block),
        )

    blob_length = write_index(index, sink)
    sink.flush()

    logger.info(
        "Wrote %d records (%d bytes raw, %d bytes compressed, index %d bytes) at level %d",
        index.record_count, raw_total, index.index_offset, blob_length, level,
    )
    return index


def _compress_one(record: bytes, level: int) -> tuple[int, bytes]:
    return len(record), compress_block(record, level)


def _compressed_blocks(
    records: Iterable[bytes], level: int, workers: int,
) -> Iterator[tuple[int, bytes]]:
    """Yield (raw_size, compressed_block) in record order."""
    if workers == 1:
        for record in records:
            yield _compress_one(record, level)
        return

    records = iter(records)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        while True:
            batch = list(islice(records, WRITE_BATCH_SIZE * workers))
            if not batch:
                break
            yield from pool.map(_compress_one, batch, [level] * len(batch))
