"""Facade for zipping SD files to disk and extracting records from archives."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from cmzip.core.constants import ARCHIVE_SUFFIX, DEFAULT_LEVEL, FOOTER_SIZE, TrailingPolicy
from cmzip.core.compression import validate_level
from cmzip.core.errors import (
    ArchiveIOError,
    CmzError,
    InputNotFoundError,
    InvalidRecordIndexError,
)
from cmzip.core.index import ArchiveIndex
from cmzip.core.reader import ArchiveReader, ExtractResult
from cmzip.core.writer import ProgressCallback, write_archive

logger = logging.getLogger(__name__)


@dataclass
class ZipSummary:
    """What zip_file produced."""
    output: Path
    index: ArchiveIndex
    bytes_in: int
    bytes_out: int

    @property
    def record_count(self) -> int:
        return self.index.record_count

    @property
    def index_size(self) -> int:
        """Compressed index blob length."""
        return self.bytes_out - self.index.index_offset - FOOTER_SIZE


@dataclass
class ArchiveInfo:
    """Layout of an existing archive."""
    path: Path
    file_size: int
    index: ArchiveIndex
    index_blob_size: int

    @property
    def record_count(self) -> int:
        return self.index.record_count

    def records(self) -> list[tuple[int, int, int]]:
        """(record, offset, compressed_size) for every record."""
        return [
            (i, self.index.offset(i), self.index.block_size(i))
            for i in range(self.index.record_count)
        ]


def ensure_suffix(path: str | Path) -> Path:
    """Archive names always end in .cmz; append it when missing."""
    path = Path(path)
    if not path.name.endswith(ARCHIVE_SUFFIX):
        path = path.with_name(path.name + ARCHIVE_SUFFIX)
    return path


def parse_record_list(text: str) -> list[int]:
    """Parse a comma-delimited list of record indices, e.g. "2,0,0".

    Order and repeats are preserved.
    """
    records: list[int] = []
    for part in text.split(","):
        token = part.strip()
        if not (token.isascii() and token.isdigit()):
            raise InvalidRecordIndexError(f"Invalid record index: {part.strip()!r}")
        records.append(int(token))
    return records


def _reject_same_file(source: Path, output: Path) -> None:
    if output.exists() and os.path.samefile(source, output):
        raise ArchiveIOError(f"Refusing to overwrite the input file: {output}")


def _default_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


@contextmanager
def _staged_output(output: Path, source: Path) -> Iterator[BinaryIO]:
    """Yield a temp file beside output; it replaces output only on success.

    On any failure the temp file is removed and output is left untouched.
    """
    _reject_same_file(source, output)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        tmp = tempfile.NamedTemporaryFile(
            dir=output.parent, prefix=f".{output.name}.", suffix=".part", delete=False,
        )
    except OSError as e:
        raise ArchiveIOError(f"Couldn't create {output}: {e}") from e

    try:
        with tmp:
            yield tmp
        os.chmod(tmp.name, _default_mode())
        os.replace(tmp.name, output)
    except BaseException as e:
        try:
            os.unlink(tmp.name)
        except OSError as cleanup_error:
            logger.warning("Couldn't remove %s: %s", tmp.name, cleanup_error)
        if isinstance(e, OSError) and not isinstance(e, CmzError):
            raise ArchiveIOError(f"I/O error writing {output}: {e}") from e
        raise


def zip_file(
    source: str | Path,
    destination: str | Path,
    level: int = DEFAULT_LEVEL,
    *,
    trailing: TrailingPolicy = TrailingPolicy.INCLUDE,
    workers: int = 1,
    progress: ProgressCallback | None = None,
) -> ZipSummary:
    """Compress an SD file on disk into a .cmz archive.

    The destination gets the .cmz suffix if it lacks one. Missing parent
    directories are created. An existing file is replaced only once the
    whole archive has been written; a failed run leaves no output behind.
    """
    source = Path(source)
    validate_level(level)
    if not source.is_file():
        raise InputNotFoundError(source)
    output = ensure_suffix(destination)

    try:
        src = open(source, "rb")
    except OSError as e:
        raise ArchiveIOError(f"Cannot open {source}: {e}") from e
    with src, _staged_output(output, source) as dst:
        index = write_archive(
            src, dst, level, trailing=trailing, workers=workers, progress=progress,
        )
        bytes_out = dst.tell()

    return ZipSummary(
        output=output,
        index=index,
        bytes_in=source.stat().st_size,
        bytes_out=bytes_out,
    )


def unzip_file(
    archive: str | Path,
    destination: str | Path,
    records: Sequence[int] | None = None,
    *,
    keep_going: bool = False,
    progress: Callable[[int, int], None] | None = None,
) -> ExtractResult:
    """Extract records from a .cmz archive into a new SD file.

    The archive and every requested index are validated before any output
    is written, and the destination appears only when extraction finishes.
    """
    destination = Path(destination)
    with ArchiveReader.open(archive) as reader:
        requested = reader.resolve(records)
        with _staged_output(destination, Path(archive)) as dst:
            return reader.extract(
                dst, requested, keep_going=keep_going, progress=progress,
            )


def inspect_archive(archive: str | Path) -> ArchiveInfo:
    """Read only the footer and index of an archive."""
    with ArchiveReader.open(archive) as reader:
        return ArchiveInfo(
            path=Path(archive),
            file_size=reader.file_size,
            index=reader.index,
            index_blob_size=reader.index_blob_size,
        )
