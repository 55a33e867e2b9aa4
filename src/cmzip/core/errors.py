"""Exception hierarchy for CmZ archive operations.

Every error raised by the core derives from ``CmzError``.  Most classes also
inherit the closest builtin so callers that only know about ``ValueError`` or
``OSError`` still catch them.
"""

from __future__ import annotations


class CmzError(Exception):
    """Base class for cmzip errors."""


# Inputs and I/O


class InputNotFoundError(CmzError, FileNotFoundError):
    """The source file or archive does not exist."""

    def __init__(self, path: object) -> None:
        super().__init__(f"File not found: {path}")
        self.path = path


class ArchiveIOError(CmzError, OSError):
    """Reading, writing or seeking failed."""


class InvalidLevelError(CmzError, ValueError):
    def __init__(self, level: object) -> None:
        super().__init__(f"Compression level must be between 0 and 9, got {level!r}")
        self.level = level


class InvalidRecordIndexError(CmzError, ValueError):
    """A record index argument is not a non-negative integer."""


class MalformedInputError(CmzError, ValueError):
    """The SD file does not split cleanly into records."""


class TrailingFragmentError(MalformedInputError):
    def __init__(self, size: int) -> None:
        super().__init__(
            f"Input ends with {size} bytes after the last record terminator"
        )
        self.size = size


class ConfigError(CmzError, ValueError):
    """Invalid configuration value."""


# Archive structure


class ArchiveFormatError(CmzError):
    """The archive bytes do not follow the CmZ layout."""


class CorruptFooterError(ArchiveFormatError):
    pass


class CorruptIndexError(ArchiveFormatError):
    pass


class DecodeError(ArchiveFormatError):
    """Compressed data could not be decompressed."""


class RecordDecodeError(DecodeError):
    """A single record block failed to decompress."""

    def __init__(self, record: int, reason: str) -> None:
        super().__init__(f"Record {record} could not be decoded: {reason}")
        self.record = record
        self.reason = reason


class IndexOutOfRangeError(CmzError, IndexError):
    def __init__(self, record: int, count: int) -> None:
        super().__init__(
            f"Record index {record} out of range (archive holds {count} records)"
        )
        self.record = record
        self.count = count
