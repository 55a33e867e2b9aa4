"""Constants for the CmZ record archive format."""

from enum import Enum

# Line token closing every MDL SD file record
RECORD_TERMINATOR = b"$$$$"

# Footer: u64 little-endian length of the compressed index blob
FOOTER_SIZE = 8
FOOTER_FORMAT = "<Q"

# Each index entry is a u64 little-endian compressed block length
INDEX_ENTRY_SIZE = 8
INDEX_ENTRY_FORMAT = "<Q"

# LZMA preset bounds
MIN_LEVEL = 0
MAX_LEVEL = 9
DEFAULT_LEVEL = 6
INDEX_LEVEL = 9  # the index is written once, always at max effort

ARCHIVE_SUFFIX = ".cmz"

# Records compressed per thread-pool batch when writing with workers > 1
WRITE_BATCH_SIZE = 64


class TrailingPolicy(str, Enum):
    """What to do with bytes after the last terminator line."""
    INCLUDE = "include"  # keep them as a final unterminated record
    ERROR = "error"
