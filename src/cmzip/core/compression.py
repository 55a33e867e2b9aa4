"""LZMA compression/decompression for CmZ record blocks and the index blob."""

from __future__ import annotations

import lzma
from typing import BinaryIO

from cmzip.core.constants import MAX_LEVEL, MIN_LEVEL
from cmzip.core.errors import DecodeError, InvalidLevelError


def validate_level(level: int) -> int:
    """Return level unchanged if it is an integer in 0..9."""
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidLevelError(level)
    if not MIN_LEVEL <= level <= MAX_LEVEL:
        raise InvalidLevelError(level)
    return level


def compress_block(data: bytes, level: int) -> bytes:
    """Compress one record (or the index) into a standalone xz stream.

    Args:
        data: Raw bytes to compress.
        level: LZMA preset, 0 (fastest) to 9 (smallest).

    Returns:
        A complete xz stream that decodes without any surrounding context.
    """
    validate_level(level)
    return lzma.compress(data, format=lzma.FORMAT_XZ, preset=level)


def decompress_block(data: bytes) -> bytes:
    """Decompress one xz stream produced by compress_block.

    Raises:
        DecodeError: data is truncated, corrupted, or not an xz stream.
    """
    decompressor = lzma.LZMADecompressor(format=lzma.FORMAT_XZ)
    try:
        result = decompressor.decompress(data)
    except lzma.LZMAError as e:
        raise DecodeError(str(e)) from e
    if not decompressor.eof:
        raise DecodeError("Compressed data ended before the end-of-stream marker")
    return result


def decompress_to(data: bytes, sink: BinaryIO) -> int:
    """Decompress one xz stream into a writable binary sink.

    The block is fully decoded and checked for a clean end of stream before
    anything reaches the sink, so a corrupted block leaves no partial output.

    Returns:
        Number of decompressed bytes written.
    """
    raw = decompress_block(data)
    sink.write(raw)
    return len(raw)
