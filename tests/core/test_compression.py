"""Tests for the LZMA block codec."""

import io
import lzma

import pytest

from cmzip.core.compression import (
    compress_block,
    decompress_block,
    decompress_to,
    validate_level,
)
from cmzip.core.errors import DecodeError, InvalidLevelError


class TestCompress:
    def test_output_is_xz_stream(self):
        block = compress_block(b"CCO\n$$$$\n", 6)
        assert block[:6] == b"\xfd7zXZ\x00"
        assert lzma.decompress(block) == b"CCO\n$$$$\n"

    @pytest.mark.parametrize("level", range(10))
    def test_every_level_decodes(self, level):
        data = b"M  END\n> <Score>\n-7.1\n\n$$$$\n" * 20
        assert decompress_block(compress_block(data, level)) == data

    def test_empty_input(self):
        assert decompress_block(compress_block(b"", 9)) == b""

    @pytest.mark.parametrize("level", [-1, 10, 6.0, "6", True])
    def test_invalid_level_raises(self, level):
        with pytest.raises(InvalidLevelError):
            compress_block(b"data", level)


class TestValidateLevel:
    def test_bounds_accepted(self):
        assert validate_level(0) == 0
        assert validate_level(9) == 9

    def test_invalid_level_is_value_error(self):
        with pytest.raises(ValueError, match="between 0 and 9"):
            validate_level(12)


class TestDecompress:
    def test_truncated_raises(self):
        block = compress_block(b"Hello, World! " * 50, 6)
        with pytest.raises(DecodeError):
            decompress_block(block[:-5])

    def test_garbage_raises(self):
        with pytest.raises(DecodeError):
            decompress_block(b"\xde\xad\xbe\xef" * 8)

    def test_empty_raises(self):
        with pytest.raises(DecodeError):
            decompress_block(b"")

    def test_bit_flip_raises(self):
        block = bytearray(compress_block(b"ligand\n" * 100, 6))
        block[len(block) // 2] ^= 0xFF
        with pytest.raises(DecodeError):
            decompress_block(bytes(block))


class TestDecompressTo:
    def test_writes_to_sink(self):
        sink = io.BytesIO()
        written = decompress_to(compress_block(b"abc\n$$$$\n", 3), sink)
        assert written == 9
        assert sink.getvalue() == b"abc\n$$$$\n"

    def test_corrupt_block_writes_nothing(self):
        sink = io.BytesIO()
        block = compress_block(b"abc" * 1000, 3)
        with pytest.raises(DecodeError):
            decompress_to(block[:-10], sink)
        assert sink.getvalue() == b""
