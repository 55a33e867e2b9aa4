"""Split an MDL SD file stream into records.

A record is every line up to and including the first line that contains the
``$$$$`` terminator.  Lines end at ``\\n`` (inclusive); the terminator is
matched anywhere in the line so ``$$$$\\r\\n`` and indented terminators close a
record too.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from enum import Enum
from typing import BinaryIO

from cmzip.core.constants import RECORD_TERMINATOR, TrailingPolicy
from cmzip.core.errors import TrailingFragmentError

logger = logging.getLogger(__name__)


class SplitterState(Enum):
    ACCUMULATING = "accumulating"
    RECORD_READY = "record_ready"


class RecordSplitter:
    """Two-state machine turning lines into records.

    ``feed`` moves ACCUMULATING → RECORD_READY when a terminator line arrives
    and hands back the finished record, returning to ACCUMULATING.  ``finish``
    handles end of input: an empty buffer ends cleanly, a non-empty one is a
    trailing fragment resolved by the policy.
    """

    def __init__(
        self,
        trailing: TrailingPolicy = TrailingPolicy.INCLUDE,
        terminator: bytes = RECORD_TERMINATOR,
    ) -> None:
        self.trailing = TrailingPolicy(trailing)
        self.terminator = terminator
        self.state = SplitterState.ACCUMULATING
        self._buffer = bytearray()
        self.records_emitted = 0

    @property
    def pending(self) -> int:
        """Bytes accumulated for the record in progress."""
        return len(self._buffer)

    def feed(self, line: bytes) -> bytes | None:
        """Add one line. Returns the completed record if this line closed one."""
        self._buffer += line
        if self.terminator in line:
            self.state = SplitterState.RECORD_READY
        if self.state is SplitterState.RECORD_READY:
            return self._emit()
        return None

    def finish(self) -> bytes | None:
        """Signal end of input. Returns the trailing fragment when it is kept."""
        if not self._buffer:
            return None
        if self.trailing is TrailingPolicy.ERROR:
            raise TrailingFragmentError(len(self._buffer))
        logger.warning(
            "Input ends with %d bytes after the last %s line; keeping them as record %d",
            len(self._buffer), self.terminator.decode("ascii", "replace"), self.records_emitted,
        )
        self.state = SplitterState.RECORD_READY
        return self._emit()

    def _emit(self) -> bytes:
        record = bytes(self._buffer)
        self._buffer = bytearray()
        self.state = SplitterState.ACCUMULATING
        self.records_emitted += 1
        return record


def split_records(
    stream: BinaryIO,
    *,
    trailing: TrailingPolicy = TrailingPolicy.INCLUDE,
    terminator: bytes = RECORD_TERMINATOR,
) -> Iterator[bytes]:
    """Lazily yield the records of a binary SD file stream, in order."""
    splitter = RecordSplitter(trailing=trailing, terminator=terminator)
    for line in iter(stream.readline, b""):
        record = splitter.feed(line)
        if record is not None:
            yield record
    tail = splitter.finish()
    if tail is not None:
        yield tail
