"""Archive run report data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class ArchiveReport:
    """Collects statistics about a zip or unzip run."""

    operation: str = ""
    source_file: str = ""
    output_file: str = ""
    level: int | None = None

    records_total: int = 0
    records_written: int = 0
    bytes_in: int = 0
    bytes_out: int = 0
    index_size: int = 0

    failed_records: list[int] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: datetime | None = None

    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def ratio(self) -> float:
        """Compressed size over raw size (0.0 when nothing was read)."""
        if self.operation == "unzip":
            raw, packed = self.bytes_out, self.bytes_in
        else:
            raw, packed = self.bytes_in, self.bytes_out
        if raw == 0:
            return 0.0
        return packed / raw

    def finish(self) -> None:
        self.finished_at = datetime.now()

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "source_file": self.source_file,
            "output_file": self.output_file,
            "level": self.level,
            "records_total": self.records_total,
            "records_written": self.records_written,
            "bytes_in": self.bytes_in,
            "bytes_out": self.bytes_out,
            "index_size": self.index_size,
            "ratio": round(self.ratio, 4),
            "failed_records": self.failed_records,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
        }
