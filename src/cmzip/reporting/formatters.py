"""Output formatters for archive reports."""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path

from cmzip.reporting.report import ArchiveReport


def to_json(report: ArchiveReport, indent: int = 2) -> str:
    """Format report as JSON string."""
    return json.dumps(report.to_dict(), indent=indent, default=str)


def to_markdown(report: ArchiveReport) -> str:
    """Format report as Markdown."""
    lines = [
        f"# cmzip {report.operation} report",
        "",
        "| Field | Value |",
        "|-------|-------|",
        f"| Source | `{report.source_file}` |",
        f"| Output | `{report.output_file}` |",
    ]
    if report.level is not None:
        lines.append(f"| Level | {report.level} |")

    lines.extend([
        "",
        "## Statistics",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Records in archive | {report.records_total} |",
        f"| Records written | {report.records_written} |",
        f"| Bytes in | {report.bytes_in} |",
        f"| Bytes out | {report.bytes_out} |",
        f"| Index size | {report.index_size} |",
        f"| Ratio | {report.ratio:.3f} |",
        f"| Duration | {report.duration_seconds:.1f}s |",
    ])

    if report.failed_records:
        lines.extend([
            "",
            "## Failed records",
            "",
            ", ".join(str(r) for r in report.failed_records),
        ])

    if report.errors:
        lines.extend([
            "",
            "## Errors",
            "",
        ])
        for err in report.errors:
            lines.append(f"- {err}")

    return "\n".join(lines) + "\n"


def to_csv(report: ArchiveReport) -> str:
    """Format report as a single-row CSV."""
    output = io.StringIO()
    data = report.to_dict()
    # Flatten list fields
    data["failed_records"] = " ".join(str(r) for r in data["failed_records"])
    data["errors"] = "; ".join(data["errors"])
    writer = csv.DictWriter(output, fieldnames=data.keys())
    writer.writeheader()
    writer.writerow(data)
    return output.getvalue()


def save_report(report: ArchiveReport, path: str | Path) -> None:
    """Save report to file, auto-detecting format from extension."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in (".md", ".markdown"):
        content = to_markdown(report)
    elif suffix == ".csv":
        content = to_csv(report)
    else:
        content = to_json(report)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
