"""CLI interface for cmzip using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from cmzip import __version__
from cmzip.config import Settings, load_settings
from cmzip.core.archive import inspect_archive, parse_record_list, unzip_file, zip_file
from cmzip.core.compression import validate_level
from cmzip.core.constants import TrailingPolicy
from cmzip.core.errors import CmzError, InputNotFoundError
from cmzip.reporting.formatters import save_report
from cmzip.reporting.report import ArchiveReport

app = typer.Typer(
    name="cmzip",
    help=(
        "CmDock archive utility. MDL SD file records are compressed individually"
        " and concatenated, followed by an index footer that allows extracting"
        " any record without decompressing the rest."
    ),
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

_verbose = False
_quiet = False
_settings = Settings()


def _print(msg: str, *, verbose_only: bool = False) -> None:
    """Print respecting --verbose/--quiet flags. Errors bypass --quiet."""
    if _quiet:
        return
    if verbose_only and not _verbose:
        return
    console.print(msg)


def _fail(msg: str, cause: BaseException | None = None) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(msg)}")
    raise typer.Exit(1) from cause


def _configure_logging(verbose: bool, quiet: bool) -> None:
    """Route cmzip's log records through Rich on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    pkg_logger = logging.getLogger("cmzip")
    if not any(isinstance(h, RichHandler) for h in pkg_logger.handlers):
        pkg_logger.addHandler(RichHandler(console=err_console, show_path=False))
    pkg_logger.setLevel(level)


def _finish_report(rpt: ArchiveReport, report: Path | None) -> None:
    rpt.finish()
    if report:
        save_report(rpt, report)
        _print(f"Report saved: [cyan]{report}[/cyan]")


def _progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
        disable=_quiet,
    )


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cmzip {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show extra info and debug logging.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show errors.",
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c",
        help="Settings file (TOML). Defaults to $CMZIP_CONFIG or ~/.cmzip.toml.",
    ),
) -> None:
    """cmzip: per-record LZMA archives for MDL SD files."""
    global _verbose, _quiet, _settings
    _verbose = verbose
    _quiet = quiet
    _configure_logging(verbose, quiet)
    try:
        _settings = load_settings(config)
    except CmzError as e:
        _fail(str(e), e)


@app.command(name="zip")
def zip_(
    source: Path = typer.Option(
        ..., "--input", "-i",
        help="Sets the input SDF file to use.",
    ),
    output: Path = typer.Option(
        ..., "--output", "-o",
        help="Sets the archive filename and path to write (.cmz is appended if missing).",
    ),
    level: int | None = typer.Option(
        None, "--level", "-l",
        help="Sets the compression level (0 - 9). Defaults to 6.",
    ),
    workers: int | None = typer.Option(
        None, "--workers", "-w", min=1,
        help="Compress records on this many threads. Output is identical.",
    ),
    strict_records: bool = typer.Option(
        False, "--strict-records",
        help="Fail if the input does not end with a $$$$ line.",
    ),
    report: Path | None = typer.Option(
        None, "--report",
        help="Save report to file (json/md/csv).",
    ),
) -> None:
    """Compress an MDL SD file into a CmZ archive using LZMA."""
    effective_level = _settings.level if level is None else level
    effective_workers = _settings.workers if workers is None else workers
    trailing = TrailingPolicy.ERROR if strict_records else _settings.trailing

    rpt = ArchiveReport(
        operation="zip",
        source_file=str(source),
        level=effective_level,
    )

    try:
        validate_level(effective_level)
        if not source.is_file():
            raise InputNotFoundError(source)

        _print(f"Level: [cyan]{effective_level}[/cyan], workers: [cyan]{effective_workers}[/cyan]",
               verbose_only=True)

        with _progress() as progress:
            task = progress.add_task("Compressing", total=source.stat().st_size)
            summary = zip_file(
                source, output, effective_level,
                trailing=trailing,
                workers=effective_workers,
                progress=lambda _records, raw: progress.update(task, completed=raw),
            )
    except CmzError as e:
        rpt.errors.append(str(e))
        _finish_report(rpt, report)
        _fail(str(e), e)

    rpt.output_file = str(summary.output)
    rpt.records_total = summary.record_count
    rpt.records_written = summary.record_count
    rpt.bytes_in = summary.bytes_in
    rpt.bytes_out = summary.bytes_out
    rpt.index_size = summary.index_size

    _print(
        f"Compressed [green]{summary.record_count}[/green] records:"
        f" {summary.bytes_in} → {summary.bytes_out} bytes ({rpt.ratio:.1%})"
    )
    _print(f"Saved: [cyan]{summary.output}[/cyan]")
    _finish_report(rpt, report)


@app.command()
def unzip(
    archive: Path = typer.Option(
        ..., "--input", "-i",
        help="Sets the input CmZ file to use.",
    ),
    output: Path = typer.Option(
        ..., "--output", "-o",
        help="Sets the MDL SD filename and path to write.",
    ),
    records: list[str] | None = typer.Option(
        None, "--record", "-r",
        help="Only extract these records, in this order (comma separated, from 0).",
    ),
    keep_going: bool | None = typer.Option(
        None, "--keep-going/--stop-on-error",
        help="Skip records that fail to decode instead of stopping.",
    ),
    report: Path | None = typer.Option(
        None, "--report",
        help="Save report to file (json/md/csv).",
    ),
) -> None:
    """Decompress a CmZ archive into an MDL SD file."""
    effective_keep_going = _settings.keep_going if keep_going is None else keep_going

    rpt = ArchiveReport(
        operation="unzip",
        source_file=str(archive),
        output_file=str(output),
    )

    try:
        requested = parse_record_list(",".join(records)) if records else None
        layout = inspect_archive(archive)
        rpt.records_total = layout.record_count
        rpt.bytes_in = layout.file_size
        rpt.index_size = layout.index_blob_size

        with _progress() as progress:
            task = progress.add_task("Extracting", total=None)
            result = unzip_file(
                archive, output, requested,
                keep_going=effective_keep_going,
                progress=lambda done, total: progress.update(task, completed=done, total=total),
            )
    except CmzError as e:
        rpt.errors.append(str(e))
        _finish_report(rpt, report)
        _fail(str(e), e)

    rpt.records_written = result.records_written
    rpt.bytes_out = result.bytes_written
    rpt.failed_records = result.failed_records
    rpt.errors.extend(f"record {f.record}: {f.reason}" for f in result.failures)

    _print(
        f"Extracted [green]{result.records_written}[/green] records"
        f" ({result.bytes_written} bytes)"
    )
    _print(f"Saved: [cyan]{output}[/cyan]")
    _finish_report(rpt, report)

    if not result.ok:
        failed = ", ".join(str(r) for r in result.failed_records)
        _fail(f"{len(result.failures)} record(s) could not be decoded: {failed}")


@app.command()
def info(
    archive: Path = typer.Argument(..., help="Path to the CmZ archive to inspect."),
    limit: int = typer.Option(
        50, "--limit", "-n",
        help="Show at most this many records (0 for all).",
    ),
) -> None:
    """Show the record layout of a CmZ archive without decompressing records."""
    try:
        details = inspect_archive(archive)
    except CmzError as e:
        _fail(str(e), e)

    console.print(f"Records: [green]{details.record_count}[/green]")
    console.print(f"File size: {details.file_size} bytes")
    console.print(
        f"Index: {details.index_blob_size} bytes at offset {details.index.index_offset}"
    )

    rows = details.records()
    if limit > 0:
        rows = rows[:limit]
    if not rows:
        return

    table = Table(title=f"Records in {archive.name}")
    table.add_column("Record", justify="right")
    table.add_column("Offset", justify="right", style="dim")
    table.add_column("Compressed", justify="right")
    for record, offset, size in rows:
        table.add_row(str(record), str(offset), str(size))
    console.print(table)

    if len(rows) < details.record_count:
        console.print(f"[dim]… {details.record_count - len(rows)} more[/dim]")
