"""Shared test fixtures for cmzip tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from cmzip.core.writer import write_archive


def make_sd_record(name: str, atoms: int = 3, props: dict[str, str] | None = None) -> bytes:
    """Build a small but realistic MDL SD file record ending in $$$$."""
    lines = [
        name,
        "  cmzip-test 3D",
        "",
        f"{atoms:3d}{atoms - 1:3d}  0  0  0  0  0  0  0  0999 V2000",
    ]
    for i in range(atoms):
        lines.append(
            f"{i * 1.2:10.4f}{i * 0.7:10.4f}{0.0:10.4f} C   0  0  0  0  0  0  0  0  0  0  0  0"
        )
    for i in range(1, atoms):
        lines.append(f"{i:3d}{i + 1:3d}  1  0")
    lines.append("M  END")
    for key, value in (props or {"Name": name}).items():
        lines.extend([f">  <{key}>", value, ""])
    lines.append("$$$$")
    return ("\n".join(lines) + "\n").encode("ascii")


def make_sd_file(names: list[str]) -> bytes:
    return b"".join(make_sd_record(n, atoms=3 + i) for i, n in enumerate(names))


def build_archive(data: bytes, level: int = 6, **kwargs) -> bytes:
    """Compress SD bytes into archive bytes in memory."""
    sink = io.BytesIO()
    write_archive(io.BytesIO(data), sink, level, **kwargs)
    return sink.getvalue()


@pytest.fixture
def three_records() -> list[bytes]:
    """Records A, B and C."""
    return [
        make_sd_record("ligand_A", atoms=4),
        make_sd_record("ligand_B", atoms=6, props={"Score": "-7.42"}),
        make_sd_record("ligand_C", atoms=9),
    ]


@pytest.fixture
def sd_file(tmp_path: Path, three_records: list[bytes]) -> Path:
    path = tmp_path / "ligands.sdf"
    path.write_bytes(b"".join(three_records))
    return path


@pytest.fixture
def archive_bytes(three_records: list[bytes]) -> bytes:
    return build_archive(b"".join(three_records))


@pytest.fixture
def archive_file(tmp_path: Path, archive_bytes: bytes) -> Path:
    path = tmp_path / "ligands.cmz"
    path.write_bytes(archive_bytes)
    return path
