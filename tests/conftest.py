from __future__ import annotations

import csv
from pathlib import Path
from typing import Callable, Sequence

import pytest


def _find_repo_root(start: Path) -> Path:
    marker = "pyproject.toml"
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / marker).exists():
            return p
    raise RuntimeError(f"Could not find repo root from: {start}")


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """The absolute path to the repo root (finds by walking up to `pyproject.toml`)."""
    # walking starts from the callers location (`tests/conftest.py`)
    return _find_repo_root(Path(__file__))


WriteCsv = Callable[[str, Sequence[Sequence[str]]], Path]


@pytest.fixture()
def write_csv(tmp_path: Path) -> WriteCsv:
    """Write rows as a CSV file under `tmp_path` and return its path."""
    def _write(name: str, rows: Sequence[Sequence[str]]) -> Path:
        path = tmp_path / name
        with path.open("w", encoding="utf-8", newline="") as f:
            csv.writer(f).writerows(rows)
        return path

    return _write


@pytest.fixture()
def read_csv() -> Callable[[Path], list[list[str]]]:
    """Read back a CSV written by the pipeline (the failure log, mostly)."""
    def _read(path: Path) -> list[list[str]]:
        with path.open(encoding="utf-8", newline="") as f:
            return list(csv.reader(f))

    return _read
