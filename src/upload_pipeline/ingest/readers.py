from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, Sequence

from upload_pipeline.config import DEFAULT_ENCODING, DEFAULT_HEADER_SEARCH_ROWS, DEFAULT_MAX_FILE_SIZE
from upload_pipeline.parsing.primitives import headers_equal

logger = logging.getLogger(__name__)


## -- file-level errors: any of these aborts the run before a single row is processed

class UploadError(Exception):
    """Base for file-level failures."""


class FileTooLarge(UploadError):
    """The file is over the configured size ceiling."""


class FileUnreadable(UploadError):
    """The file could not be opened, read or tokenized."""


class HeaderNotFound(UploadError):
    """No row within the search window matches the expected header."""



def read_records(
    path: Path,
    *,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    encoding: str = DEFAULT_ENCODING,
) -> list[list[str]]:
    """
    Read every CSV record of `path` into memory.

    - The size is checked (`stat`) before anything is read.
    - Invalid byte sequences under `encoding` become U+FFFD instead of failing the read
      (legacy Windows-1252 exports, mostly).
    - Rows may be ragged, bare quotes inside fields are tolerated.
    - Blank lines are not records.
    """
    try:
        size = path.stat().st_size
    except OSError as e:
        raise FileUnreadable(f"stat file {path.name!r}: {e}") from e

    if size > max_file_size:
        raise FileTooLarge(
            f"file {path.name!r} exceeds maximum size "
            f"({max_file_size // (1024 * 1024)} MB limit, file is {size // (1024 * 1024)} MB)"
        )

    try:
        data = path.read_bytes()
        text = data.decode(encoding, errors="replace")
    except (OSError, LookupError) as e:
        raise FileUnreadable(f"read file {path.name!r}: {e}") from e

    try:
        reader = csv.reader(io.StringIO(text, newline=""))
        records = [row for row in reader if row]
    except csv.Error as e:
        raise FileUnreadable(f"parse file {path.name!r}: {e}") from e

    logger.debug("read %d records (%d bytes) from %s", len(records), size, path)
    return records


def find_header_row(
    records: Sequence[Sequence[str]],
    expected: Sequence[str],
    *,
    max_rows: int = DEFAULT_HEADER_SEARCH_ROWS,
) -> int:
    """
    Return the 0-based index of the first record matching `expected` (see `headers_equal`).

    Only the first `max_rows` records are considered; some exports put report
    metadata above the real header. Raises `HeaderNotFound` otherwise.
    """
    for i, record in enumerate(records[:max_rows]):
        if headers_equal(record, expected):
            return i
    raise HeaderNotFound(f"header not found within first {max_rows} rows")


def write_records(path: Path, rows: Iterable[Sequence[str]]) -> None:
    """Write `rows` as CSV to `path` (parent dirs are created). Ragged rows are written as-is."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        for row in rows:
            writer.writerow(row)
