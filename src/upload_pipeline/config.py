from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from upload_pipeline.parsing.primitives import DEFAULT_YEAR_PIVOT


DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024      # 100 MB, checked before any read
DEFAULT_HEADER_SEARCH_ROWS = 20                 # metadata rows some exports put above the header
DEFAULT_ENCODING = "utf-8-sig"                  # drops the BOM Excel likes to write


@dataclass(frozen=True)
class UploadConfig:
    """
    Process-wide tunables for one upload run.

    Passed explicitly to the orchestrator; nothing here is global or mutable.
    """
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    header_search_rows: int = DEFAULT_HEADER_SEARCH_ROWS
    two_digit_year_pivot: int = DEFAULT_YEAR_PIVOT
    encoding: str = DEFAULT_ENCODING
    failure_log_dir: Optional[Path] = None      # `None` writes the log beside the input file
    statement_timeout_ms: Optional[int] = None  # per statement bound for inserts (Postgres `statement_timeout`)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Read an integer env var. Raises `ValueError` naming the variable on bad input."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_config(env_file: Optional[Path] = None) -> UploadConfig:
    """
    Build an `UploadConfig` from the environment.

    A `.env` file is loaded first (if present); variables already set in the
    process environment win over it.

    - `UPLOAD_MAX_FILE_SIZE` bytes
    - `UPLOAD_HEADER_SEARCH_ROWS`
    - `UPLOAD_YEAR_PIVOT`
    - `UPLOAD_ENCODING`
    - `UPLOAD_FAILURE_LOG_DIR`
    - `UPLOAD_STATEMENT_TIMEOUT_MS`
    """
    load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True), override=False)

    log_dir = os.getenv("UPLOAD_FAILURE_LOG_DIR")

    return UploadConfig(
        max_file_size=_env_int("UPLOAD_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        header_search_rows=_env_int("UPLOAD_HEADER_SEARCH_ROWS", DEFAULT_HEADER_SEARCH_ROWS),
        two_digit_year_pivot=_env_int("UPLOAD_YEAR_PIVOT", DEFAULT_YEAR_PIVOT),
        encoding=os.getenv("UPLOAD_ENCODING") or DEFAULT_ENCODING,
        failure_log_dir=Path(log_dir) if log_dir else None,
        statement_timeout_ms=_env_int("UPLOAD_STATEMENT_TIMEOUT_MS", None),
    )
