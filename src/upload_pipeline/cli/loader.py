from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Optional, Sequence

import psycopg

from upload_pipeline.config import UploadConfig
from upload_pipeline.ingest.readers import UploadError, find_header_row, read_records, write_records
from upload_pipeline.ingest.summary import UploadSummary
from upload_pipeline.parsing.registry import get_handler
from upload_pipeline.parsing.schema import make_header_index
from upload_pipeline.parsing.types import FailureRecord, RejectCode, RowError

logger = logging.getLogger(__name__)


class UploadCancelled(Exception):
    """
    The cancel signal fired (or the timeout expired) mid-file.

    Rows inserted before that stay committed; `summary` counts only the rows that
    were processed, and the failure log for them has been written.
    """

    def __init__(self, summary: UploadSummary) -> None:
        super().__init__(f"upload cancelled after {summary.total} rows")
        self.summary = summary


def failure_log_path(input_path: Path, *, log_dir: Optional[Path] = None) -> Path:
    """Sidecar log for `input_path`: `<stem>.failed.csv`, beside the input unless `log_dir` is set."""
    return (log_dir or input_path.parent) / f"{input_path.stem}.failed.csv"


def _failed(code: RejectCode, reason: str, row: Sequence[str], *, source_row: int) -> FailureRecord:
    """Builds a `FailureRecord` and logs it."""
    logger.warning("row %d rejected: %s", source_row, reason)
    return FailureRecord(reason=reason, raw_row=list(row), source_row=source_row, code=code)


def run_upload(
    conn: Any,
    *,
    source: str,
    report: str,
    input_path: Path,
    config: Optional[UploadConfig] = None,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> UploadSummary:
    """
    End-to-end file upload orchestrator:
      - Resolve the report's handler,
      - Read the file (size-checked) and find its header row within the search window,
      - Index the header once, then for each data row, in file order:
            - validate + build the typed record,
            - insert it (each insert commits on its own),
            - any row-level failure -> a `FailureRecord`, and on to the next row,
      - Write the failure log (reason, then the original cells) and return the counts.

    Raises:
    - `UnknownReport` for an unregistered source/report,
    - `UploadError` (`FileTooLarge`, `FileUnreadable`, `HeaderNotFound`) before any row is processed,
    - `UploadCancelled` once `cancel` is set or `timeout` seconds have passed,
    - `RecordTypeMismatch` (a bug, not data) and infra errors unchanged.
    Will not raise on invalid data (it goes to the failure log instead).
    """
    config = config or UploadConfig()
    handler = get_handler(source, report)
    deadline = time.monotonic() + timeout if timeout is not None else None

    def _expired() -> bool:
        if cancel is not None and cancel.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    logger.info("upload %s/%s from %s", source, report, input_path)

    ## -- file-level: nothing is processed if any of these fail.
    try:
        records = read_records(input_path, max_file_size=config.max_file_size, encoding=config.encoding)
        header_at = find_header_row(records, handler.header(), max_rows=config.header_search_rows)
    except UploadError:
        logger.error("upload %s/%s aborted for %s", source, report, input_path, exc_info=True)
        raise

    header_index = make_header_index(records[header_at])
    data_rows = records[header_at + 1:]

    failures: list[FailureRecord] = []
    inserted = processed = 0
    cancelled = False

    ## -- rows, strictly in file order
    for offset, row in enumerate(data_rows):
        if _expired():
            cancelled = True
            break

        source_row = header_at + 1 + offset
        processed += 1

        try:
            record = handler.build_params(row, header_index, year_pivot=config.two_digit_year_pivot)
        except RowError as e:
            failures.append(_failed(e.code, str(e), row, source_row=source_row))
            continue

        try:
            written = handler.insert(conn, record)
        except psycopg.Error as e:
            # a lost connection is not a row failure
            if getattr(conn, "broken", False) or getattr(conn, "closed", False):
                logger.error("upload %s/%s aborted at row %d: connection lost", source, report, source_row)
                raise
            reason = f"{RejectCode.persistence_error.value}: {e}".strip()
            failures.append(_failed(RejectCode.persistence_error, reason, row, source_row=source_row))
            continue

        if not written:
            reason = f"{RejectCode.duplicate_key.value}: row already exists in {handler.table_name}"
            failures.append(_failed(RejectCode.duplicate_key, reason, row, source_row=source_row))
            continue

        inserted += 1

    ## -- failure log, always written (possibly empty)
    log_path = failure_log_path(input_path, log_dir=config.failure_log_dir)
    write_records(log_path, (f.to_log_row() for f in failures))

    summary = UploadSummary(
        source=source,
        report=report,
        input_path=str(input_path),
        total=processed,
        inserted=inserted,
        failed=len(failures),
        failure_log=log_path,
    )

    if cancelled:
        logger.warning("upload %s/%s cancelled after %d of %d rows", source, report, processed, len(data_rows))
        raise UploadCancelled(summary)

    logger.info("upload %s/%s done: %s", source, report, summary.render_one_line())
    return summary
