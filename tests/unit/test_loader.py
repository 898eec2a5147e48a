from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import psycopg
import pytest

from upload_pipeline.cli.loader import UploadCancelled, failure_log_path, run_upload
from upload_pipeline.config import UploadConfig
from upload_pipeline.ingest.readers import FileTooLarge, HeaderNotFound
from upload_pipeline.parsing.registry import UnknownReport, get_handler


HEADER = get_handler("Anrok", "Transactions").header()

BASE = {
    "Transaction ID": "txn_001",
    "Customer ID": "cus_42",
    "Customer name": "Acme Corp",
    "Overall VAT ID validation status": "notRequired",
    "Valid VAT IDs": "",
    "Other VAT IDs": "",
    "Invoice date": "2024-04-01",
    "Tax date": "2024-04-01",
    "Transaction currency": "USD",
    "Sales amount": "1000.00",
    "Exempt reasons": "",
    "Tax amount": "80.00",
    "Invoice amount": "1080.00",
    "Void": "false",
    "Customer address line 1": "1 Main St",
    "Customer address city": "Austin",
    "Customer address region": "TX",
    "Customer address postal code": "78701",
    "Customer address country": "United States",
    "Customer country code": "US",
    "Jurisdictions": "TX",
    "Jurisdictions IDs": "48",
    "Return IDs": "ret_9",
}


def _row(**overrides: str) -> list[str]:
    values = {**BASE, **overrides}
    return [values[c] for c in HEADER]


class FakeCursor:
    """Identity cursor: `on_execute` decides what each insert does."""
    def __init__(self, conn: "FakeConn") -> None:
        self.conn = conn
        self.rowcount = 0

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, query: Any, params: tuple[Any, ...]) -> None:
        self.rowcount = self.conn.on_execute(params)
        self.conn.executed.append(params)


class FakeConn:
    """Stands in for a psycopg connection; nothing touches Postgres."""
    def __init__(self, on_execute: Optional[Callable[[tuple[Any, ...]], int]] = None) -> None:
        self.on_execute = on_execute or (lambda params: 1)
        self.executed: list[tuple[Any, ...]] = []

    @contextmanager
    def transaction(self) -> Iterator[None]:
        yield

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


def test_failure_log_path_defaults_beside_input(tmp_path: Path) -> None:
    assert failure_log_path(tmp_path / "q1.csv") == tmp_path / "q1.failed.csv"
    assert failure_log_path(tmp_path / "q1.csv", log_dir=tmp_path / "logs") == tmp_path / "logs" / "q1.failed.csv"


def test_upload_good_and_bad_row(write_csv, read_csv) -> None:
    """One good row is inserted, the bad one lands in the failure log with its reason."""
    path = write_csv("anrok.csv", [HEADER, _row(), _row(**{"Transaction ID": "txn_002", "Sales amount": "not-a-number"})])
    conn = FakeConn()

    summary = run_upload(conn, source="Anrok", report="Transactions", input_path=path)

    assert (summary.total, summary.inserted, summary.failed) == (2, 1, 1)
    assert len(conn.executed) == 1
    assert summary.failure_log == path.with_name("anrok.failed.csv")

    (failed,) = read_csv(summary.failure_log)
    assert failed[0].startswith("unparseable_value: Sales amount")
    assert failed[1:] == _row(**{"Transaction ID": "txn_002", "Sales amount": "not-a-number"})


def test_upload_finds_header_below_metadata_rows(write_csv, read_csv) -> None:
    path = write_csv("anrok.csv", [["Anrok export"], ["Generated 2024-05-01"], HEADER, _row()])
    summary = run_upload(FakeConn(), source="Anrok", report="Transactions", input_path=path)
    assert (summary.total, summary.inserted, summary.failed) == (1, 1, 0)
    assert read_csv(summary.failure_log) == []


def test_upload_keeps_row_order(write_csv) -> None:
    rows = [_row(**{"Transaction ID": f"txn_{i}"}) for i in range(5)]
    conn = FakeConn()
    run_upload(conn, source="Anrok", report="Transactions", input_path=write_csv("a.csv", [HEADER, *rows]))
    assert [p[0] for p in conn.executed] == [f"txn_{i}" for i in range(5)]


def test_upload_duplicate_and_db_errors_are_row_failures(write_csv, read_csv) -> None:
    """A conflict (nothing written) and a DB error each fail only their row."""
    def on_execute(params: tuple[Any, ...]) -> int:
        if params[0] == "dup":
            return 0
        if params[0] == "boom":
            raise psycopg.Error("value too long for type character varying(10)")
        return 1

    path = write_csv(
        "a.csv",
        [HEADER, _row(**{"Transaction ID": "dup"}), _row(**{"Transaction ID": "boom"}), _row()],
    )
    summary = run_upload(FakeConn(on_execute), source="Anrok", report="Transactions", input_path=path)

    assert (summary.total, summary.inserted, summary.failed) == (3, 1, 2)
    reasons = [r[0] for r in read_csv(summary.failure_log)]
    assert reasons[0].startswith("duplicate_key")
    assert reasons[1].startswith("persistence_error")
    assert "value too long" in reasons[1]


def test_upload_header_not_found(write_csv) -> None:
    """File-level failure: nothing is inserted, nothing is logged."""
    path = write_csv("a.csv", [["wrong", "header"], _row()])
    conn = FakeConn()
    with pytest.raises(HeaderNotFound):
        run_upload(conn, source="Anrok", report="Transactions", input_path=path)
    assert conn.executed == []
    assert not failure_log_path(path).exists()


def test_upload_file_too_large(write_csv) -> None:
    path = write_csv("a.csv", [HEADER, _row()])
    with pytest.raises(FileTooLarge):
        run_upload(
            FakeConn(),
            source="Anrok",
            report="Transactions",
            input_path=path,
            config=UploadConfig(max_file_size=16),
        )


def test_upload_unknown_report(write_csv) -> None:
    with pytest.raises(UnknownReport):
        run_upload(FakeConn(), source="Anrok", report="Refunds", input_path=write_csv("a.csv", [HEADER]))


def test_upload_failure_log_dir_from_config(write_csv, tmp_path: Path) -> None:
    path = write_csv("a.csv", [HEADER, _row(Void="maybe")])
    summary = run_upload(
        FakeConn(),
        source="Anrok",
        report="Transactions",
        input_path=path,
        config=UploadConfig(failure_log_dir=tmp_path / "failures"),
    )
    assert summary.failure_log == tmp_path / "failures" / "a.failed.csv"
    assert summary.failure_log.exists()


def test_upload_cancel_mid_file_keeps_committed_rows(write_csv, read_csv) -> None:
    """Rows after the cancel are abandoned; the partial summary rides on the exception."""
    cancel = threading.Event()

    def on_execute(params: tuple[Any, ...]) -> int:
        cancel.set()
        return 1

    rows = [_row(**{"Transaction ID": f"txn_{i}"}) for i in range(3)]
    path = write_csv("a.csv", [HEADER, *rows])
    conn = FakeConn(on_execute)

    with pytest.raises(UploadCancelled) as e:
        run_upload(conn, source="Anrok", report="Transactions", input_path=path, cancel=cancel)

    summary = e.value.summary
    assert (summary.total, summary.inserted, summary.failed) == (1, 1, 0)
    assert len(conn.executed) == 1
    assert read_csv(summary.failure_log) == []


def test_upload_zero_timeout_processes_nothing(write_csv) -> None:
    path = write_csv("a.csv", [HEADER, _row()])
    conn = FakeConn()
    with pytest.raises(UploadCancelled) as e:
        run_upload(conn, source="Anrok", report="Transactions", input_path=path, timeout=0)
    assert e.value.summary.total == 0
    assert conn.executed == []


class LostConn(FakeConn):
    """The server went away: every transaction fails and the connection reports itself broken."""
    broken = True
    closed = True

    @contextmanager
    def transaction(self) -> Iterator[None]:
        raise psycopg.OperationalError("the connection is lost")
        yield


def test_upload_lost_connection_aborts_the_run(write_csv) -> None:
    """A dead connection propagates instead of failing every remaining row."""
    rows = [_row(**{"Transaction ID": f"txn_{i}"}) for i in range(3)]
    path = write_csv("a.csv", [HEADER, *rows])

    with pytest.raises(psycopg.OperationalError, match="connection is lost"):
        run_upload(LostConn(), source="Anrok", report="Transactions", input_path=path)
    assert not failure_log_path(path).exists()
