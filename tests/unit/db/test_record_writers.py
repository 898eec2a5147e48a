from __future__ import annotations

from contextlib import contextmanager
from dataclasses import fields
from datetime import date
from decimal import Decimal
from typing import Any, Iterator

from upload_pipeline.db.record_writers import TABLE_SPECS, insert_record
from upload_pipeline.parsing.profiles.anrok import AnrokTransaction


def test_table_specs_columns_follow_record_fields() -> None:
    """No drift between the records and the column lists used for SQL generation."""
    for name, spec in TABLE_SPECS.items():
        assert spec.table_name == name
        assert spec.columns == tuple(f.name for f in fields(spec.record_type))
        assert len(spec.columns) >= 1


class FakeCursor:
    """Identity cursor, records what was executed."""
    def __init__(self, rowcount: int) -> None:
        self.rowcount = rowcount
        self.executed: list[tuple[Any, tuple[Any, ...]]] = []

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def execute(self, query: Any, params: tuple[Any, ...]) -> None:
        self.executed.append((query, params))


class FakeConn:
    def __init__(self, rowcount: int) -> None:
        self.cur = FakeCursor(rowcount)
        self.transactions = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self.transactions += 1
        yield

    def cursor(self) -> FakeCursor:
        return self.cur


def _txn() -> AnrokTransaction:
    values: dict[str, Any] = {f.name: None for f in fields(AnrokTransaction)}
    values.update(transaction_id="txn_1", sales_amount=Decimal("10"), invoice_date=date(2024, 1, 1))
    return AnrokTransaction(**values)


def test_insert_record_params_in_column_order() -> None:
    conn = FakeConn(rowcount=1)
    rec = _txn()
    assert insert_record(conn, rec, table_name="anrok_transactions") is True

    assert conn.transactions == 1
    (_, params), = conn.cur.executed
    cols = TABLE_SPECS["anrok_transactions"].columns
    assert params == tuple(getattr(rec, c) for c in cols)


def test_insert_record_conflict_returns_false() -> None:
    """`ON CONFLICT DO NOTHING` writes nothing -> `False`."""
    assert insert_record(FakeConn(rowcount=0), _txn(), table_name="anrok_transactions") is False
