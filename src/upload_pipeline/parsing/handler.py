from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol, Sequence, TypeVar

from .primitives import DEFAULT_YEAR_PIVOT
from .schema import Schema, TypedRow, field_names, validate_row
from .types import HeaderIndex

R = TypeVar("R")

# Typing:
# BuildFn turns a validated row into the report's record.
# InsertFn persists one record through a connection-like context, `True` when written.
BuildFn = Callable[[TypedRow], R]
InsertFn = Callable[[Any, R], bool]


class RecordTypeMismatch(TypeError):
    """A record reached a handler that does not own its type. Always a bug, never data."""


class UploadHandler(Protocol):
    """What the orchestrator needs from a report: its header, a row-builder and an inserter."""
    table_name: str

    def header(self) -> list[str]: ...

    def build_params(self, row: Sequence[str], header_index: HeaderIndex, *, year_pivot: int = ...) -> Any: ...

    def insert(self, conn: Any, record: Any) -> bool: ...


@dataclass(frozen=True)
class CsvHandler(Generic[R]):
    """
    Binds a report's schema, row-builder and inserter into one unit.

    `record_type` is what `build` produces and the only type `insert` accepts.
    """
    schema: Schema
    record_type: type[R]
    build: BuildFn[R]
    insert_fn: InsertFn[R]
    table_name: str             # persistence target, informational (the inserter is already bound to it)

    def header(self) -> list[str]:
        """Expected header row, drives header discovery."""
        return field_names(self.schema)

    def build_params(
        self,
        row: Sequence[str],
        header_index: HeaderIndex,
        *,
        year_pivot: int = DEFAULT_YEAR_PIVOT,
    ) -> R:
        """Validate `row` against the schema, then build the record. Raises `RowError`."""
        values = validate_row(row, header_index, self.schema, year_pivot=year_pivot)
        return self.build(TypedRow(values, year_pivot=year_pivot))

    def insert(self, conn: Any, record: Any) -> bool:
        """
        Persist one record. Raises `RecordTypeMismatch` (before touching `conn`)
        when `record` is not this handler's `record_type`.
        """
        if not isinstance(record, self.record_type):
            raise RecordTypeMismatch(
                f"{self.table_name}: expected {self.record_type.__name__}, got {type(record).__name__}"
            )
        return self.insert_fn(conn, record)
