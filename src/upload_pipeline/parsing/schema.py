from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Callable, Collection, Optional, Sequence

from .primitives import (
    DEFAULT_YEAR_PIVOT,
    clean_cell,
    clean_header,
    to_bool,
    to_date,
    to_enum,
    to_numeric,
    to_text,
)
from .types import HeaderIndex, RejectCode, RowError, ValidatedRow

# Typing:
# Normalizer canonicalizes a cleaned value before it is checked or coerced.
Normalizer = Callable[[str], str]


class FieldKind(str, Enum):
    """Expected data type of a CSV column."""
    text = "text"
    enum = "enum"
    date = "date"
    numeric = "numeric"
    boolean = "boolean"


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Any given column's configurable expectations."""
    name: str                                   # header cell, exactly as exported (matched after cleaning).
    kind: FieldKind = FieldKind.text            # how the value will be coerced.
    required: bool = True                       # whether the column and a value must exist.
    allow_empty: bool = False                   # a required column may still carry empty values.
    enum_values: frozenset[str] = field(default_factory=frozenset)   # only for `FieldKind.enum`.
    normalizer: Optional[Normalizer] = None     # applied after cleaning, before any type check.


Schema = tuple[FieldSpec, ...]


def make_schema(*specs: FieldSpec) -> Schema:
    """Build a `Schema`, refusing duplicate names (after header cleaning)."""
    seen: set[str] = set()
    for s in specs:
        key = clean_header(s.name)
        if key in seen:
            raise ValueError(f"duplicate field name in schema: {s.name!r}")
        if s.kind is FieldKind.enum and not s.enum_values:
            raise ValueError(f"enum field {s.name!r} declares no enum_values")
        seen.add(key)
    return tuple(specs)


def field_names(schema: Schema) -> list[str]:
    """Expected header row, in declared order."""
    return [s.name for s in schema]


@dataclass(frozen=True, slots=True)
class TypedRow:
    """
    Typed, nullable accessors over a `ValidatedRow`, for the row-builders.

    Each accessor returns `None` where the coercer reports an invalid value
    (empty optional fields, mostly: unparseable ones never get past `validate_row`).
    """
    values: ValidatedRow
    year_pivot: int = DEFAULT_YEAR_PIVOT

    def raw(self, name: str) -> str:
        return self.values.get(name, "")

    def text(self, name: str) -> Optional[str]:
        return to_text(self.raw(name)).or_none()

    def date(self, name: str) -> Optional[date]:
        return to_date(self.raw(name), pivot=self.year_pivot).or_none()

    def numeric(self, name: str) -> Optional[Decimal]:
        return to_numeric(self.raw(name)).or_none()

    def boolean(self, name: str) -> Optional[bool]:
        return to_bool(self.raw(name)).or_none()

    def enum(self, name: str, allowed: Collection[str]) -> Optional[str]:
        """The declared spelling from `allowed`, not the cell's."""
        return to_enum(self.raw(name), allowed).or_none()



## -- header indexing

def make_header_index(header: Sequence[str]) -> HeaderIndex:
    """
    Map each cleaned, lower-cased header cell to its position.

    Built once per file and shared by every row of it.
    If two cells normalize to the same key, the later one wins.
    """
    return {clean_header(cell): i for i, cell in enumerate(header)}



## -- row validation

def _is_parseable(spec: FieldSpec, value: str, *, year_pivot: int) -> bool:
    """Whether a non-empty value coerces under its field kind."""
    if spec.kind is FieldKind.date:
        return to_date(value, pivot=year_pivot).valid
    if spec.kind is FieldKind.numeric:
        return to_numeric(value).valid
    if spec.kind is FieldKind.boolean:
        return to_bool(value).valid
    if spec.kind is FieldKind.enum:
        return to_enum(value, spec.enum_values).valid
    return True


def validate_row(
    row: Sequence[str],
    header_index: HeaderIndex,
    schema: Schema,
    *,
    year_pivot: int = DEFAULT_YEAR_PIVOT,
) -> ValidatedRow:
    """
    Validate one raw row against `schema` and return cleaned values by field name.

    Fail-fast, in `schema` order. Raises `RowError` on the first of:
    - `missing_required_column`: a required field's column is not in the header,
    - `missing_required_value`: a required field is empty (unless `allow_empty`),
    - `unparseable_value`: a non-empty value does not coerce under its field kind.

    Short rows are padded with empty cells. Optional fields whose column is absent read as `""`.
    """
    out: ValidatedRow = {}
    for spec in schema:
        pos = header_index.get(clean_header(spec.name))
        if pos is None:
            if spec.required:
                raise RowError(RejectCode.missing_required_column, f"{spec.name}: column not found in header")
            out[spec.name] = ""
            continue

        # trailing columns are often truncated by exporters
        value = clean_cell(row[pos]) if pos < len(row) else ""
        if spec.normalizer is not None:
            value = spec.normalizer(value)

        if value == "":
            if spec.required and not spec.allow_empty:
                raise RowError(RejectCode.missing_required_value, f"{spec.name}: missing required value")
            out[spec.name] = value
            continue

        if not _is_parseable(spec, value, year_pivot=year_pivot):
            raise RowError(
                RejectCode.unparseable_value,
                f"{spec.name}: invalid {spec.kind.value} value {value!r}",
            )
        out[spec.name] = value

    return out
