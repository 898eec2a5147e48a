from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")

# Typing:
# HeaderIndex maps a cleaned, lower-cased header cell to its column position.
# ValidatedRow maps a `FieldSpec.name` to its cleaned (not yet coerced) value.
HeaderIndex = dict[str, int]
ValidatedRow = dict[str, str]


class RejectCode(str, Enum):
    """Typed rejection classifications for a single row."""
    missing_required_column = "missing_required_column"
    missing_required_value = "missing_required_value"
    unparseable_value = "unparseable_value"
    persistence_error = "persistence_error"
    duplicate_key = "duplicate_key"


@dataclass(frozen=True, slots=True)
class RowError(Exception):
    """A row-level failure. Caught per row by the orchestrator, never past it."""
    code: RejectCode            # classifies the rejection.
    detail: str                 # human readable message, names the field.

    def __str__(self) -> str:
        return f"{self.code.value}: {self.detail}"


@dataclass(frozen=True)
class TypedValue(Generic[T]):
    """
    A coerced cell. `valid` is `False` for absent, empty or unparseable input,
    in which case `value` carries no meaning.
    """
    value: T | None
    valid: bool

    def or_none(self) -> T | None:
        """The value when valid, `None` (NULL) otherwise."""
        return self.value if self.valid else None


INVALID: TypedValue = TypedValue(None, False)


@dataclass(frozen=True, slots=True)
class FailureRecord:
    """A rejected row's contents, destined for the failure log."""
    reason: str
    raw_row: Sequence[str]      # the raw unmutated cells, ragged rows kept as-is.
    source_row: int             # 0-based record index within the file
    code: RejectCode

    def to_log_row(self) -> list[str]:
        """Failure log layout: the reason first, then the original cells."""
        return [self.reason, *self.raw_row]
