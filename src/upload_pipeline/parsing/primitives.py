from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Collection, Sequence

from .types import INVALID, TypedValue


DEFAULT_YEAR_PIVOT = 20     # two-digit years further than this past the current year are 19xx


## -- cell cleaning

_NETSUITE_PREFIX = "netsuite:"
_QUOTES = ("'", '"')


def _clean_once(s: str) -> str:
    """One pass over the export artifacts, in order."""
    s = s.strip()

    # spreadsheet formula wrapper: ="..." keeps the inner text, a bare = is dropped.
    if s.startswith('="') and s.endswith('"') and len(s) >= 3:
        s = s[2:-1]
    elif s.startswith("="):
        s = s[1:]

    # one layer of matching surrounding quotes
    if len(s) >= 2 and s[0] == s[-1] and s[0] in _QUOTES:
        s = s[1:-1]

    if s.startswith(_NETSUITE_PREFIX):
        s = s[len(_NETSUITE_PREFIX):]
    return s


def clean_cell(s: str) -> str:
    """
    Remove spreadsheet/export artifacts from one raw cell:
    - surrounding whitespace,
    - Excel formula wrappers (`="..."` or a leading `=`),
    - one layer of surrounding single or double quotes,
    - a literal `netsuite:` prefix.

    The pass is repeated until the value is stable, so `clean_cell` is idempotent.
    Every pass that changes the value also shortens it.
    """
    while True:
        cleaned = _clean_once(s)
        if cleaned == s:
            return cleaned
        s = cleaned


def clean_header(s: str) -> str:
    """Header cell as a `HeaderIndex` key: cleaned and lower-cased."""
    return clean_cell(s).lower()


def headers_equal(a: Sequence[str], b: Sequence[str]) -> bool:
    """Compare two header rows cell-by-cell, cleaned and case-insensitive."""
    if len(a) != len(b):
        return False
    return all(clean_cell(x).casefold() == clean_cell(y).casefold() for x, y in zip(a, b))



## -- text / str fields

def to_text(s: str) -> TypedValue[str]:
    """Trimmed text, invalid when nothing is left."""
    s = s.strip()
    if s == "":
        return INVALID
    return TypedValue(s, True)


def to_enum(s: str, allowed: Collection[str]) -> TypedValue[str]:
    """Case-insensitive match against `allowed`, returning the declared spelling."""
    s = s.strip()
    if s == "":
        return INVALID
    folded = s.casefold()
    for candidate in allowed:
        if candidate.casefold() == folded:
            return TypedValue(candidate, True)
    return INVALID



## -- dates

_MONTHS: dict[str, int] = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "june": 6, "july": 7,
    "august": 8, "sept": 9, "september": 9, "october": 10, "november": 11, "december": 12,
}

# Priority order matters: the first layout that matches wins.
# `y` is a four digit year, `yy` a two digit year resolved with the pivot rule.
_DATE_LAYOUTS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (name, re.compile(pattern, re.ASCII))
    for name, pattern in (
        ("YYYY-MM-DD", r"(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})"),
        ("YYYY/MM/DD", r"(?P<y>\d{4})/(?P<m>\d{1,2})/(?P<d>\d{1,2})"),
        ("M/D/YYYY", r"(?P<m>\d{1,2})/(?P<d>\d{1,2})/(?P<y>\d{4})"),
        ("M/D/YY", r"(?P<m>\d{1,2})/(?P<d>\d{1,2})/(?P<yy>\d{2})"),
        ("M-D-YYYY", r"(?P<m>\d{1,2})-(?P<d>\d{1,2})-(?P<y>\d{4})"),
        ("M-D-YY", r"(?P<m>\d{1,2})-(?P<d>\d{1,2})-(?P<yy>\d{2})"),
        ("M.D.YYYY", r"(?P<m>\d{1,2})\.(?P<d>\d{1,2})\.(?P<y>\d{4})"),
        ("M.D.YY", r"(?P<m>\d{1,2})\.(?P<d>\d{1,2})\.(?P<yy>\d{2})"),
        ("YYYY.MM.DD", r"(?P<y>\d{4})\.(?P<m>\d{1,2})\.(?P<d>\d{1,2})"),
        ("YYYYMMDD", r"(?P<y>\d{4})(?P<m>\d{2})(?P<d>\d{2})"),
        ("Mon D, YYYY", r"(?P<mon>[A-Za-z]{3,9})\.?\s+(?P<d>\d{1,2}),?\s+(?P<y>\d{4})"),
        ("D Mon YYYY", r"(?P<d>\d{1,2})\s+(?P<mon>[A-Za-z]{3,9})\.?,?\s+(?P<y>\d{4})"),
    )
)


def resolve_two_digit_year(yy: int, *, current_year: int, pivot: int = DEFAULT_YEAR_PIVOT) -> int:
    """
    Pivot rule for two digit years: `2000 + yy`, unless that lands more than
    `pivot` years after `current_year`, then `1900 + yy`.

    With `current_year=2025, pivot=20`: 45 -> 2045, 46 -> 1946.
    """
    year = 2000 + yy
    if year > current_year + pivot:
        year -= 100
    return year


def to_date(
    s: str,
    *,
    pivot: int = DEFAULT_YEAR_PIVOT,
    current_year: int | None = None,
) -> TypedValue[date]:
    """
    Parse a date in any of the supported layouts (see `_DATE_LAYOUTS`).

    Calendar-invalid dates (Feb 30, Apr 31, month 13) are invalid, never rolled forward.
    `current_year` defaults to today's year; pass it to make the pivot deterministic.
    """
    s = s.strip()
    if s == "":
        return INVALID

    for _name, pattern in _DATE_LAYOUTS:
        m = pattern.fullmatch(s)
        if m is None:
            continue
        parts = m.groupdict()

        if parts.get("mon") is not None:
            month = _MONTHS.get(parts["mon"].lower())
            if month is None:
                continue
        else:
            month = int(parts["m"])

        if parts.get("yy") is not None:
            this_year = current_year if current_year is not None else date.today().year
            year = resolve_two_digit_year(int(parts["yy"]), current_year=this_year, pivot=pivot)
        else:
            year = int(parts["y"])

        try:
            return TypedValue(date(year, month, int(parts["d"])), True)
        except ValueError:
            # matched the layout but is not a real calendar date; no later layout can do better.
            return INVALID

    return INVALID



## -- numerics

_CURRENCY_SYMBOLS = str.maketrans("", "", "$€£,")
_DECIMAL_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)", re.ASCII)


def to_numeric(s: str) -> TypedValue[Decimal]:
    """
    Parse a plain decimal amount as exported by finance systems.

    Accepts:
    - currency symbols (`$`, `€`, `£`) and thousands separators, which are dropped,
    - accounting negatives: `(500.00)` -> `-500.00`,
    - a leading `+`.

    Invalid on scientific notation, more than one dot (versions, IPs),
    or any other non-digit content.
    """
    s = s.translate(_CURRENCY_SYMBOLS).strip()
    if s == "":
        return INVALID

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1].strip()
        if s.startswith("-"):
            # "(-5)" has no sensible reading
            return INVALID

    if s.startswith("+"):
        s = s[1:]
        if s.startswith("-"):
            return INVALID

    if not _DECIMAL_RE.fullmatch(s):
        return INVALID

    try:
        d = Decimal(s)
    except InvalidOperation:
        return INVALID
    return TypedValue(-d if negative else d, True)



## -- booleans

_TRUE_STRINGS = {"true", "t", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "0"}


def to_bool(s: str) -> TypedValue[bool]:
    """Case-insensitive yes/no style flags. Anything else (including empty) is invalid."""
    v = s.strip().lower()
    if v in _TRUE_STRINGS:
        return TypedValue(True, True)
    if v in _FALSE_STRINGS:
        return TypedValue(False, True)
    return INVALID
