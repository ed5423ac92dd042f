"""Cell storage model and the raw-text write path."""

from __future__ import annotations

import math
import re
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Union

CellValueType = Union[int, float, str]

# Decimal literal with optional sign, fraction and exponent. No hex, no Infinity.
_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

# Integral floats above this lose precision when converted to int.
MAX_SAFE_INTEGER = 2**53

# Longer digit strings go through float() so they stay within float range.
_MAX_INT_DIGITS = 15


@dataclass
class Cell:
    """A single stored cell: the user's raw text plus its display value."""

    raw: str | None = None
    value: CellValueType = ""

    @property
    def is_formula(self) -> bool:
        return is_formula(self.raw)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.raw is not None:
            out["raw"] = self.raw
        out["value"] = self.value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cell:
        raw = data.get("raw")
        value = data.get("value")
        if value is None:
            value = ""
        return cls(raw=None if raw is None else str(raw), value=value)


CellMap = MutableMapping[str, Cell]


def is_formula(raw: str | None) -> bool:
    """True when *raw* is formula text (starts with ``=``)."""
    return bool(raw) and raw[0] == "="


def normalize_number(num: int | float) -> int | float:
    """Collapse integral floats to int (``4.0`` -> ``4``)."""
    if isinstance(num, float) and math.isfinite(num) and num.is_integer():
        if abs(num) < MAX_SAFE_INTEGER:
            return int(num)
    return num


def parse_number(text: str | None) -> int | float | None:
    """Parse a numeric literal, or return None when *text* is not a clean number.

    Surrounding whitespace is allowed; blank text is not a number.
    """
    if text is None:
        return None
    stripped = text.strip()
    if not stripped or not _NUMBER_RE.fullmatch(stripped):
        return None
    if re.fullmatch(r"[+-]?\d+", stripped) and len(stripped.lstrip("+-")) <= _MAX_INT_DIGITS:
        return int(stripped)
    num = float(stripped)
    if not math.isfinite(num):
        return None
    return normalize_number(num)


def literal_value(raw: str | None) -> CellValueType:
    """Display value of non-formula text: the number it spells, else the text."""
    num = parse_number(raw)
    if num is not None:
        return num
    return raw if raw is not None else ""


def numeric_value(value: Any) -> int | float:
    """Coerce a stored value for arithmetic. Text and empty values count as 0."""
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        num = parse_number(value)
        return num if num is not None else 0
    return 0


def set_raw(cells: CellMap, ref: str, text: str | None) -> None:
    """Record user input for *ref* and derive its provisional display value.

    Formulas get ``""`` as a placeholder; run the evaluator afterwards to
    fill in their computed values. Formula syntax is not checked here.
    """
    raw = "" if text is None else str(text)
    cell = cells.get(ref)
    if cell is None:
        cell = Cell()
        cells[ref] = cell
    cell.raw = raw
    if is_formula(raw):
        cell.value = ""
    else:
        cell.value = literal_value(raw)
