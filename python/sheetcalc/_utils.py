"""A1 reference codec: column letters, cell identifiers and coordinates."""

from __future__ import annotations

import re
from typing import NamedTuple

_IDENTIFIER_RE = re.compile(r"^([A-Z]+)(\d+)$")


class CellCoordinate(NamedTuple):
    """0-based position of a cell."""

    row: int
    col: int


def column_name_to_index(name: str) -> int:
    """Convert column letters (A, ..., Z, AA, ...) to a 0-based index.

    Bijective base-26: A=1 ... Z=26, no zero digit.
    """
    col = 0
    for ch in name:
        col = col * 26 + (ord(ch) - 64)
    return col - 1


def index_to_column_name(index: int) -> str:
    """Convert a 0-based column index to letters. Inverse of column_name_to_index."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative: {index}")
    letters: list[str] = []
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(65 + rem))
    return "".join(reversed(letters))


def parse_identifier(text: str) -> CellCoordinate | None:
    """Parse ``"B3"`` into ``CellCoordinate(row=2, col=1)``.

    Returns None for anything that is not an uppercase A1 identifier,
    including row ``0``.
    """
    if not isinstance(text, str):
        return None
    m = _IDENTIFIER_RE.match(text)
    if not m:
        return None
    row = int(m.group(2))
    if row < 1:
        return None
    return CellCoordinate(row=row - 1, col=column_name_to_index(m.group(1)))


def make_identifier(row: int, col: int) -> str:
    """Build ``<letters><row+1>`` from 0-based coordinates."""
    if row < 0:
        raise ValueError(f"Row index must be non-negative: {row}")
    return f"{index_to_column_name(col)}{row + 1}"


def rowcol_to_a1(row: int, col: int) -> str:
    """Convert 1-based ``(row, col)`` to ``"A1"``."""
    if row < 1 or col < 1:
        raise ValueError(f"Row and column are 1-based: ({row}, {col})")
    return make_identifier(row - 1, col - 1)
