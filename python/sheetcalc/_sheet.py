"""Sheet proxy: ``sheet['A1'] = '=B1+1'`` access over a cell map."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from sheetcalc._cell import Cell, CellMap, CellValueType, set_raw
from sheetcalc._utils import parse_identifier, rowcol_to_a1
from sheetcalc.calc._evaluator import SheetEvaluator
from sheetcalc.calc._protocol import RecalcResult


def _check_ref(key: str) -> str:
    if parse_identifier(key) is None:
        raise ValueError(f"Invalid cell reference: {key!r}")
    return key


class Sheet:
    """Commit path for a caller-owned cell map.

    Every write stores the raw text and re-evaluates the whole map, the
    way an editor commits a cell edit. The map is shared, not copied.
    """

    __slots__ = ("_cells", "_evaluator", "_last_result")

    def __init__(
        self,
        cells: CellMap | None = None,
        evaluator: SheetEvaluator | None = None,
    ) -> None:
        self._cells: CellMap = cells if cells is not None else {}
        self._evaluator = evaluator if evaluator is not None else SheetEvaluator()
        self._last_result: RecalcResult | None = None

    @property
    def cells(self) -> CellMap:
        return self._cells

    @property
    def last_result(self) -> RecalcResult | None:
        """Report from the most recent recalculation, if any."""
        return self._last_result

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def __getitem__(self, key: str) -> CellValueType:
        """``sheet['A1']`` -> display value, ``""`` for an empty cell."""
        cell = self._cells.get(_check_ref(key))
        return cell.value if cell is not None else ""

    def __setitem__(self, key: str, raw: str) -> None:
        """``sheet['A1'] = '42'`` -- store raw text and recalculate."""
        set_raw(self._cells, _check_ref(key), raw)
        self.recalculate()

    def __delitem__(self, key: str) -> None:
        self.delete(key)

    def __contains__(self, key: object) -> bool:
        return key in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def cell(self, key: str) -> Cell | None:
        """The stored Cell for *key*, or None when the cell is empty."""
        return self._cells.get(_check_ref(key))

    def raw(self, key: str) -> str:
        """What the user typed into *key* (``""`` if nothing)."""
        cell = self.cell(key)
        if cell is None or cell.raw is None:
            return ""
        return cell.raw

    def delete(self, key: str) -> None:
        """Remove a cell and recalculate the cells that read it."""
        if self._cells.pop(_check_ref(key), None) is not None:
            self.recalculate()

    def clear(self) -> None:
        self._cells.clear()
        self._last_result = None

    # ------------------------------------------------------------------
    # Bulk writes
    # ------------------------------------------------------------------

    def update(self, entries: Mapping[str, str] | Iterable[tuple[str, str]]) -> RecalcResult:
        """Write many raw texts, then recalculate once."""
        items = entries.items() if isinstance(entries, Mapping) else entries
        pending = [(_check_ref(key), raw) for key, raw in items]
        for key, raw in pending:
            set_raw(self._cells, key, raw)
        return self.recalculate()

    def write_rows(
        self,
        rows: list[list[Any]],
        start_row: int = 1,
        start_col: int = 1,
    ) -> RecalcResult | None:
        """Write a 2D grid of raw texts anchored at 1-based (start_row, start_col).

        ``None`` entries leave the target cell untouched. Recalculates once.
        """
        if not rows:
            return None
        for ri, row in enumerate(rows):
            for ci, raw in enumerate(row):
                if raw is not None:
                    set_raw(self._cells, rowcol_to_a1(start_row + ri, start_col + ci), str(raw))
        return self.recalculate()

    def recalculate(self) -> RecalcResult:
        self._last_result = self._evaluator.recalculate(self._cells)
        return self._last_result

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def _max_row(self) -> int:
        rows = [c.row for c in map(parse_identifier, self._cells) if c is not None]
        return max(rows) + 1 if rows else 0

    def _max_col(self) -> int:
        cols = [c.col for c in map(parse_identifier, self._cells) if c is not None]
        return max(cols) + 1 if cols else 0

    @property
    def dimensions(self) -> tuple[int, int]:
        """(rows, columns) of the smallest A1-anchored block holding every cell."""
        return self._max_row(), self._max_col()

    def iter_rows(
        self,
        min_row: int | None = None,
        max_row: int | None = None,
        min_col: int | None = None,
        max_col: int | None = None,
    ) -> Iterator[tuple[CellValueType, ...]]:
        """Yield display values row by row within 1-based bounds."""
        r_min = min_row or 1
        r_max = max_row or self._max_row()
        c_min = min_col or 1
        c_max = max_col or self._max_col()

        for r in range(r_min, r_max + 1):
            yield tuple(
                self[rowcol_to_a1(r, c)] for c in range(c_min, c_max + 1)
            )

    # ------------------------------------------------------------------
    # Plain-data conversion
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, Any]]:
        """``{"A1": {"raw": "1", "value": 1}, ...}`` for the caller to persist."""
        return {ref: cell.to_dict() for ref, cell in self._cells.items()}

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Mapping[str, Any]],
        evaluator: SheetEvaluator | None = None,
    ) -> Sheet:
        """Rebuild a sheet from plain data and recalculate it."""
        cells: dict[str, Cell] = {
            _check_ref(ref): Cell.from_dict(dict(entry)) for ref, entry in data.items()
        }
        sheet = cls(cells, evaluator)
        sheet.recalculate()
        return sheet

    def __repr__(self) -> str:
        return f"<Sheet cells={len(self._cells)}>"
