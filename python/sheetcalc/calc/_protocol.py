"""CalcEngine protocol and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sheetcalc._cell import CellMap, CellValueType


@dataclass(frozen=True)
class CellDelta:
    """A single formula cell's value change from recalculation."""

    cell_ref: str
    old_value: int | float | str | None
    new_value: int | float | str | None
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Result of a whole-map recalculation."""

    deltas: tuple[CellDelta, ...]  # formula cells that changed
    passes: int = 0
    converged: bool = True  # False when the iteration cap cut evaluation off
    total_formula_cells: int = 0

    @property
    def changed_cells(self) -> tuple[str, ...]:
        return tuple(d.cell_ref for d in self.deltas)

    @property
    def propagation_ratio(self) -> float:
        if self.total_formula_cells == 0:
            return 0.0
        return len(self.deltas) / self.total_formula_cells


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for formula evaluation engines."""

    def evaluate_all(self, cells: CellMap) -> None:
        """Recompute every formula cell in place until values settle."""
        ...

    def evaluate_one(self, cells: CellMap, cell_ref: str) -> CellValueType:
        """Recompute the whole map, then return *cell_ref*'s value."""
        ...

    def recalculate(self, cells: CellMap) -> RecalcResult:
        """Recompute the whole map and report what changed."""
        ...
