"""Dependency graph for formula cells with evaluation ordering and cycle search."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from sheetcalc._cell import is_formula
from sheetcalc.calc._parser import all_references

if TYPE_CHECKING:
    from sheetcalc._cell import Cell


class DependencyGraph:
    """Tracks which cells each formula reads, and the reverse edges.

    Formula cells keep the order in which they were added; that order breaks
    ties everywhere an ordering is returned.
    """

    __slots__ = ("dependencies", "dependents", "formulas")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[str, set[str]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[str, set[str]] = {}
        # cell -> formula string, in insertion order
        self.formulas: dict[str, str] = {}

    def add_formula(self, cell_ref: str, formula: str) -> None:
        """Register a formula cell and its dependencies."""
        if cell_ref in self.formulas:
            self.remove_formula(cell_ref)
        self.formulas[cell_ref] = formula
        refs = all_references(formula)
        self.dependencies[cell_ref] = set(refs)
        for ref in refs:
            self.dependents.setdefault(ref, set()).add(cell_ref)

    def remove_formula(self, cell_ref: str) -> None:
        self.formulas.pop(cell_ref, None)
        for ref in self.dependencies.pop(cell_ref, set()):
            readers = self.dependents.get(ref)
            if readers is not None:
                readers.discard(cell_ref)
                if not readers:
                    del self.dependents[ref]

    def _formula_precedents(self, cell_ref: str) -> set[str]:
        return {d for d in self.dependencies.get(cell_ref, ()) if d in self.formulas}

    def _positions(self) -> dict[str, int]:
        return {ref: i for i, ref in enumerate(self.formulas)}

    @staticmethod
    def _sorted(cells: Iterable[str], position: dict[str, int]) -> list[str]:
        return sorted(cells, key=lambda ref: position.get(ref, len(position)))

    def _kahn(self) -> tuple[list[str], list[str]]:
        """Return (acyclic order, cells left over because of cycles)."""
        position = self._positions()
        in_degree = {cell: len(self._formula_precedents(cell)) for cell in self.formulas}
        queue: deque[str] = deque(cell for cell in self.formulas if in_degree[cell] == 0)

        order: list[str] = []
        while queue:
            cell = queue.popleft()
            order.append(cell)
            for dep in self._sorted(self.dependents.get(cell, ()), position):
                if dep in in_degree:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        queue.append(dep)

        done = set(order)
        leftover = [cell for cell in self.formulas if cell not in done]
        return order, leftover

    def evaluation_order(self) -> list[str]:
        """Formula cells in dependency order (Kahn's algorithm). Never raises.

        Cells on a cycle, or downstream of one, follow the acyclic part in
        insertion order.
        """
        order, leftover = self._kahn()
        return order + leftover

    def circular_references(self) -> list[list[str]]:
        """Strongly connected components that form cycles (Tarjan).

        Includes single cells that read themselves. Each component is in
        insertion order; components are ordered by their first cell.
        """
        index: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        components: list[list[str]] = []
        counter = 0
        position = self._positions()

        for root in self.formulas:
            if root in index:
                continue
            # Iterative DFS: (node, iterator over its formula precedents)
            index[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            precedents = self._sorted(self._formula_precedents(root), position)
            work = [(root, iter(precedents))]
            while work:
                node, children = work[-1]
                child = next(children, None)
                if child is not None:
                    if child not in index:
                        index[child] = lowlink[child] = counter
                        counter += 1
                        stack.append(child)
                        on_stack.add(child)
                        precedents = self._sorted(self._formula_precedents(child), position)
                        work.append((child, iter(precedents)))
                    elif child in on_stack:
                        lowlink[node] = min(lowlink[node], index[child])
                    continue
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index[node]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    if len(component) > 1 or node in self.dependencies.get(node, ()):
                        components.append(self._sorted(component, position))

        components.sort(key=lambda comp: position[comp[0]])
        return components

    @classmethod
    def from_cells(cls, cells: Mapping[str, Cell]) -> DependencyGraph:
        """Build a dependency graph from every formula cell in a cell map."""
        graph = cls()
        for ref, cell in cells.items():
            if is_formula(cell.raw):
                graph.add_formula(ref, cell.raw)
        return graph
