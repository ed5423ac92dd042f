"""Tests for sheetcalc.calc dependency graph, ordering and cycle search."""

from __future__ import annotations

from sheetcalc._cell import Cell
from sheetcalc.calc._graph import DependencyGraph


class TestAddFormula:
    def test_simple_dependency(self) -> None:
        g = DependencyGraph()
        g.add_formula("B1", "=A1+1")
        assert "A1" in g.dependencies["B1"]
        assert "B1" in g.dependents["A1"]

    def test_range_dependency(self) -> None:
        g = DependencyGraph()
        g.add_formula("A4", "=SUM(A1:A3)")
        assert g.dependencies["A4"] == {"A1", "A2", "A3"}

    def test_unparseable_formula_has_no_dependencies(self) -> None:
        g = DependencyGraph()
        g.add_formula("A1", "=B1+")
        assert g.dependencies["A1"] == set()
        assert g.formulas["A1"] == "=B1+"

    def test_readding_replaces_edges(self) -> None:
        g = DependencyGraph()
        g.add_formula("B1", "=A1")
        g.add_formula("B1", "=C1")
        assert g.dependencies["B1"] == {"C1"}
        assert "A1" not in g.dependents
        assert g.dependents["C1"] == {"B1"}

    def test_remove_formula(self) -> None:
        g = DependencyGraph()
        g.add_formula("B1", "=A1")
        g.remove_formula("B1")
        assert g.formulas == {}
        assert g.dependents == {}


class TestOrdering:
    def test_empty(self) -> None:
        g = DependencyGraph()
        assert g.evaluation_order() == []

    def test_linear_chain_added_backwards(self) -> None:
        g = DependencyGraph()
        g.add_formula("C1", "=B1+1")
        g.add_formula("B1", "=A1+1")
        assert g.evaluation_order() == ["B1", "C1"]

    def test_diamond(self) -> None:
        g = DependencyGraph()
        g.add_formula("D1", "=B1+C1")
        g.add_formula("B1", "=A1+1")
        g.add_formula("C1", "=A1*2")
        order = g.evaluation_order()
        assert order.index("B1") < order.index("D1")
        assert order.index("C1") < order.index("D1")

    def test_independent_cells_keep_insertion_order(self) -> None:
        g = DependencyGraph()
        g.add_formula("Z9", "=1")
        g.add_formula("A1", "=2")
        assert g.evaluation_order() == ["Z9", "A1"]

    def test_evaluation_order_never_raises(self) -> None:
        g = DependencyGraph()
        g.add_formula("C1", "=A1+1")
        g.add_formula("A1", "=B1+1")
        g.add_formula("B1", "=A1+1")
        g.add_formula("D1", "=5")
        assert g.evaluation_order() == ["D1", "C1", "A1", "B1"]


class TestCircularReferences:
    def test_none(self) -> None:
        g = DependencyGraph()
        g.add_formula("B1", "=A1")
        g.add_formula("C1", "=B1")
        assert g.circular_references() == []

    def test_two_cell_cycle(self) -> None:
        g = DependencyGraph()
        g.add_formula("A1", "=B1+1")
        g.add_formula("B1", "=A1+1")
        assert g.circular_references() == [["A1", "B1"]]

    def test_self_reference(self) -> None:
        g = DependencyGraph()
        g.add_formula("A1", "=A1+1")
        assert g.circular_references() == [["A1"]]

    def test_downstream_cell_not_in_cycle(self) -> None:
        g = DependencyGraph()
        g.add_formula("A1", "=B1")
        g.add_formula("B1", "=C1")
        g.add_formula("C1", "=A1")
        g.add_formula("D1", "=C1*2")
        g.add_formula("E1", "=E1")
        assert g.circular_references() == [["A1", "B1", "C1"], ["E1"]]

    def test_range_cycle(self) -> None:
        g = DependencyGraph()
        g.add_formula("A3", "=SUM(A1:A3)")
        assert g.circular_references() == [["A3"]]

    def test_long_chain_does_not_recurse(self) -> None:
        g = DependencyGraph()
        for i in range(2, 5002):
            g.add_formula(f"A{i}", f"=A{i - 1}+1")
        assert g.circular_references() == []
        assert len(g.evaluation_order()) == 5000

