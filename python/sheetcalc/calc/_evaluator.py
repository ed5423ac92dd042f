"""SheetEvaluator: fixed-point recalculation of a cell map.

Each formula is parsed once into an AST (see :mod:`sheetcalc.calc._parser`)
and evaluated against the current values of the map. Formula cells are
recomputed in whole-map passes until a pass changes nothing or the
iteration cap is reached, so chains and cycles never hang the caller.
A failing formula shows ``""`` and never stops the other cells.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from sheetcalc._cell import (
    MAX_SAFE_INTEGER,
    CellMap,
    CellValueType,
    is_formula,
    literal_value,
    normalize_number,
    numeric_value,
)
from sheetcalc.calc._errors import (
    FormulaError,
    FormulaEvaluationError,
    UnknownFunctionError,
)
from sheetcalc.calc._functions import FunctionRegistry
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._parser import (
    BinaryOp,
    CellRef,
    FunctionCall,
    Node,
    Number,
    RangeRef,
    UnaryOp,
    parse_formula,
)
from sheetcalc.calc._protocol import CellDelta, RecalcResult

logger = logging.getLogger(__name__)

DEFAULT_MIN_ITERATIONS = 10
DEFAULT_ITERATIONS_PER_CELL = 2


def _values_differ(a: Any, b: Any) -> bool:
    """``2`` and ``"2"`` differ; so do ``2`` and ``2.5``."""
    return type(a) is not type(b) or a != b


def _bounded(num: int | float) -> int | float:
    """Keep arithmetic in float range, the way spreadsheet numbers behave.

    Integers past 2**53 continue as floats; anything non-finite fails the formula.
    """
    if isinstance(num, int) and abs(num) >= MAX_SAFE_INTEGER:
        try:
            num = float(num)
        except OverflowError as e:
            raise FormulaEvaluationError("Numeric overflow") from e
    if isinstance(num, float) and not math.isfinite(num):
        raise FormulaEvaluationError(f"Non-finite result: {num}")
    return num


def _binary_op(op: str, left: Any, right: Any) -> int | float:
    lhs = numeric_value(left)
    rhs = numeric_value(right)
    try:
        if op == "+":
            return _bounded(lhs + rhs)
        if op == "-":
            return _bounded(lhs - rhs)
        if op == "*":
            return _bounded(lhs * rhs)
        if op == "/":
            if rhs == 0:
                raise FormulaEvaluationError("Division by zero")
            return _bounded(lhs / rhs)
    except OverflowError as e:
        raise FormulaEvaluationError(f"Numeric overflow in {op!r}") from e
    raise FormulaEvaluationError(f"Unknown operator {op!r}")


def _range_sum(values: list[int | float]) -> int | float:
    try:
        return _bounded(sum(values))
    except OverflowError as e:
        raise FormulaEvaluationError("Numeric overflow in range sum") from e


def _finish(result: Any) -> CellValueType:
    """Turn an expression result into a storable cell value."""
    if result is None:
        return ""
    if isinstance(result, bool):
        return int(result)
    if isinstance(result, (int, float)):
        return normalize_number(_bounded(result))
    if isinstance(result, str):
        return result
    return str(result)


class SheetEvaluator:
    """Evaluates every formula in a cell map, in place.

    Usage::

        evaluator = SheetEvaluator()
        set_raw(cells, "B1", "=A1*2")
        evaluator.evaluate_all(cells)
        result = evaluator.recalculate(cells)  # same work, with a report
    """

    def __init__(
        self,
        functions: FunctionRegistry | None = None,
        min_iterations: int = DEFAULT_MIN_ITERATIONS,
        iterations_per_cell: int = DEFAULT_ITERATIONS_PER_CELL,
    ) -> None:
        if min_iterations < 1:
            raise ValueError("min_iterations must be at least 1")
        if iterations_per_cell < 0:
            raise ValueError("iterations_per_cell must be non-negative")
        self.functions = functions if functions is not None else FunctionRegistry()
        self.min_iterations = min_iterations
        self.iterations_per_cell = iterations_per_cell
        self._compiled_cache: dict[str, Node] = {}  # formula -> AST

    def max_iterations(self, cells: CellMap) -> int:
        """Pass budget for *cells*: enough for a chain through every cell."""
        return max(self.min_iterations, self.iterations_per_cell * len(cells))

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def evaluate_all(self, cells: CellMap) -> None:
        """Recompute all formula cells until stable, then refresh literal cells."""
        self.recalculate(cells)

    def evaluate_one(self, cells: CellMap, cell_ref: str) -> CellValueType:
        """Recompute the whole map and return *cell_ref*'s value.

        A single formula may read other formulas, so this is never a
        partial evaluation.
        """
        self.recalculate(cells)
        cell = cells.get(cell_ref)
        return cell.value if cell is not None else ""

    def recalculate(self, cells: CellMap) -> RecalcResult:
        """Run the fixed-point passes and report which formula cells changed."""
        graph = DependencyGraph.from_cells(cells)
        order = graph.evaluation_order()
        old_values = {ref: cells[ref].value for ref in order}

        passes = 0
        converged = True
        if order:
            converged = False
            for _ in range(self.max_iterations(cells)):
                passes += 1
                if not self._run_pass(cells, order):
                    converged = True
                    break
            if not converged:
                logger.debug(
                    "Stopped after %d passes without converging (%d formula cells, cycles: %s)",
                    passes, len(order), graph.circular_references(),
                )

        for cell in cells.values():
            if not is_formula(cell.raw):
                cell.value = literal_value(cell.raw)

        deltas: list[CellDelta] = []
        for ref in order:
            old_val = old_values[ref]
            new_val = cells[ref].value
            if _values_differ(old_val, new_val):
                deltas.append(CellDelta(
                    cell_ref=ref,
                    old_value=old_val,
                    new_value=new_val,
                    formula=graph.formulas.get(ref),
                ))

        return RecalcResult(
            deltas=tuple(deltas),
            passes=passes,
            converged=converged,
            total_formula_cells=len(order),
        )

    def _run_pass(self, cells: CellMap, order: list[str]) -> bool:
        """One sweep over the formula cells. Returns True if any value changed."""
        any_change = False
        for ref in order:
            cell = cells[ref]
            new_value = self.evaluate_formula(cells, ref, cell.raw or "")
            if _values_differ(cell.value, new_value):
                cell.value = new_value
                any_change = True
        return any_change

    # ------------------------------------------------------------------
    # Formula evaluation
    # ------------------------------------------------------------------

    def compile(self, formula: str) -> Node:
        """Parse *formula* (cached). Raises FormulaSyntaxError."""
        tree = self._compiled_cache.get(formula)
        if tree is None:
            tree = parse_formula(formula)
            self._compiled_cache[formula] = tree
        return tree

    def evaluate_formula(self, cells: CellMap, cell_ref: str, formula: str) -> CellValueType:
        """Evaluate one formula against the current map; ``""`` on any failure."""
        try:
            return _finish(self._eval(self.compile(formula), cells))
        except FormulaError as e:
            logger.debug("Cannot evaluate formula %r in %s: %s", formula, cell_ref, e)
            return ""
        except RecursionError:
            logger.debug("Formula %r in %s nested too deeply", formula, cell_ref)
            return ""

    def _eval(self, node: Node, cells: CellMap) -> Any:
        if isinstance(node, Number):
            return node.value
        if isinstance(node, CellRef):
            return self._resolve_cell(node.ref, cells)
        if isinstance(node, RangeRef):
            # A bare range in arithmetic stands for the sum of its cells.
            return _range_sum(self._resolve_range(node, cells))
        if isinstance(node, UnaryOp):
            operand = numeric_value(self._eval(node.operand, cells))
            return _bounded(-operand if node.op == "-" else operand)
        if isinstance(node, BinaryOp):
            # Walk the left spine in a loop; long "A1+A2+...+An" chains are left-deep.
            spine: list[BinaryOp] = []
            while isinstance(node, BinaryOp):
                spine.append(node)
                node = node.left
            acc = self._eval(node, cells)
            for op_node in reversed(spine):
                acc = _binary_op(op_node.op, acc, self._eval(op_node.right, cells))
            return acc
        if isinstance(node, FunctionCall):
            return self._eval_function(node, cells)
        raise FormulaEvaluationError(f"Unknown expression node {node!r}")

    def _resolve_cell(self, ref: str, cells: CellMap) -> int | float:
        cell = cells.get(ref)
        return _bounded(numeric_value(cell.value if cell is not None else None))

    def _resolve_range(self, node: RangeRef, cells: CellMap) -> list[int | float]:
        return [self._resolve_cell(ref, cells) for ref in node.cells()]

    def _eval_function(self, node: FunctionCall, cells: CellMap) -> Any:
        func = self.functions.get(node.name)
        if func is None:
            raise UnknownFunctionError(node.name)
        args: list[Any] = []
        for arg in node.args:
            if isinstance(arg, RangeRef):
                args.append(self._resolve_range(arg, cells))
            else:
                args.append(self._eval(arg, cells))
        try:
            return func(args)
        except FormulaError:
            raise
        except Exception as e:
            raise FormulaEvaluationError(f"Error evaluating {node.name}: {e}") from e


def evaluate_all(cells: CellMap) -> None:
    """Recompute every formula in *cells* in place with default settings."""
    SheetEvaluator().evaluate_all(cells)


def evaluate_one(cells: CellMap, cell_ref: str) -> CellValueType:
    """Recompute *cells* and return the value of *cell_ref*."""
    return SheetEvaluator().evaluate_one(cells, cell_ref)
