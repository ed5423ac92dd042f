"""sheetcalc.calc - Formula evaluation engine for sheetcalc cell maps."""

from sheetcalc.calc._errors import (
    FormulaError,
    FormulaEvaluationError,
    FormulaSyntaxError,
    UnknownFunctionError,
)
from sheetcalc.calc._evaluator import SheetEvaluator, evaluate_all, evaluate_one
from sheetcalc.calc._functions import FunctionRegistry
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._parser import all_references, expand_range, parse_formula
from sheetcalc.calc._protocol import CalcEngine, CellDelta, RecalcResult

__all__ = [
    "CalcEngine",
    "CellDelta",
    "DependencyGraph",
    "FormulaError",
    "FormulaEvaluationError",
    "FormulaSyntaxError",
    "FunctionRegistry",
    "RecalcResult",
    "SheetEvaluator",
    "UnknownFunctionError",
    "all_references",
    "evaluate_all",
    "evaluate_one",
    "expand_range",
    "parse_formula",
]
