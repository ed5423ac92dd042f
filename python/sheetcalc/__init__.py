"""sheetcalc - formula evaluation for sparse A1-addressed cell maps.

Usage::

    from sheetcalc import Sheet, evaluate_all, set_raw

    # Functional API over a plain dict
    cells = {}
    set_raw(cells, "A1", "10")
    set_raw(cells, "A2", "5")
    set_raw(cells, "B1", "=SUM(A1:A2)*2")
    evaluate_all(cells)
    print(cells["B1"].value)  # 30

    # Commit-style wrapper
    sheet = Sheet(cells)
    sheet["A1"] = "20"
    print(sheet["B1"])  # 50
"""

from sheetcalc._cell import Cell, is_formula, numeric_value, parse_number, set_raw
from sheetcalc._sheet import Sheet
from sheetcalc._utils import (
    CellCoordinate,
    column_name_to_index,
    index_to_column_name,
    make_identifier,
    parse_identifier,
)
from sheetcalc.calc import (
    FunctionRegistry,
    RecalcResult,
    SheetEvaluator,
    evaluate_all,
    evaluate_one,
    expand_range,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Cell",
    "CellCoordinate",
    "FunctionRegistry",
    "RecalcResult",
    "Sheet",
    "SheetEvaluator",
    "column_name_to_index",
    "evaluate_all",
    "evaluate_one",
    "expand_range",
    "index_to_column_name",
    "is_formula",
    "make_identifier",
    "numeric_value",
    "parse_identifier",
    "parse_number",
    "set_raw",
]
