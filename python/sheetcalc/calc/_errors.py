"""Exceptions raised while parsing or evaluating a single formula.

None of these escape the evaluator: they are caught per formula and the
cell's value degrades to ``""``.
"""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for formula failures."""


class FormulaSyntaxError(FormulaError):
    """The formula text does not match the expression grammar."""

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position


class UnknownFunctionError(FormulaError):
    """The formula calls a function that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unsupported function: {name}")
        self.name = name


class FormulaEvaluationError(FormulaError):
    """Arithmetic or function failure (division by zero, overflow, ...)."""
