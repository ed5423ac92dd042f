"""Function registry and builtin implementations for formula evaluation.

Functions receive a list of already-evaluated arguments. A scalar argument
is an ``int``/``float``; a range argument is a ``list`` of numbers, one per
cell in row-major order. Only ``SUM`` is built in; other functions must be
registered explicitly.
"""

from __future__ import annotations

from typing import Any, Callable

FunctionImpl = Callable[[list[Any]], Any]


def _coerce_numeric(values: list[Any]) -> list[float | int]:
    """Flatten range arguments and keep numeric values.

    Booleans and non-numeric leftovers are skipped.
    """
    result: list[float | int] = []
    for v in values:
        if isinstance(v, (list, tuple)):
            result.extend(_coerce_numeric(list(v)))
        elif isinstance(v, bool):
            continue
        elif isinstance(v, (int, float)):
            result.append(v)
    return result


def _builtin_sum(args: list[Any]) -> float | int:
    return sum(_coerce_numeric(args))


_BUILTINS: dict[str, FunctionImpl] = {
    "SUM": _builtin_sum,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions.
    """

    def __init__(self) -> None:
        self._functions: dict[str, FunctionImpl] = dict(_BUILTINS)

    def register(self, name: str, func: FunctionImpl) -> None:
        if not name or not callable(func):
            raise ValueError(f"Invalid function registration: {name!r}")
        self._functions[name.upper()] = func

    def unregister(self, name: str) -> None:
        self._functions.pop(name.upper(), None)

    def get(self, name: str) -> FunctionImpl | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())

