"""Formula parser: tokenizer, recursive descent AST builder, range expansion.

Grammar (lowest to highest precedence)::

    expr    := term (("+" | "-") term)*
    term    := unary (("*" | "/") unary)*
    unary   := ("+" | "-") unary | primary
    primary := NUMBER
             | REF [":" REF]
             | NAME "(" [expr ("," expr)*] ")"
             | "(" expr ")"

Cell references are uppercase and case-sensitive; function names are not.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from typing import NamedTuple, Union

from sheetcalc._cell import parse_number
from sheetcalc._utils import make_identifier, parse_identifier
from sheetcalc.calc._errors import FormulaSyntaxError

# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def iter_range(start: str, end: str) -> Iterator[str]:
    """Yield the identifiers inside the rectangle ``start:end`` in row-major order.

    Corners may be given in any orientation. Yields nothing if either corner
    is not a valid identifier.
    """
    a = parse_identifier(start)
    b = parse_identifier(end)
    if a is None or b is None:
        return
    r_min, r_max = min(a.row, b.row), max(a.row, b.row)
    c_min, c_max = min(a.col, b.col), max(a.col, b.col)
    for r in range(r_min, r_max + 1):
        for c in range(c_min, c_max + 1):
            yield make_identifier(r, c)


def expand_range(start: str, end: str | None = None) -> list[str]:
    """Expand ``"A1:B2"`` (or ``("A1", "B2")``) into ``["A1", "B1", "A2", "B2"]``.

    Returns an empty list for malformed input rather than raising.
    """
    if end is None:
        parts = start.split(":")
        if len(parts) != 2:
            return []
        start, end = parts[0].strip(), parts[1].strip()
    return list(iter_range(start, end))


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class CellRef:
    ref: str


@dataclass(frozen=True)
class RangeRef:
    start: str
    end: str

    def cells(self) -> list[str]:
        return expand_range(self.start, self.end)


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


@dataclass(frozen=True)
class FunctionCall:
    name: str  # upper-cased
    args: tuple[Node, ...]


Node = Union[Number, CellRef, RangeRef, UnaryOp, BinaryOp, FunctionCall]


def walk(node: Node) -> Iterator[Node]:
    """Depth-first, left-to-right traversal of an expression tree."""
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, UnaryOp):
            stack.append(current.operand)
        elif isinstance(current, BinaryOp):
            stack.append(current.right)
            stack.append(current.left)
        elif isinstance(current, FunctionCall):
            stack.extend(reversed(current.args))


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_.]*)
    |(?P<op>[-+*/(),:])
    """,
    re.VERBOSE,
)


class Token(NamedTuple):
    kind: str  # "number", "name", "op" or "end"
    text: str
    pos: int


def tokenize(expr: str) -> list[Token]:
    """Split an expression (no leading ``=``) into tokens, ending with an ``end`` token."""
    tokens: list[Token] = []
    pos = 0
    length = len(expr)
    while pos < length:
        m = _TOKEN_RE.match(expr, pos)
        if m is None:
            raise FormulaSyntaxError(f"Unexpected character {expr[pos]!r}", pos)
        kind = m.lastgroup
        if kind != "ws":
            tokens.append(Token(kind, m.group(), pos))
        pos = m.end()
    tokens.append(Token("end", "", length))
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    __slots__ = ("_tokens", "_index")

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._index = 0

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _next(self) -> Token:
        tok = self._tokens[self._index]
        if tok.kind != "end":
            self._index += 1
        return tok

    def _at_op(self, *ops: str) -> bool:
        tok = self._peek()
        return tok.kind == "op" and tok.text in ops

    def _expect_op(self, op: str) -> Token:
        tok = self._next()
        if tok.kind != "op" or tok.text != op:
            found = tok.text or "end of formula"
            raise FormulaSyntaxError(f"Expected {op!r}, found {found!r}", tok.pos)
        return tok

    def parse(self) -> Node:
        if self._peek().kind == "end":
            raise FormulaSyntaxError("Empty formula", 0)
        node = self._expr()
        tok = self._peek()
        if tok.kind != "end":
            raise FormulaSyntaxError(f"Unexpected {tok.text!r}", tok.pos)
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self._at_op("+", "-"):
            op = self._next().text
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while self._at_op("*", "/"):
            op = self._next().text
            node = BinaryOp(op, node, self._unary())
        return node

    def _unary(self) -> Node:
        if self._at_op("+", "-"):
            op = self._next().text
            return UnaryOp(op, self._unary())
        return self._primary()

    def _primary(self) -> Node:
        tok = self._next()
        if tok.kind == "number":
            return Number(_number_literal(tok))
        if tok.kind == "name":
            if self._at_op("("):
                return self._call(tok)
            return self._reference(tok)
        if tok.kind == "op" and tok.text == "(":
            node = self._expr()
            self._expect_op(")")
            return node
        found = tok.text or "end of formula"
        raise FormulaSyntaxError(f"Unexpected {found!r}", tok.pos)

    def _call(self, name_tok: Token) -> FunctionCall:
        self._expect_op("(")
        args: list[Node] = []
        if not self._at_op(")"):
            args.append(self._expr())
            while self._at_op(","):
                self._next()
                args.append(self._expr())
        self._expect_op(")")
        return FunctionCall(name_tok.text.upper(), tuple(args))

    def _reference(self, tok: Token) -> Node:
        if parse_identifier(tok.text) is None:
            raise FormulaSyntaxError(f"Not a cell reference: {tok.text!r}", tok.pos)
        if not self._at_op(":"):
            return CellRef(tok.text)
        self._next()
        end = self._next()
        if end.kind != "name" or parse_identifier(end.text) is None:
            raise FormulaSyntaxError("Range end must be a cell reference", end.pos)
        return RangeRef(tok.text, end.text)


def _number_literal(tok: Token) -> int | float:
    num = parse_number(tok.text)
    if num is None:
        raise FormulaSyntaxError(f"Number out of range: {tok.text[:20]!r}", tok.pos)
    return num


def parse_expression(expr: str) -> Node:
    """Parse an expression body (no leading ``=``) into an AST."""
    try:
        return _Parser(tokenize(expr)).parse()
    except RecursionError as e:
        raise FormulaSyntaxError("Formula nested too deeply") from e


def parse_formula(formula: str) -> Node:
    """Parse formula text. A single leading ``=`` is optional."""
    body = formula[1:] if formula.startswith("=") else formula
    return parse_expression(body)


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def references_of(tree: Node) -> list[str]:
    """Every identifier an expression reads, ranges expanded, without duplicates."""
    refs: list[str] = []
    seen: set[str] = set()
    for node in walk(tree):
        if isinstance(node, CellRef):
            cells = [node.ref]
        elif isinstance(node, RangeRef):
            cells = node.cells()
        else:
            continue
        for ref in cells:
            if ref not in seen:
                refs.append(ref)
                seen.add(ref)
    return refs


def all_references(formula: str) -> list[str]:
    """All cell references (single + range-expanded) a formula reads."""
    try:
        tree = parse_formula(formula)
    except FormulaSyntaxError:
        return []
    return references_of(tree)
