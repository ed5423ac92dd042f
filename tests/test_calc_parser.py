"""Tests for sheetcalc.calc formula parser and reference extraction."""

from __future__ import annotations

import pytest
from sheetcalc.calc._errors import FormulaSyntaxError
from sheetcalc.calc._parser import (
    BinaryOp,
    CellRef,
    FunctionCall,
    Number,
    RangeRef,
    UnaryOp,
    all_references,
    expand_range,
    iter_range,
    parse_formula,
    tokenize,
)


class TestExpandRange:
    def test_single_cell(self) -> None:
        assert expand_range("B2", "B2") == ["B2"]

    def test_square(self) -> None:
        assert set(expand_range("A1", "B2")) == {"A1", "A2", "B1", "B2"}
        assert len(expand_range("A1", "B2")) == 4

    def test_reversed_corners(self) -> None:
        assert expand_range("B2", "A1") == expand_range("A1", "B2")
        assert expand_range("A2", "B1") == expand_range("A1", "B2")

    def test_row_major_order(self) -> None:
        assert expand_range("A1", "B2") == ["A1", "B1", "A2", "B2"]

    def test_colon_string(self) -> None:
        assert expand_range("A1:A3") == ["A1", "A2", "A3"]

    def test_column_boundary(self) -> None:
        assert expand_range("Y1", "AB1") == ["Y1", "Z1", "AA1", "AB1"]

    @pytest.mark.parametrize(
        ("start", "end"), [("A1", "nope"), ("x", "B2"), ("A0", "A2"), ("", "")],
    )
    def test_malformed_is_empty(self, start: str, end: str) -> None:
        assert expand_range(start, end) == []

    def test_malformed_colon_string(self) -> None:
        assert expand_range("A1") == []
        assert expand_range("A1:B2:C3") == []

    def test_iter_range_is_lazy(self) -> None:
        it = iter_range("A1", "ZZ100000")
        assert next(it) == "A1"
        assert next(it) == "B1"


class TestTokenize:
    def test_kinds(self) -> None:
        tokens = tokenize("SUM(A1:B2) * 2.5")
        assert [t.kind for t in tokens] == [
            "name", "op", "name", "op", "name", "op", "op", "number", "end",
        ]
        assert tokens[-2].text == "2.5"

    def test_positions(self) -> None:
        tokens = tokenize("A1 + 3")
        assert [t.pos for t in tokens] == [0, 3, 5, 6]

    def test_bad_character(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="position 2"):
            tokenize("1 & 2")


class TestParseFormula:
    def test_number(self) -> None:
        assert parse_formula("=42") == Number(42)
        assert parse_formula("=1.5e2") == Number(150.0)

    def test_precedence(self) -> None:
        assert parse_formula("=1+2*3") == BinaryOp(
            "+", Number(1), BinaryOp("*", Number(2), Number(3)),
        )

    def test_left_associative(self) -> None:
        assert parse_formula("=8-4-2") == BinaryOp(
            "-", BinaryOp("-", Number(8), Number(4)), Number(2),
        )

    def test_parentheses(self) -> None:
        assert parse_formula("=(1+2)*3") == BinaryOp(
            "*", BinaryOp("+", Number(1), Number(2)), Number(3),
        )

    def test_unary(self) -> None:
        assert parse_formula("=-A1") == UnaryOp("-", CellRef("A1"))
        assert parse_formula("=--1") == UnaryOp("-", UnaryOp("-", Number(1)))

    def test_range(self) -> None:
        assert parse_formula("=A1:B3") == RangeRef("A1", "B3")

    def test_function_case_insensitive(self) -> None:
        assert parse_formula("=sum(A1:A3, B1)") == FunctionCall(
            "SUM", (RangeRef("A1", "A3"), CellRef("B1")),
        )

    def test_function_no_args(self) -> None:
        assert parse_formula("=NOW()") == FunctionCall("NOW", ())

    def test_nested_function(self) -> None:
        tree = parse_formula("=SUM(A1, SUM(B1:B2)) / 2")
        assert isinstance(tree, BinaryOp)
        assert tree.left == FunctionCall(
            "SUM", (CellRef("A1"), FunctionCall("SUM", (RangeRef("B1", "B2"),))),
        )

    def test_leading_equals_optional(self) -> None:
        assert parse_formula("A1+1") == parse_formula("=A1+1")

    @pytest.mark.parametrize(
        "formula",
        ["=", "=   ", "=1+", "=(1", "=1)", "=a1", "=A0", "=FOO", "=A1:", "=A1:5",
         "=SUM(A1,)", "=1 2", "=*3", "=A1:B2:C3"],
    )
    def test_syntax_errors(self, formula: str) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_formula(formula)

    def test_long_number_literal_becomes_float(self) -> None:
        assert parse_formula("=12345678901234567890") == Number(1.2345678901234567e19)

    def test_out_of_range_number_literal(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="out of range"):
            parse_formula("=" + "1" * 5000)
        with pytest.raises(FormulaSyntaxError):
            parse_formula("=1e999")

    def test_long_sum_chain_is_left_deep(self) -> None:
        tree = parse_formula("=" + "+".join(["A1"] * 1500))
        depth = 0
        while isinstance(tree, BinaryOp):
            assert tree.right == CellRef("A1")
            tree = tree.left
            depth += 1
        assert depth == 1499


class TestReferenceExtraction:
    def test_all_references_expands_ranges(self) -> None:
        assert all_references("=SUM(A1:A3)+A2+B1") == ["A1", "A2", "A3", "B1"]

    def test_unparseable_has_no_references(self) -> None:
        assert all_references("=A1+") == []
        assert all_references("=((") == []
