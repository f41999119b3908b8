"""Tests for enum initializer constant folding."""

from __future__ import annotations

import pytest

from decompound.constant_folder import (
    arithmetic_expression,
    parse_c_integer,
    parse_char_literal,
)
from decompound.errors import ConstantExpressionError


class TestParseCInteger:
    @pytest.mark.parametrize(
        "spelling, expected",
        [
            ("0", 0),
            ("42", 42),
            ("42u", 42),
            ("7UL", 7),
            ("0x1F", 31),
            ("010", 8),
            ("0b101", 5),
        ],
    )
    def test_literal_forms(self, spelling, expected):
        assert parse_c_integer(spelling) == expected

    def test_malformed_raises(self):
        with pytest.raises(ConstantExpressionError, match="abc"):
            parse_c_integer("abc")

    def test_malformed_with_default(self):
        assert parse_c_integer("SIZE", default=0) == 0


class TestParseCharLiteral:
    def test_plain(self):
        assert parse_char_literal("'a'") == 97

    def test_simple_escape(self):
        assert parse_char_literal("'\\n'") == 10

    def test_hex_escape(self):
        assert parse_char_literal("'\\x41'") == 65

    def test_octal_escape(self):
        assert parse_char_literal("'\\101'") == 65


class TestArithmeticExpression:
    def test_bitwise(self):
        assert arithmetic_expression(6, "^", 3) == 5
        assert arithmetic_expression(4, "|", 1) == 5
        assert arithmetic_expression(6, "&", 3) == 2

    def test_additive_and_multiplicative(self):
        assert arithmetic_expression(2, "+", 3) == 5
        assert arithmetic_expression(2, "-", 3) == -1
        assert arithmetic_expression(2, "*", 3) == 6

    def test_division_truncates_toward_zero(self):
        assert arithmetic_expression(7, "/", 2) == 3
        assert arithmetic_expression(-7, "/", 2) == -3

    def test_modulo_takes_dividend_sign(self):
        assert arithmetic_expression(-7, "%", 2) == -1
        assert arithmetic_expression(7, "%", -2) == 1

    def test_shifts(self):
        assert arithmetic_expression(1, "<<", 4) == 16
        assert arithmetic_expression(16, ">>", 2) == 4

    def test_division_by_zero_raises(self):
        with pytest.raises(ConstantExpressionError, match="Division by zero"):
            arithmetic_expression(1, "/", 0)

    def test_modulo_by_zero_raises(self):
        with pytest.raises(ConstantExpressionError):
            arithmetic_expression(1, "%", 0)

    def test_unknown_operator_raises(self):
        with pytest.raises(ConstantExpressionError, match="&&"):
            arithmetic_expression(1, "&&", 1)
