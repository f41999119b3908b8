"""Enum initializer constant folding with C integer semantics."""

from __future__ import annotations

import logging
from typing import Callable

from .errors import ConstantExpressionError
from . import constants

logger = logging.getLogger(__name__)

_SIMPLE_ESCAPES: dict[str, int] = {
    "n": 10,
    "t": 9,
    "r": 13,
    "0": 0,
    "a": 7,
    "b": 8,
    "f": 12,
    "v": 11,
    "\\": 92,
    "'": 39,
    '"': 34,
    "?": 63,
}


def parse_c_integer(spelling: str, default: int | None = None) -> int:
    """Parse a C integer literal (decimal, hex, octal or binary, any suffix).

    With *default* given, malformed input yields *default* instead of raising.
    """
    text = spelling.strip().rstrip(constants.INTEGER_SUFFIX_CHARS).replace("'", "")
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    lowered = text.lower()
    try:
        if lowered.startswith("0x"):
            return sign * int(text[2:], 16)
        if lowered.startswith("0b"):
            return sign * int(text[2:], 2)
        if len(text) > 1 and text.startswith("0"):
            return sign * int(text[1:], 8)
        return sign * int(text, 10)
    except ValueError:
        if default is not None:
            return default
        raise ConstantExpressionError(f"Malformed integer literal {spelling}") from None


def parse_char_literal(spelling: str) -> int:
    body = spelling[spelling.index("'") + 1 : spelling.rindex("'")]
    if not body.startswith("\\"):
        if len(body) != 1:
            raise ConstantExpressionError(f"Malformed character literal {spelling}")
        return ord(body)
    escape = body[1:]
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if escape.startswith("x"):
        return int(escape[1:], 16)
    if escape.isdigit():
        return int(escape, 8)
    raise ConstantExpressionError(f"Unsupported escape in character literal {spelling}")


def _c_div(val1: int, val2: int) -> int:
    quotient = abs(val1) // abs(val2)
    return quotient if (val1 < 0) == (val2 < 0) else -quotient


def arithmetic_expression(val1: int, op: str, val2: int) -> int:
    """Apply a binary operator the way a C compiler folds ``int`` constants."""
    if op in ("/", "%") and val2 == 0:
        raise ConstantExpressionError(f"Division by zero in {val1} {op} {val2}")
    if op == "^":
        return val1 ^ val2
    if op == "|":
        return val1 | val2
    if op == "&":
        return val1 & val2
    if op == "+":
        return val1 + val2
    if op == "-":
        return val1 - val2
    if op == "*":
        return val1 * val2
    if op == "/":
        return _c_div(val1, val2)
    if op == "%":
        return val1 - val2 * _c_div(val1, val2)
    if op == "<<":
        return val1 << val2
    if op == ">>":
        return val1 >> val2
    raise ConstantExpressionError(f"Unknown arithmetic expression {op}")


class ConstantFolder:
    """Evaluates an enumerator's initializer subtree to an integer.

    *lookup* resolves a symbolic reference to the value of an already
    registered enum constant (and raises when there is none).
    """

    def __init__(self, source: bytes, lookup: Callable[[str], int]):
        self._source = source
        self._lookup = lookup
        self._DISPATCH: dict[str, Callable] = {
            "number_literal": self._fold_integer,
            "char_literal": self._fold_char,
            "identifier": self._fold_reference,
            "parenthesized_expression": self._fold_paren,
            "unary_expression": self._fold_unary,
            "binary_expression": self._fold_binary,
        }

    def _node_text(self, node) -> str:
        text = self._source[node.start_byte : node.end_byte]
        return text.decode(constants.SOURCE_ENCODING, constants.SOURCE_ERRORS)

    def evaluate(self, node) -> int:
        handler = self._DISPATCH.get(node.type)
        if handler is None:
            raise ConstantExpressionError(
                f"Unsupported constant expression {node.type}: {self._node_text(node)}"
            )
        return handler(node)

    def _fold_integer(self, node) -> int:
        return parse_c_integer(self._node_text(node))

    def _fold_char(self, node) -> int:
        return parse_char_literal(self._node_text(node))

    def _fold_reference(self, node) -> int:
        return self._lookup(self._node_text(node))

    def _fold_paren(self, node) -> int:
        inner = [c for c in node.named_children if c.type != "comment"]
        if len(inner) != 1:
            raise ConstantExpressionError(
                f"Unexpected arity in {self._node_text(node)}"
            )
        return self.evaluate(inner[0])

    def _fold_unary(self, node) -> int:
        op_node = node.child_by_field_name("operator")
        arg_node = node.child_by_field_name("argument")
        op = self._node_text(op_node) if op_node else ""
        if arg_node is None or op not in constants.UNARY_OPERATORS:
            raise ConstantExpressionError(
                f"Unknown unary expression {op or self._node_text(node)}"
            )
        value = self.evaluate(arg_node)
        if op == "-":
            return -value
        if op == "~":
            return ~value
        return value

    def _fold_binary(self, node) -> int:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        op_node = node.child_by_field_name("operator")
        if left is None or right is None or op_node is None:
            raise ConstantExpressionError(
                f"Unexpected arity in {self._node_text(node)}"
            )
        op = self._node_text(op_node)
        if op not in constants.BINARY_OPERATORS:
            raise ConstantExpressionError(f"Unknown arithmetic expression {op}")
        result = arithmetic_expression(self.evaluate(left), op, self.evaluate(right))
        logger.debug("Folded %s = %d", self._node_text(node), result)
        return result
