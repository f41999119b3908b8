"""Tests for the token index and the declarator suffix scanner."""

from __future__ import annotations

import pytest

from decompound.api import parse_source
from decompound.errors import TokenNotFoundError, TokenRangeError
from decompound.node_kinds import walk
from decompound.tokens import scan_declarator


class TestTokenIndex:
    def test_tokens_in_source_order(self):
        unit = parse_source("int x = 10;")
        assert unit.tokens.spellings() == ["int", "x", "=", "10", ";"]

    def test_token_positions_are_one_based_lines(self):
        unit = parse_source("int a;\n  int b;\n")
        tok = unit.tokens[unit.tokens.find("b")]
        assert tok.location.start_line == 2
        assert tok.location.start_col == 6

    def test_comments_are_tokens(self):
        unit = parse_source("/* hi */ int x;")
        assert unit.tokens.spelling(0) == "/* hi */"

    def test_find_returns_first_match(self):
        unit = parse_source("int a = a + a;")
        assert unit.tokens.find("a") == 1

    def test_find_with_start(self):
        unit = parse_source("int a = a + a;")
        assert unit.tokens.find("a", 2) == 3

    def test_find_missing_raises(self):
        unit = parse_source("int a;")
        with pytest.raises(TokenNotFoundError, match="zzz"):
            unit.tokens.find("zzz")

    def test_concat_joins_with_single_space(self):
        unit = parse_source("unsigned   long\tx;")
        assert unit.tokens.concat(0, 1) == "unsigned long"

    def test_concat_empty_range(self):
        unit = parse_source("int x;")
        assert unit.tokens.concat(2, 1) == ""

    def test_out_of_range_index_raises(self):
        unit = parse_source("int x;")
        with pytest.raises(TokenRangeError):
            unit.tokens.spelling(99)

    def test_window_restarts_indices(self):
        unit = parse_source("int a; struct s { char *p; };")
        struct_node = next(n for n in walk(unit.root) if n.type == "struct_specifier")
        window = unit.tokens.window(struct_node)
        assert window.spelling(0) == "struct"
        assert window.spelling(len(window) - 1) == "}"

    def test_gap_before_is_verbatim(self):
        unit = parse_source("int\t x;")
        assert unit.tokens.gap_before(1) == "\t "

    def test_trailing_text(self):
        unit = parse_source("int x;\n\n")
        assert unit.tokens.trailing_text() == "\n\n"


class TestScanDeclarator:
    def test_plain_scalar(self):
        shape = scan_declarator(["int", "x", ";"], 1)
        assert shape.pointer_depth == 0
        assert shape.array_size == 0
        assert shape.type_end == 0
        assert not shape.inherits_type

    def test_double_pointer(self):
        shape = scan_declarator(["int", "*", "*", "p", ";"], 3)
        assert shape.pointer_depth == 2
        assert shape.type_end == 0

    def test_array_size(self):
        shape = scan_declarator(["char", "buf", "[", "32", "]", ";"], 1)
        assert shape.is_array
        assert shape.array_size == 32

    def test_hex_array_size(self):
        shape = scan_declarator(["char", "buf", "[", "0x10", "]", ";"], 1)
        assert shape.array_size == 16

    def test_symbolic_array_size_keeps_spelling(self):
        shape = scan_declarator(["char", "buf", "[", "MAX", "]", ";"], 1)
        assert shape.is_array
        assert shape.array_size == 0
        assert shape.array_size_spelling == "MAX"

    def test_unsized_array(self):
        shape = scan_declarator(["int", "x", "[", "]", ";"], 1)
        assert shape.is_array
        assert shape.array_size_spelling == ""

    def test_pointer_and_array(self):
        shape = scan_declarator(["char", "*", "argv", "[", "4", "]"], 2)
        assert shape.pointer_depth == 1
        assert shape.array_size == 4

    def test_comma_means_inherited_type(self):
        shape = scan_declarator(["int", "*", "a", ",", "*", "b", ";"], 5)
        assert shape.pointer_depth == 1
        assert shape.inherits_type

    def test_no_type_before_name_raises(self):
        with pytest.raises(TokenRangeError):
            scan_declarator(["*", "p"], 1)
