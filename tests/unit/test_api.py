"""End-to-end tests for the composable API functions in decompound.api."""

from __future__ import annotations

import json

import pytest

from decompound import DecompoundError
from decompound.api import (
    convert_source,
    dump_plan,
    dump_registry,
    dump_sites,
    locate_sites_in_source,
)
from decompound.config import ConvertConfig

POINT = "typedef struct { int x; int y; } Point;\n"

ASSIGNMENT_SOURCE = POINT + """\

void f(void)
{
    Point x;
    int y;
    x = (Point){1,2};
    y = 3;
}
"""

ASSIGNMENT_EXPECTED = POINT + """\

void f(void)
{
    Point x;
    int y;
    { Point temp = {1,2}; x = temp;
    y = 3; }
}
"""

PLAIN_SOURCE = """\
#include <stdio.h>

/* no compound literals here */
static int add(int a, int b) { return a + b; }

int main(int argc, char **argv)
{
\tint arr[2] = {1, 2};
\tprintf("%d\\n", add(arr[0], arr[1]));
\treturn 0;
}
"""


class TestConvertSource:
    def test_assignment(self):
        assert convert_source(ASSIGNMENT_SOURCE) == ASSIGNMENT_EXPECTED

    def test_indexed_literal(self):
        source = "void f(void)\n{\n    int v = ((int[2]){1,2})[1];\n    g(v);\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\n    { int temp[2] = {1,2}; int v = temp[1];\n    g(v); }\n}\n"
        )

    def test_nested_literals(self):
        source = "void h(void)\n{\n    f((Outer){ .p = (Inner){1,2} });\n}\n"
        assert convert_source(source) == (
            "void h(void)\n{\n"
            "    { Inner temp = {1,2}; { Outer temp1 = { .p = temp }; f(temp1); } }\n"
            "}\n"
        )

    def test_return_operand(self):
        source = "int g(void)\n{\n    return sum((Pair){3, 4});\n}\n"
        assert convert_source(source) == (
            "int g(void)\n{\n    { Pair temp = {3, 4}; return sum(temp); }\n}\n"
        )

    def test_two_statements_nest_blocks(self):
        source = "void f(void)\n{\n    a = (P){1};\n    b = (P){2};\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\n"
            "    { P temp = {1}; a = temp;\n"
            "    { P temp1 = {2}; b = temp1; } }\n"
            "}\n"
        )

    def test_single_statement_if_body(self):
        source = "void f(int c)\n{\n    if (c)\n        a = (P){1};\n    done();\n}\n"
        assert convert_source(source) == (
            "void f(int c)\n{\n"
            "    if (c)\n        { P temp = {1}; a = temp; }\n"
            "    done();\n}\n"
        )

    def test_custom_prefix(self):
        out = convert_source("void f(void) { g((P){1}); }", ConvertConfig(temp_prefix="lit"))
        assert out == "void f(void) { { P lit = {1}; g(lit); } }"

    def test_passthrough_is_byte_identical(self):
        assert convert_source(PLAIN_SOURCE) == PLAIN_SOURCE

    def test_bytes_input(self):
        assert convert_source(PLAIN_SOURCE.encode("utf-8")) == PLAIN_SOURCE

    def test_output_has_no_compound_literals(self):
        out = convert_source(ASSIGNMENT_SOURCE)
        assert locate_sites_in_source(out) == []

    def test_idempotent(self):
        once = convert_source(ASSIGNMENT_SOURCE)
        assert convert_source(once) == once

    def test_lines_before_first_literal_untouched(self):
        out = convert_source(ASSIGNMENT_SOURCE)
        assert out.splitlines()[:6] == ASSIGNMENT_SOURCE.splitlines()[:6]

    def test_failure_raises_library_error(self):
        with pytest.raises(DecompoundError):
            convert_source("enum e { A = MISSING };\nvoid f(void) { g((P){1}); }")


class TestDumps:
    def test_dump_registry(self):
        text = dump_registry(POINT + "enum e { A, B };")
        assert "N typedef entries: 1" in text
        assert "[0]: Point (struct <anonymous>)" in text
        assert " [1]: B = 1" in text

    def test_dump_sites(self):
        text = dump_sites("void h(void) { f((Outer){ .p = (Inner){1,2} }); }")
        outer, inner = text.splitlines()
        assert "call_argument (Outer) in h" in outer
        assert inner.startswith("  ")
        assert "designated_member (Inner) in h member=.p" in inner

    def test_dump_plan_is_json(self):
        data = json.loads(dump_plan("void f(void) { g((P){1}); }"))
        (step,) = data["steps"]
        assert step["temp_name"] == "temp"
        assert step["declaration"] == "P temp = {1};"
        assert step["role"] == "call_argument"


class TestBlockPlacement:
    def test_case_group_closes_after_last_statement_of_group(self):
        source = (
            "void f(int k)\n{\n    switch (k) {\n    case 1:\n"
            "        g((P){1});\n        h();\n        break;\n"
            "    default:\n        break;\n    }\n}\n"
        )
        assert convert_source(source) == (
            "void f(int k)\n{\n    switch (k) {\n    case 1:\n"
            "        { P temp = {1}; g(temp);\n        h();\n        break; }\n"
            "    default:\n        break;\n    }\n}\n"
        )

    def test_else_branch(self):
        source = (
            "void f(int c)\n{\n    if (c)\n        a();\n    else\n"
            "        b((P){1});\n    done();\n}\n"
        )
        assert convert_source(source) == (
            "void f(int c)\n{\n    if (c)\n        a();\n    else\n"
            "        { P temp = {1}; b(temp); }\n    done();\n}\n"
        )

    def test_labeled_statement(self):
        source = "void f(void)\n{\nagain:\n    g((P){1});\n    h();\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\nagain:\n    { P temp = {1}; g(temp); }\n    h();\n}\n"
        )

    def test_loop_body(self):
        source = "void f(int c)\n{\n    while (c)\n        g((P){1});\n}\n"
        assert convert_source(source) == (
            "void f(int c)\n{\n    while (c)\n        { P temp = {1}; g(temp); }\n}\n"
        )

    def test_literal_inside_index_expression(self):
        source = "void f(void)\n{\n    int v = ((int[2]){1,2})[((int[1]){1})[0]];\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\n"
            "    { int temp[1] = {1}; { int temp1[2] = {1,2}; int v = temp1[temp[0]]; } }\n"
            "}\n"
        )


class TestMultiNameDeclarations:
    def test_later_declarator_sees_earlier_names(self):
        source = "void f(void)\n{\n    int a = 1, b = g((P){a});\n    h(b);\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\n"
            "    int a = 1; { P temp = {a}; int b = g(temp);\n    h(b); }\n"
            "}\n"
        )

    def test_literals_in_first_and_later_declarators(self):
        source = "void f(void)\n{\n    int a = g((P){1}), b = g((P){a});\n}\n"
        assert convert_source(source) == (
            "void f(void)\n{\n"
            "    { P temp = {1}; int a = g(temp); "
            "{ P temp1 = {a}; int b = g(temp1); } }\n"
            "}\n"
        )

    def test_type_prefix_is_repeated(self):
        source = 'void f(void) { const char *s = "x", *t = pick((P){1}); }'
        assert convert_source(source) == (
            'void f(void) { const char *s = "x"; '
            "{ P temp = {1}; const char *t = pick(temp); } }"
        )

    def test_split_output_is_stable(self):
        once = convert_source("void f(void) { int a = 1, b = g((P){a}); }")
        assert convert_source(once) == once


class TestConditionalLiterals:
    def test_short_circuit_operand_is_rejected(self):
        with pytest.raises(DecompoundError, match="evaluated conditionally"):
            convert_source("void f(int *p) { if (p && g((P){*p})) h(); }")

    def test_loop_update_is_rejected(self):
        with pytest.raises(DecompoundError):
            convert_source("void f(int i) { for (i = 0; i < 3; use((P){i}), i++) ; }")


class TestSourceEncoding:
    LATIN1 = b"/* caf\xe9 */\nint main(void) { return 0; }\n"

    def test_non_utf8_passthrough(self):
        out = convert_source(self.LATIN1)
        assert out.encode("utf-8", "surrogateescape") == self.LATIN1

    def test_non_utf8_bytes_kept_around_rewrite(self):
        source = b"/* caf\xe9 */\nvoid f(void) { g((P){1}); }\n"
        out = convert_source(source).encode("utf-8", "surrogateescape")
        assert out == b"/* caf\xe9 */\nvoid f(void) { { P temp = {1}; g(temp); } }\n"
