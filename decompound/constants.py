"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

LANGUAGE = "c"

DEFAULT_TEMP_PREFIX = "temp"

# Non-UTF-8 bytes (Latin-1 comments and the like) survive a decode/encode round trip.
SOURCE_ENCODING = "utf-8"
SOURCE_ERRORS = "surrogateescape"

# ── tree-sitter node types ───────────────────────────────────────

TYPE_DEFINITION = "type_definition"
STRUCT_SPECIFIER = "struct_specifier"
ENUM_SPECIFIER = "enum_specifier"
UNION_SPECIFIER = "union_specifier"
COMPOUND_LITERAL = "compound_literal_expression"
CALL_EXPRESSION = "call_expression"
RETURN_STATEMENT = "return_statement"
SUBSCRIPT_EXPRESSION = "subscript_expression"
INITIALIZER_PAIR = "initializer_pair"
INITIALIZER_LIST = "initializer_list"
ARGUMENT_LIST = "argument_list"
PARENTHESIZED_EXPRESSION = "parenthesized_expression"
FUNCTION_DEFINITION = "function_definition"
COMPOUND_STATEMENT = "compound_statement"
CASE_STATEMENT = "case_statement"
DECLARATION = "declaration"
FIELD_DECLARATION = "field_declaration"
ENUMERATOR = "enumerator"

NAME_NODE_TYPES: frozenset[str] = frozenset(
    {"identifier", "field_identifier", "type_identifier"}
)

# Nodes whose direct children form a statement sequence.
STATEMENT_CONTAINERS: frozenset[str] = frozenset(
    {"compound_statement", "case_statement", "labeled_statement", "else_clause"}
)

# Control statements whose body field holds a single statement.
BODY_FIELDS: tuple[str, ...] = ("body", "consequence", "alternative")

# Operand slots evaluated zero or many times per execution of their statement.
DEFERRED_OPERAND_FIELDS: dict[str, tuple[str, ...]] = {
    "while_statement": ("condition",),
    "do_statement": ("condition",),
    "for_statement": ("condition", "update"),
    "conditional_expression": ("consequence", "alternative"),
}

SHORT_CIRCUIT_OPERATORS: frozenset[str] = frozenset({"&&", "||"})

STATEMENT_TYPES: frozenset[str] = frozenset(
    {
        "expression_statement",
        "declaration",
        "return_statement",
        "if_statement",
        "while_statement",
        "for_statement",
        "do_statement",
        "switch_statement",
        "compound_statement",
        "labeled_statement",
        "goto_statement",
        "break_statement",
        "continue_statement",
    }
)

PRIMITIVE_TYPE_WORDS: frozenset[str] = frozenset(
    {
        "void",
        "char",
        "short",
        "int",
        "long",
        "float",
        "double",
        "signed",
        "unsigned",
        "_Bool",
        "bool",
        "size_t",
        "ptrdiff_t",
        "int8_t",
        "int16_t",
        "int32_t",
        "int64_t",
        "uint8_t",
        "uint16_t",
        "uint32_t",
        "uint64_t",
        "intptr_t",
        "uintptr_t",
    }
)

TYPE_QUALIFIERS: frozenset[str] = frozenset(
    {"const", "volatile", "restrict", "static", "register", "extern"}
)

# ── enum constant folding ────────────────────────────────────────

BINARY_OPERATORS: tuple[str, ...] = ("^", "|", "&", "+", "-", "*", "/", "%", "<<", ">>")
UNARY_OPERATORS: tuple[str, ...] = ("-", "+", "~")

INTEGER_SUFFIX_CHARS = "uUlL"

MAX_TYPEDEF_CHAIN = 32
