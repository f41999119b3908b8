"""Token Index — read-only view over the front-end's ordered token stream."""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from enum import Enum, auto
from typing import Sequence

from pydantic import BaseModel

from .constant_folder import parse_c_integer
from .errors import LookupFailure, TokenNotFoundError, TokenRangeError
from . import constants


class SourceLocation(BaseModel):
    """Structured source span from tree-sitter AST nodes (1-based lines)."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


class Token(BaseModel):
    spelling: str
    start_byte: int
    end_byte: int
    location: SourceLocation

    def __str__(self) -> str:
        return f"{self.spelling!r} @ {self.location}"


def decode_source(data: bytes) -> str:
    return data.decode(constants.SOURCE_ENCODING, constants.SOURCE_ERRORS)


def source_location(node) -> SourceLocation:
    s, e = node.start_point, node.end_point
    return SourceLocation(
        start_line=s[0] + 1,
        start_col=s[1],
        end_line=e[0] + 1,
        end_col=e[1],
    )


def tokenize_tree(tree, source: bytes) -> "TokenIndex":
    """Collect the non-empty leaves of *tree* in source order."""
    tokens: list[Token] = []
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.child_count:
            stack.extend(reversed(node.children))
            continue
        if node.end_byte <= node.start_byte:
            # MISSING nodes inserted by error recovery have no text
            continue
        tokens.append(
            Token(
                spelling=decode_source(source[node.start_byte : node.end_byte]),
                start_byte=node.start_byte,
                end_byte=node.end_byte,
                location=source_location(node),
            )
        )
    return TokenIndex(tokens, source)


class TokenIndex:
    """Ordered, positioned tokens of a source range.

    Windows taken with :meth:`window` share the underlying source, so the
    text between two tokens can always be recovered verbatim.
    """

    def __init__(self, tokens: list[Token], source: bytes):
        self._tokens = tokens
        self._source = source
        self._starts = [t.start_byte for t in tokens]
        self._ends = [t.end_byte for t in tokens]

    def __len__(self) -> int:
        return len(self._tokens)

    def __getitem__(self, index: int) -> Token:
        return self.token(index)

    def __iter__(self):
        return iter(self._tokens)

    @property
    def source(self) -> bytes:
        return self._source

    def token(self, index: int) -> Token:
        if index < 0 or index >= len(self._tokens):
            raise TokenRangeError(index, len(self._tokens))
        return self._tokens[index]

    def spelling(self, index: int) -> str:
        return self.token(index).spelling

    def spellings(self) -> list[str]:
        return [t.spelling for t in self._tokens]

    # ── lookups ──────────────────────────────────────────────────

    def find(self, spelling: str, start: int = 0) -> int:
        """Index of the first token spelled *spelling* at or after *start*."""
        for n in range(max(start, 0), len(self._tokens)):
            if self._tokens[n].spelling == spelling:
                return n
        raise TokenNotFoundError(spelling)

    def first_index(self, node) -> int:
        """Index of the first token inside *node*'s extent."""
        n = bisect.bisect_left(self._starts, node.start_byte)
        if n >= len(self._tokens) or self._tokens[n].end_byte > node.end_byte:
            raise LookupFailure(f"No token inside {node.type} at byte {node.start_byte}")
        return n

    def last_index(self, node) -> int:
        """Index of the last token inside *node*'s extent."""
        n = bisect.bisect_right(self._ends, node.end_byte) - 1
        if n < 0 or self._tokens[n].start_byte < node.start_byte:
            raise LookupFailure(f"No token inside {node.type} at byte {node.end_byte}")
        return n

    def window(self, node) -> TokenIndex:
        """Tokens covering *node*'s source extent (indices restart at 0)."""
        first = self.first_index(node)
        last = self.last_index(node)
        return TokenIndex(self._tokens[first : last + 1], self._source)

    # ── text ─────────────────────────────────────────────────────

    def concat(self, first: int, last: int) -> str:
        """Spellings of tokens *first*..*last* (inclusive), single-space joined."""
        if last < first:
            return ""
        self.token(first)
        self.token(last)
        return " ".join(t.spelling for t in self._tokens[first : last + 1])

    def gap_before(self, index: int) -> str:
        """Source text between token *index* - 1 and token *index*."""
        end = self._tokens[index - 1].end_byte if index > 0 else 0
        return decode_source(self._source[end : self.token(index).start_byte])

    def trailing_text(self) -> str:
        start = self._tokens[-1].end_byte if self._tokens else 0
        return decode_source(self._source[start:])


# ── declarator suffix scanning ───────────────────────────────────


@dataclass(frozen=True)
class DeclaratorShape:
    """What the tokens around a declared name say about its type."""

    name_index: int
    pointer_depth: int
    array_size: int
    array_size_spelling: str
    is_array: bool
    type_end: int
    inherits_type: bool


class _ScanState(Enum):
    ARRAY = auto()
    POINTERS = auto()
    PREFIX = auto()


def scan_declarator(spellings: Sequence[str], name_index: int) -> DeclaratorShape:
    """Recover pointer depth and array size around the name at *name_index*.

    Looks one token past the name for ``[ N``, then walks backwards over
    consecutive ``*`` tokens.  The token reached after the stars is the last
    token of the textual type, unless it is ``,``: then the name is a later
    declarator of a multi-name declaration and inherits the previous type.
    """
    size = len(spellings)
    state = _ScanState.ARRAY
    pointer_depth = 0
    array_size = 0
    size_spelling = ""
    is_array = False
    cursor = name_index - 1

    while True:
        if state is _ScanState.ARRAY:
            if name_index + 1 < size and spellings[name_index + 1] == "[":
                is_array = True
                if name_index + 2 < size and spellings[name_index + 2] != "]":
                    size_spelling = spellings[name_index + 2]
                    array_size = parse_c_integer(size_spelling, default=0)
            state = _ScanState.POINTERS
        elif state is _ScanState.POINTERS:
            if cursor < 0:
                raise TokenRangeError(cursor, size)
            if spellings[cursor] == "*":
                pointer_depth += 1
                cursor -= 1
            else:
                state = _ScanState.PREFIX
        else:
            return DeclaratorShape(
                name_index=name_index,
                pointer_depth=pointer_depth,
                array_size=array_size,
                array_size_spelling=size_spelling,
                is_array=is_array,
                type_end=cursor,
                inherits_type=spellings[cursor] == ",",
            )
