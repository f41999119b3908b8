"""Emitter — replays the original token stream with the rewrite plan applied."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from .tokens import TokenIndex, decode_source

if TYPE_CHECKING:
    from .planner import RewritePlan

logger = logging.getLogger(__name__)

BLOCK_OPEN = "{ "
BLOCK_CLOSE = " }"


def render_range(
    tokens: TokenIndex,
    first: int,
    last: int,
    replacements: dict[int, tuple[int, str]] | None = None,
    before: dict[int, list[str]] | None = None,
    after: dict[int, list[str]] | None = None,
) -> str:
    """Text of tokens *first*..*last* with edits applied.

    *replacements* maps a first token index to ``(last index, text)``;
    *before* / *after* map a token index to text inserted around it.  Text
    between tokens is copied verbatim from the source, so untouched tokens
    keep their original line and column.
    """
    replacements = replacements or {}
    before = before or {}
    after = after or {}
    out: list[str] = []
    n = first
    while n <= last:
        if n > first:
            out.append(tokens.gap_before(n))
        out.extend(before.get(n, ()))
        if n in replacements:
            end, text = replacements[n]
            out.append(text)
        else:
            end = n
            out.append(tokens.spelling(n))
        out.extend(after.get(end, ()))
        n = end + 1
    return "".join(out)


class Emitter:
    """Single left-to-right pass over the original tokens."""

    def __init__(self, tokens: TokenIndex):
        self._tokens = tokens

    def emit(self, plan: RewritePlan) -> str:
        if not len(self._tokens):
            return decode_source(self._tokens.source)

        replacements: dict[int, tuple[int, str]] = {}
        before: dict[int, list[str]] = defaultdict(list)
        after: dict[int, list[str]] = defaultdict(list)
        splits: dict[int, tuple[int, str]] = {}
        for step in plan.steps:
            before[step.open_before].append(f"{BLOCK_OPEN}{step.declaration} ")
            after[step.close_after].append(BLOCK_CLOSE)
            if not step.nested:
                replacements[step.replace_first] = (step.replace_last, step.substitution)
            if step.split_comma >= 0:
                splits[step.open_before] = (step.split_comma, step.redeclare)
        # The declaration is cut at the comma; the type prefix follows the last block opened.
        for open_before, (comma, redeclare) in splits.items():
            replacements[comma] = (comma, ";")
            before[open_before].append(f"{redeclare} ")

        logger.info("Emitting %d tokens with %d rewrites", len(self._tokens), len(plan.steps))
        last = len(self._tokens) - 1
        return "".join(
            [
                self._tokens.gap_before(0),
                render_range(self._tokens, 0, last, replacements, before, after),
                self._tokens.trailing_text(),
            ]
        )
