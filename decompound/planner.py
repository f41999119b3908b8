"""Rewrite Planner — turns located compound literals into hoisting steps."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from .config import DEFAULT_CONFIG, ConvertConfig
from .declarations import TypeDescriptor
from .emitter import render_range
from .errors import TypeResolutionError, UnknownMemberError
from .locator import CompoundLiteralSite, SiteRole
from .parser import TranslationUnit
from .registry import DeclarationRegistry
from . import constants

logger = logging.getLogger(__name__)


class RewriteStep(BaseModel):
    """One hoisted temporary: its declaration, its use, and its wrapping block."""

    temp_name: str
    type_spelling: str
    declaration: str
    substitution: str
    role: SiteRole
    replace_first: int
    replace_last: int
    open_before: int  # block opens (and the declaration lands) before this token
    close_after: int  # block closes after this token
    nested: bool = False  # substituted inside the owner's declaration
    split_comma: int = -1  # "," turned into ";" ahead of the block, when >= 0
    redeclare: str = ""  # type prefix repeated after a split
    function_name: str = ""

    def __str__(self) -> str:
        where = f"tokens {self.open_before}..{self.close_after}"
        return f"{self.declaration}  -> {self.substitution}  [{self.role.value}, {where}]"


class RewritePlan(BaseModel):
    steps: list[RewriteStep] = []

    def is_empty(self) -> bool:
        return not self.steps


class RewritePlanner:
    """Plans sites statement by statement, children before their owner."""

    def __init__(
        self,
        unit: TranslationUnit,
        registry: DeclarationRegistry,
        config: ConvertConfig = DEFAULT_CONFIG,
    ):
        self._unit = unit
        self._tokens = unit.tokens
        self._registry = registry
        self._config = config
        self._taken: set[str] = {t.spelling for t in unit.tokens}
        self._counters: dict[str, int] = {}

    def _node_text(self, node) -> str:
        return self._unit.text(node)

    def plan(self, sites: list[CompoundLiteralSite]) -> RewritePlan:
        substitutions: dict[int, str] = {}
        steps: list[RewriteStep] = []
        for top in (s for s in sites if s.parent is None):
            for site in top.post_order():
                steps.append(self._plan_site(site, substitutions))
        logger.info("Planned %d rewrite steps", len(steps))
        return RewritePlan(steps=steps)

    # ── per-site ─────────────────────────────────────────────────

    def _plan_site(
        self, site: CompoundLiteralSite, substitutions: dict[int, str]
    ) -> RewriteStep:
        descriptor = self._registry.resolve_type_for(site.type_node)
        if self._config.validate_members:
            self._check_members(site, descriptor)

        temp = self._fresh_temp(site.function_name)
        initializer = self._render_region(site.init_node, site, substitutions)
        declaration = f"{self._render_declarator(site.type_node, temp)} = {initializer};"

        if site.role == SiteRole.INDEXED_OPERAND:
            index = self._render_region(site.index_node, site, substitutions)
            substitution = f"{temp}[{index}]"
        else:
            substitution = temp
        substitutions[id(site)] = substitution

        step = RewriteStep(
            temp_name=temp,
            type_spelling=self._node_text(site.type_node),
            declaration=declaration,
            substitution=substitution,
            role=site.role,
            replace_first=site.replace_first,
            replace_last=site.replace_last,
            open_before=site.open_first,
            close_after=self._close_point(site),
            nested=site.parent is not None,
            split_comma=site.split_comma,
            redeclare=self._redeclare_prefix(site),
            function_name=site.function_name,
        )
        logger.debug("Hoisting %s", step)
        return step

    def _redeclare_prefix(self, site: CompoundLiteralSite) -> str:
        if site.split_comma < 0:
            return ""
        return render_range(self._tokens, site.statement_first, site.type_prefix_last)

    def _fresh_temp(self, scope: str) -> str:
        n = self._counters.get(scope, 0)
        while True:
            name = self._config.temp_prefix if n == 0 else f"{self._config.temp_prefix}{n}"
            n += 1
            if name not in self._taken:
                break
        self._counters[scope] = n
        return name

    def _close_point(self, site: CompoundLiteralSite) -> int:
        container = site.container
        if container.type == constants.COMPOUND_STATEMENT:
            last = self._tokens.last_index(container)
            if self._tokens.spelling(last) == "}" and last - 1 >= site.statement_last:
                return last - 1
            return last
        if container.type == constants.CASE_STATEMENT:
            return self._tokens.last_index(container)
        return site.statement_last

    # ── text synthesis ───────────────────────────────────────────

    def _render_region(
        self, node, site: CompoundLiteralSite, substitutions: dict[int, str]
    ) -> str:
        if node is None:
            return ""
        first = self._tokens.first_index(node)
        last = self._tokens.last_index(node)
        replacements = {
            child.replace_first: (child.replace_last, substitutions[id(child)])
            for child in site.children
            if first <= child.replace_first and child.replace_last <= last
        }
        return render_range(self._tokens, first, last, replacements)

    def _render_declarator(self, type_node, name: str) -> str:
        declarator = type_node.child_by_field_name("declarator")
        base = " ".join(
            self._node_text(c)
            for c in type_node.named_children
            if c != declarator and c.type != "comment"
        )
        if declarator is None:
            return f"{base} {name}"
        return f"{base} {self._concrete_declarator(declarator, name)}"

    def _concrete_declarator(self, node, name: str) -> str:
        """Re-render an abstract declarator with *name* in the identifier slot."""
        inner = node.child_by_field_name("declarator")
        rest = self._concrete_declarator(inner, name) if inner is not None else name
        if node.type == "abstract_pointer_declarator":
            qualifiers = [
                self._node_text(c) for c in node.named_children if c.type == "type_qualifier"
            ]
            return "*" + "".join(f"{q} " for q in qualifiers) + rest
        if node.type == "abstract_array_declarator":
            size = node.child_by_field_name("size")
            return f"{rest}[{self._node_text(size) if size is not None else ''}]"
        if node.type == "abstract_function_declarator":
            params = node.child_by_field_name("parameters")
            return f"{rest}{self._node_text(params) if params is not None else '()'}"
        if node.type == "abstract_parenthesized_declarator":
            wrapped = next(
                (c for c in node.named_children if c.type.startswith("abstract_")), None
            )
            if wrapped is None:
                raise TypeResolutionError(f"Empty declarator in {self._node_text(node)}")
            return f"({self._concrete_declarator(wrapped, name)})"
        raise TypeResolutionError(
            f"Unsupported declarator {node.type} in {self._node_text(node)}"
        )

    # ── validation ───────────────────────────────────────────────

    def _check_members(self, site: CompoundLiteralSite, descriptor: TypeDescriptor) -> None:
        if not descriptor.has_layout:
            return
        struct_decl = descriptor.struct_decl
        for pair in site.init_node.named_children:
            if pair.type != constants.INITIALIZER_PAIR:
                continue
            designators = pair.children_by_field_name("designator")
            if not designators or designators[0].type != "field_designator":
                continue
            member = self._node_text(designators[0]).lstrip(".").strip()
            if struct_decl.member(member) is None:
                raise UnknownMemberError(member, struct_decl.name)


def plan_rewrites(
    unit: TranslationUnit,
    registry: DeclarationRegistry,
    sites: list[CompoundLiteralSite],
    config: ConvertConfig = DEFAULT_CONFIG,
) -> RewritePlan:
    return RewritePlanner(unit, registry, config).plan(sites)
