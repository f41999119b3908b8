"""Compound-Literal Locator — finds literals, classifies their role, links nesting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from .errors import UnhoistableLiteralError
from .node_kinds import NodeKind, classify, unparenthesized_parent, walk
from .parser import TranslationUnit
from . import constants

logger = logging.getLogger(__name__)


class SiteRole(str, Enum):
    STATEMENT_OPERAND = "statement_operand"
    CALL_ARGUMENT = "call_argument"
    RETURN_OPERAND = "return_operand"
    INDEXED_OPERAND = "indexed_operand"
    DESIGNATED_MEMBER = "designated_member"


@dataclass
class CompoundLiteralSite:
    node: object
    type_node: object
    init_node: object
    role: SiteRole
    literal_first: int
    literal_last: int
    # Token range replaced at the use site (the whole subscript for indexed operands).
    replace_first: int
    replace_last: int
    statement: object
    statement_first: int
    statement_last: int
    container: object
    function_name: str
    index_node: object = None
    member: str = ""
    # Where the wrapping block opens; a later declarator of a multi-name
    # declaration opens it after splitting the declaration at split_comma.
    open_first: int = -1
    split_comma: int = -1
    type_prefix_last: int = -1
    parent: CompoundLiteralSite | None = None
    children: list[CompoundLiteralSite] = field(default_factory=list)

    @property
    def depth(self) -> int:
        depth = 0
        site = self.parent
        while site is not None:
            depth += 1
            site = site.parent
        return depth

    def contains(self, other: CompoundLiteralSite) -> bool:
        return (
            other is not self
            and self.replace_first <= other.replace_first
            and other.replace_last <= self.replace_last
        )

    def post_order(self) -> list[CompoundLiteralSite]:
        """This site's subtree, children before their owner, in source order."""
        ordered: list[CompoundLiteralSite] = []
        for child in self.children:
            ordered.extend(child.post_order())
        ordered.append(self)
        return ordered


class CompoundLiteralLocator:
    """Scans a translation unit for compound literals."""

    def __init__(self, unit: TranslationUnit):
        self._unit = unit
        self._tokens = unit.tokens
        # Parent-kind dispatch: how the enclosing node decides the role.
        self._ROLE_DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.CALL: self._role_call_argument,
            NodeKind.RETURN: self._role_return_operand,
            NodeKind.INDEX: self._role_indexed_operand,
            NodeKind.DESIGNATED_MEMBER: self._role_designated_member,
        }

    def _node_text(self, node) -> str:
        return self._unit.text(node)

    def locate(self) -> list[CompoundLiteralSite]:
        sites = [
            self._make_site(node)
            for node in walk(self._unit.root)
            if classify(node) == NodeKind.COMPOUND_LITERAL
        ]
        sites.sort(key=lambda s: (s.replace_first, -s.replace_last))
        self._link_nesting(sites)
        logger.info(
            "Located %d compound literals (%d top-level)",
            len(sites),
            sum(1 for s in sites if s.parent is None),
        )
        return sites

    # ── site construction ────────────────────────────────────────

    def _make_site(self, node) -> CompoundLiteralSite:
        type_node = node.child_by_field_name("type")
        init_node = node.child_by_field_name("value")
        if type_node is None or init_node is None:
            raise UnhoistableLiteralError(
                f"Compound literal without type or initializer: {self._node_text(node)}"
            )
        statement, container = self._enclosing_statement(node)
        function_name = self._enclosing_function_name(statement)

        site = CompoundLiteralSite(
            node=node,
            type_node=type_node,
            init_node=init_node,
            role=SiteRole.STATEMENT_OPERAND,
            literal_first=self._tokens.first_index(node),
            literal_last=self._tokens.last_index(node),
            replace_first=self._tokens.first_index(node),
            replace_last=self._tokens.last_index(node),
            statement=statement,
            statement_first=self._tokens.first_index(statement),
            statement_last=self._tokens.last_index(statement),
            container=container,
            function_name=function_name,
        )
        site.open_first = site.statement_first
        self._split_declaration(site)
        parent, child = unparenthesized_parent(node)
        handler = self._ROLE_DISPATCH.get(classify(parent))
        if handler:
            handler(site, parent, child)
        logger.debug(
            "Compound literal %s in %s: %s",
            self._node_text(type_node),
            function_name,
            site.role.value,
        )
        return site

    def _role_call_argument(self, site: CompoundLiteralSite, parent, child) -> None:
        if parent.type == constants.ARGUMENT_LIST:
            site.role = SiteRole.CALL_ARGUMENT

    def _role_return_operand(self, site: CompoundLiteralSite, parent, child) -> None:
        site.role = SiteRole.RETURN_OPERAND

    def _role_indexed_operand(self, site: CompoundLiteralSite, parent, child) -> None:
        if parent.child_by_field_name("argument") != child:
            return
        site.role = SiteRole.INDEXED_OPERAND
        site.index_node = parent.child_by_field_name("index")
        site.replace_first = self._tokens.first_index(parent)
        site.replace_last = self._tokens.last_index(parent)

    def _role_designated_member(self, site: CompoundLiteralSite, parent, child) -> None:
        site.role = SiteRole.DESIGNATED_MEMBER
        designators = parent.children_by_field_name("designator")
        site.member = "".join(self._node_text(d) for d in designators)

    # ── enclosing statement ──────────────────────────────────────

    def _is_hoist_point(self, node) -> bool:
        parent = node.parent
        if parent is None or node.type not in constants.STATEMENT_TYPES:
            return False
        if parent.type in constants.STATEMENT_CONTAINERS:
            return True
        return any(parent.child_by_field_name(f) == node for f in constants.BODY_FIELDS)

    def _deferred_slot(self, node) -> str:
        """Name of the slot of node.parent that runs zero or many times, else ''."""
        parent = node.parent
        if parent is None:
            return ""
        for field_name in constants.DEFERRED_OPERAND_FIELDS.get(parent.type, ()):
            if node in parent.children_by_field_name(field_name):
                return f"{parent.type} {field_name}"
        if parent.type == "binary_expression" and parent.child_by_field_name("right") == node:
            op_node = parent.child_by_field_name("operator")
            op = self._node_text(op_node) if op_node is not None else ""
            if op in constants.SHORT_CIRCUIT_OPERATORS:
                return f"right operand of {op}"
        return ""

    def _unhoistable(self, node, reason: str) -> UnhoistableLiteralError:
        row, col = node.start_point
        return UnhoistableLiteralError(
            f"Compound literal at {row + 1}:{col} {reason}: {self._node_text(node)}"
        )

    def _enclosing_statement(self, node):
        """The statement to hoist in front of, and the block holding it.

        A literal the statement evaluates conditionally or repeatedly (loop
        condition or update, right operand of ``&&`` / ``||``, branch of
        ``?:``) cannot be evaluated once in front of it.
        """
        current = node
        while current is not None:
            if current.type == constants.FUNCTION_DEFINITION:
                break
            if self._is_hoist_point(current):
                return current, current.parent
            slot = self._deferred_slot(current)
            if slot:
                raise self._unhoistable(node, f"is evaluated conditionally ({slot})")
            current = current.parent
        raise self._unhoistable(node, "is not inside a function body")

    # ── multi-name declarations ──────────────────────────────────

    def _owning_declarator(self, node, declaration):
        """Index and node of the declarator of *declaration* holding *node*."""
        for n, declarator in enumerate(declaration.children_by_field_name("declarator")):
            if declarator.start_byte <= node.start_byte and node.end_byte <= declarator.end_byte:
                return n, declarator
        return 0, None

    def _split_declaration(self, site: CompoundLiteralSite) -> None:
        """Open a literal's block at its own declarator when it is not the first.

        ``int a = 1, b = g((P){a});`` becomes ``int a = 1; { P temp = {a};
        int b = g(temp); ... }`` so that earlier names stay in scope.
        """
        declaration = site.node.parent
        while declaration.type != constants.DECLARATION and declaration != site.statement:
            declaration = declaration.parent
        if declaration.type != constants.DECLARATION:
            return
        n, declarator = self._owning_declarator(site.node, declaration)
        if n == 0:
            return
        if declaration != site.statement:
            raise self._unhoistable(
                site.node, "is in a later declarator of a nested declaration"
            )
        type_node = declaration.child_by_field_name("type")
        if type_node is not None and type_node.child_by_field_name("body") is not None:
            raise self._unhoistable(
                site.node, "is in a later declarator of a declaration defining a type"
            )
        first = self._tokens.first_index(declarator)
        if self._tokens.spelling(first - 1) != ",":
            raise self._unhoistable(site.node, "follows a declarator it cannot be split from")
        first_declarator = declaration.children_by_field_name("declarator")[0]
        site.open_first = first
        site.split_comma = first - 1
        site.type_prefix_last = self._tokens.first_index(first_declarator) - 1

    def _enclosing_function_name(self, node) -> str:
        current = node
        while current is not None and current.type != constants.FUNCTION_DEFINITION:
            current = current.parent
        if current is None:
            return ""
        declarator = current.child_by_field_name("declarator")
        while declarator is not None and declarator.type != "function_declarator":
            declarator = declarator.child_by_field_name("declarator")
        if declarator is None:
            return ""
        name_node = declarator.child_by_field_name("declarator")
        return self._node_text(name_node) if name_node is not None else ""

    # ── nesting ──────────────────────────────────────────────────

    def _link_nesting(self, sites: list[CompoundLiteralSite]) -> None:
        """Attach each site to the innermost other site whose replaced range holds it."""
        for site in sites:
            owners = [other for other in sites if other.contains(site)]
            if not owners:
                continue
            owner = min(owners, key=lambda o: o.replace_last - o.replace_first)
            site.parent = owner
            owner.children.append(site)


def locate_sites(unit: TranslationUnit) -> list[CompoundLiteralSite]:
    """All compound literals of *unit*, sorted by position, nesting linked."""
    return CompoundLiteralLocator(unit).locate()
