"""Closed set of node kinds the core reacts to; everything else is recursed through."""

from __future__ import annotations

from enum import Enum

from . import constants


class NodeKind(str, Enum):
    TYPEDEF = "typedef"
    STRUCT = "struct"
    ENUM = "enum"
    COMPOUND_LITERAL = "compound_literal"
    CALL = "call"
    RETURN = "return"
    INDEX = "index"
    DESIGNATED_MEMBER = "designated_member"
    OTHER = "other"


_KIND_BY_TYPE: dict[str, NodeKind] = {
    constants.TYPE_DEFINITION: NodeKind.TYPEDEF,
    constants.STRUCT_SPECIFIER: NodeKind.STRUCT,
    constants.ENUM_SPECIFIER: NodeKind.ENUM,
    constants.COMPOUND_LITERAL: NodeKind.COMPOUND_LITERAL,
    constants.CALL_EXPRESSION: NodeKind.CALL,
    constants.ARGUMENT_LIST: NodeKind.CALL,
    constants.RETURN_STATEMENT: NodeKind.RETURN,
    constants.SUBSCRIPT_EXPRESSION: NodeKind.INDEX,
    constants.INITIALIZER_PAIR: NodeKind.DESIGNATED_MEMBER,
}


def classify(node) -> NodeKind:
    if node is None:
        return NodeKind.OTHER
    return _KIND_BY_TYPE.get(node.type, NodeKind.OTHER)


def unparenthesized_parent(node):
    """Return (parent, child) skipping any parenthesized_expression wrappers."""
    child = node
    parent = node.parent
    while parent is not None and parent.type == constants.PARENTHESIZED_EXPRESSION:
        child = parent
        parent = parent.parent
    return parent, child


def declarator_name_node(node):
    """Find the identifier a (possibly nested) declarator declares."""
    if node is None:
        return None
    if node.type in constants.NAME_NODE_TYPES:
        return node
    inner = node.child_by_field_name("declarator")
    if inner is not None:
        return declarator_name_node(inner)
    for child in node.named_children:
        found = declarator_name_node(child)
        if found is not None:
            return found
    return None


def walk(node):
    """Pre-order iteration over *node* and its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))
