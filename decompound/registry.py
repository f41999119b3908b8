"""Declaration Registry — structs, enums and typedefs recovered from the tree."""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from .constant_folder import ConstantFolder, parse_c_integer
from .declarations import (
    EnumDeclaration,
    EnumMember,
    Identity,
    StructDeclaration,
    StructMember,
    TypeDescriptor,
    TypedefDeclaration,
    TypeKind,
)
from .errors import TypeResolutionError, UnknownEnumSymbolError
from .node_kinds import NodeKind, classify, declarator_name_node
from .parser import TranslationUnit
from .tokens import DeclaratorShape, TokenIndex, scan_declarator
from . import constants

logger = logging.getLogger(__name__)


def _same_declaration(identity: Identity, name: str, existing) -> bool:
    if existing.identity == identity:
        return True
    # Unlike a name-only match, two anonymous declarations at different places
    # never merge: an empty name only matches the same source extent.
    # Named re-declarations (forward declaration + definition, or the same
    # header content seen twice) collapse onto the first one registered.
    return bool(name) and existing.name == name


class DeclarationRegistry:
    """Owns the canonical struct / enum / typedef tables of one translation unit."""

    def __init__(self, unit: TranslationUnit):
        self._unit = unit
        self.structs: list[StructDeclaration] = []
        self.enums: list[EnumDeclaration] = []
        self.typedefs: list[TypedefDeclaration] = []

    def _node_text(self, node) -> str:
        return self._unit.text(node)

    # ── lookups ──────────────────────────────────────────────────

    def find_struct(self, name: str) -> StructDeclaration | None:
        return next((s for s in self.structs if name and s.name == name), None)

    def find_enum(self, name: str) -> EnumDeclaration | None:
        return next((e for e in self.enums if name and e.name == name), None)

    def find_typedef(self, name: str) -> TypedefDeclaration | None:
        return next((t for t in self.typedefs if t.name == name), None)

    def lookup_enum_value(self, symbol: str) -> int | None:
        for decl in self.enums:
            value = decl.value_of(symbol)
            if value is not None:
                return value
        return None

    def find_enum_value(self, symbol: str) -> int:
        """Value of enum constant *symbol*; first match across all enums wins."""
        value = self.lookup_enum_value(symbol)
        if value is None:
            raise UnknownEnumSymbolError(symbol)
        return value

    # ── structs ──────────────────────────────────────────────────

    def register_struct(self, name: str, node) -> StructDeclaration:
        identity = Identity.of(node)
        body = node.child_by_field_name("body")
        existing = next(
            (s for s in self.structs if _same_declaration(identity, name, s)), None
        )
        if existing is not None:
            if not existing.entries and body is not None:
                logger.debug("Completing forward-declared struct %s", name)
                self._fill_struct_members(existing, body)
            return existing

        decl = StructDeclaration(name=name, identity=identity)
        self.structs.append(decl)
        if body is not None:
            self._fill_struct_members(decl, body)
        logger.debug(
            "Registered struct %s with %d members", decl.display_name, len(decl.entries)
        )
        return decl

    def _fill_struct_members(self, decl: StructDeclaration, body) -> None:
        for field_node in body.named_children:
            if field_node.type != constants.FIELD_DECLARATION:
                continue
            declarators = field_node.children_by_field_name("declarator")
            type_node = field_node.child_by_field_name("type")
            if not declarators and type_node is not None:
                nested_body = type_node.child_by_field_name("body")
                if (
                    nested_body is not None
                    and type_node.child_by_field_name("name") is None
                    and type_node.type in (constants.STRUCT_SPECIFIER, constants.UNION_SPECIFIER)
                ):
                    # Anonymous struct/union member: its fields belong to the outer layout.
                    self._fill_struct_members(decl, nested_body)
                continue
            window = self._unit.tokens.window(field_node)
            spellings = window.spellings()
            for declarator in declarators:
                name_node = declarator_name_node(declarator)
                if name_node is None:
                    continue
                name = self._node_text(name_node)
                idx = window.find(name, window.first_index(declarator))
                shape = scan_declarator(spellings, idx)
                if shape.inherits_type:
                    if not decl.entries:
                        raise TypeResolutionError(
                            f"Field {name} in {decl.display_name} has no type to inherit"
                        )
                    type_text = decl.entries[-1].type
                else:
                    type_text = window.concat(0, shape.type_end)
                decl.entries.append(
                    StructMember(
                        name=name,
                        type=type_text,
                        n_ptrs=shape.pointer_depth,
                        array_size=self._array_size(shape),
                    )
                )

    def _array_size(self, shape: DeclaratorShape) -> int:
        if shape.array_size or not shape.array_size_spelling:
            return shape.array_size
        value = self.lookup_enum_value(shape.array_size_spelling)
        if value is None:
            logger.debug("Array size %s is not a known constant", shape.array_size_spelling)
            return 0
        return value

    # ── enums ────────────────────────────────────────────────────

    def register_enum(self, name: str, node) -> EnumDeclaration:
        identity = Identity.of(node)
        body = node.child_by_field_name("body")
        existing = next(
            (e for e in self.enums if _same_declaration(identity, name, e)), None
        )
        if existing is not None:
            if not existing.entries and body is not None:
                self._fill_enum_members(existing, body)
            return existing

        decl = EnumDeclaration(name=name, identity=identity)
        # Registered before its members so later initializers can name earlier ones.
        self.enums.append(decl)
        if body is not None:
            self._fill_enum_members(decl, body)
        logger.debug(
            "Registered enum %s with %d members", decl.display_name, len(decl.entries)
        )
        return decl

    def _fill_enum_members(self, decl: EnumDeclaration, body) -> None:
        folder = ConstantFolder(self._unit.source, self.find_enum_value)
        for enumerator in body.named_children:
            if enumerator.type != constants.ENUMERATOR:
                continue
            name = self._node_text(enumerator.child_by_field_name("name"))
            value_node = enumerator.child_by_field_name("value")
            if value_node is not None:
                value = folder.evaluate(value_node)
            elif not decl.entries:
                value = 0
            else:
                value = decl.entries[-1].value + 1
            decl.entries.append(EnumMember(name=name, value=value))

    # ── typedefs ─────────────────────────────────────────────────

    def register_typedef(
        self,
        name: str,
        tokens: TokenIndex,
        name_index: int,
        node,
        struct_decl: StructDeclaration | None = None,
        enum_decl: EnumDeclaration | None = None,
        previous: TypedefDeclaration | None = None,
    ) -> TypedefDeclaration:
        """Register typedef *name* declared at *name_index* of the typedef's tokens.

        Without an underlying struct/enum the tokens between ``typedef`` and
        the name become the proxy type string.
        """
        shape = scan_declarator(tokens.spellings(), name_index)
        decl = TypedefDeclaration(
            name=name,
            identity=Identity.of(node),
            struct_decl=struct_decl,
            enum_decl=enum_decl,
            n_ptrs=shape.pointer_depth,
            array_size=self._array_size(shape),
            is_array=shape.is_array,
        )
        if struct_decl is None and enum_decl is None:
            if shape.inherits_type and previous is not None:
                base = previous.proxy.rstrip(" *")
                decl.proxy = " ".join([base] + ["*"] * shape.pointer_depth)
            else:
                type_start = tokens.find("typedef") + 1
                decl.proxy = tokens.concat(type_start, name_index - 1)
        self.typedefs.append(decl)
        logger.debug("Registered typedef %s -> %s", name, decl.describe())
        return decl

    # ── type resolution ──────────────────────────────────────────

    def resolve_type_for(self, node_or_name) -> TypeDescriptor:
        """Resolve a literal's type (a type_descriptor node or a spelling)."""
        if isinstance(node_or_name, str):
            return self._resolve_spelling(node_or_name, 0)
        node = node_or_name
        declarator = node.child_by_field_name("declarator")
        base_parts = [
            self._node_text(c)
            for c in node.named_children
            if c != declarator and c.type != "comment"
        ]
        if not base_parts:
            raise TypeResolutionError(f"Cannot derive a type from {self._node_text(node)!r}")
        base = self._resolve_spelling(" ".join(base_parts), 0)
        if declarator is None:
            return base
        pointers, is_array, array_size = self._abstract_shape(declarator)
        return TypeDescriptor(
            spelling=self._node_text(node),
            kind=base.kind,
            struct_decl=base.struct_decl,
            enum_decl=base.enum_decl,
            pointer_depth=base.pointer_depth + pointers,
            array_size=array_size if is_array else 0,
            is_array=is_array,
        )

    def _abstract_shape(self, declarator) -> tuple[int, bool, int]:
        pointers = 0
        is_array = False
        array_size = 0
        node = declarator
        while node is not None:
            if node.type == "abstract_pointer_declarator":
                pointers += 1
            elif node.type == "abstract_array_declarator" and not is_array:
                is_array = True
                size_node = node.child_by_field_name("size")
                if size_node is not None:
                    size_text = self._node_text(size_node)
                    array_size = parse_c_integer(size_text, default=0) or (
                        self.lookup_enum_value(size_text) or 0
                    )
            inner = node.child_by_field_name("declarator")
            if inner is None:
                inner = next(
                    (
                        c
                        for c in node.named_children
                        if c.type.startswith("abstract_")
                    ),
                    None,
                )
            node = inner
        return pointers, is_array, array_size

    def _resolve_spelling(self, spelling: str, depth: int) -> TypeDescriptor:
        if depth > constants.MAX_TYPEDEF_CHAIN:
            raise TypeResolutionError(f"Typedef chain too deep while resolving {spelling}")
        words = [
            w
            for w in spelling.replace("*", " * ").split()
            if w not in constants.TYPE_QUALIFIERS
        ]
        stars = words.count("*")
        words = [w for w in words if w != "*"]
        if not words:
            raise TypeResolutionError(f"Cannot derive a type from {spelling!r}")

        head = words[0]
        tag = words[1] if len(words) > 1 else ""
        if head == "struct":
            decl = self.find_struct(tag)
            return TypeDescriptor(
                spelling=spelling, kind=TypeKind.STRUCT, struct_decl=decl, pointer_depth=stars
            )
        if head == "enum":
            return TypeDescriptor(
                spelling=spelling,
                kind=TypeKind.ENUM,
                enum_decl=self.find_enum(tag),
                pointer_depth=stars,
            )
        if head == "union":
            return TypeDescriptor(spelling=spelling, kind=TypeKind.OPAQUE, pointer_depth=stars)
        if all(w in constants.PRIMITIVE_TYPE_WORDS for w in words):
            return TypeDescriptor(spelling=spelling, kind=TypeKind.SCALAR, pointer_depth=stars)

        typedef = self.find_typedef(head) if len(words) == 1 else None
        if typedef is None:
            logger.debug("Type %s is not declared in this file", spelling)
            return TypeDescriptor(spelling=spelling, kind=TypeKind.OPAQUE, pointer_depth=stars)
        if typedef.struct_decl is not None or typedef.enum_decl is not None:
            return TypeDescriptor(
                spelling=spelling,
                kind=TypeKind.STRUCT if typedef.struct_decl is not None else TypeKind.ENUM,
                struct_decl=typedef.struct_decl,
                enum_decl=typedef.enum_decl,
                pointer_depth=stars + typedef.n_ptrs,
                array_size=typedef.array_size,
                is_array=typedef.is_array,
            )
        target = self._resolve_spelling(typedef.proxy, depth + 1)
        return TypeDescriptor(
            spelling=spelling,
            kind=target.kind,
            struct_decl=target.struct_decl,
            enum_decl=target.enum_decl,
            pointer_depth=stars + target.pointer_depth,
            array_size=typedef.array_size if typedef.is_array else target.array_size,
            is_array=typedef.is_array or target.is_array,
        )

    # ── reporting ────────────────────────────────────────────────

    def dump(self) -> str:
        lines = [f"N typedef entries: {len(self.typedefs)}"]
        for n, td in enumerate(self.typedefs):
            lines.append(f"[{n}]: {td.name} ({td.describe()})")
        lines.append(f"N struct entries: {len(self.structs)}")
        for n, s in enumerate(self.structs):
            lines.append(f"[{n}]: {s.display_name} @ {s.identity}")
            for m, member in enumerate(s.entries):
                lines.append(
                    f" [{m}]: {member.name} ({member.type}/{member.n_ptrs}/{member.array_size})"
                )
        lines.append(f"N enum entries: {len(self.enums)}")
        for n, e in enumerate(self.enums):
            lines.append(f"[{n}]: {e.display_name} @ {e.identity}")
            for m, member in enumerate(e.entries):
                lines.append(f" [{m}]: {member.name} = {member.value}")
        return "\n".join(lines)


class RegistryBuilder:
    """Walks a translation unit once and populates a DeclarationRegistry."""

    def __init__(self, unit: TranslationUnit):
        self._unit = unit
        self._registry = DeclarationRegistry(unit)
        self._DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.TYPEDEF: self._visit_typedef,
            NodeKind.STRUCT: self._visit_struct,
            NodeKind.ENUM: self._visit_enum,
        }

    def build(self) -> DeclarationRegistry:
        stack = [self._unit.root]
        while stack:
            node = stack.pop()
            handler = self._DISPATCH.get(classify(node))
            children = handler(node) if handler else node.children
            stack.extend(reversed(list(children)))
        logger.info(
            "Registry: %d structs, %d enums, %d typedefs",
            len(self._registry.structs),
            len(self._registry.enums),
            len(self._registry.typedefs),
        )
        return self._registry

    def _tag_name(self, node) -> str:
        name_node = node.child_by_field_name("name")
        return self._unit.text(name_node) if name_node is not None else ""

    def _is_forward_declaration(self, node) -> bool:
        parent = node.parent
        return (
            parent is not None
            and parent.type == constants.DECLARATION
            and not parent.children_by_field_name("declarator")
        )

    def _visit_struct(self, node) -> Iterable:
        if node.child_by_field_name("body") is not None or self._is_forward_declaration(node):
            self._registry.register_struct(self._tag_name(node), node)
        return node.children

    def _visit_enum(self, node) -> Iterable:
        if node.child_by_field_name("body") is not None or self._is_forward_declaration(node):
            self._registry.register_enum(self._tag_name(node), node)
        return ()

    def _visit_typedef(self, node) -> Iterable:
        type_node = node.child_by_field_name("type")
        struct_decl = enum_decl = None
        if type_node is not None and type_node.type == constants.STRUCT_SPECIFIER:
            struct_decl = self._registry.register_struct(self._tag_name(type_node), type_node)
        elif type_node is not None and type_node.type == constants.ENUM_SPECIFIER:
            enum_decl = self._registry.register_enum(self._tag_name(type_node), type_node)

        window = self._unit.tokens.window(node)
        previous = None
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator_name_node(declarator)
            if name_node is None:
                continue
            name = self._unit.text(name_node)
            name_index = window.find(name, window.first_index(declarator))
            previous = self._registry.register_typedef(
                name,
                window,
                name_index,
                node,
                struct_decl=struct_decl,
                enum_decl=enum_decl,
                previous=previous,
            )
        return type_node.children if type_node is not None else ()


def build_registry(unit: TranslationUnit) -> DeclarationRegistry:
    """Populate a fresh registry from *unit*."""
    return RegistryBuilder(unit).build()
