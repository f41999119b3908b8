"""Declaration Registry — data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .tokens import SourceLocation, source_location


@dataclass(frozen=True)
class Identity:
    """Stable identity of a declaration: where it sits in the file."""

    start_byte: int
    end_byte: int
    location: SourceLocation

    @classmethod
    def of(cls, node) -> Identity:
        return cls(node.start_byte, node.end_byte, source_location(node))

    def __str__(self) -> str:
        return str(self.location)


@dataclass
class StructMember:
    name: str
    type: str
    n_ptrs: int = 0
    array_size: int = 0


@dataclass
class StructDeclaration:
    name: str
    identity: Identity
    entries: list[StructMember] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or "<anonymous>"

    def member(self, name: str) -> StructMember | None:
        return next((m for m in self.entries if m.name == name), None)


@dataclass
class EnumMember:
    name: str
    value: int


@dataclass
class EnumDeclaration:
    name: str
    identity: Identity
    entries: list[EnumMember] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or "<anonymous>"

    def value_of(self, name: str) -> int | None:
        return next((m.value for m in self.entries if m.name == name), None)


@dataclass
class TypedefDeclaration:
    """A typedef name; exactly one of struct_decl / enum_decl / proxy is set."""

    name: str
    identity: Identity
    struct_decl: StructDeclaration | None = None
    enum_decl: EnumDeclaration | None = None
    proxy: str = ""
    n_ptrs: int = 0
    array_size: int = 0
    is_array: bool = False

    def describe(self) -> str:
        if self.struct_decl is not None:
            return f"struct {self.struct_decl.display_name}"
        if self.enum_decl is not None:
            return f"enum {self.enum_decl.display_name}"
        return self.proxy


class TypeKind(str, Enum):
    STRUCT = "struct"
    ENUM = "enum"
    SCALAR = "scalar"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class TypeDescriptor:
    """What a compound literal's type resolves to after typedef chasing."""

    spelling: str
    kind: TypeKind
    struct_decl: StructDeclaration | None = None
    enum_decl: EnumDeclaration | None = None
    pointer_depth: int = 0
    array_size: int = 0
    is_array: bool = False

    @property
    def has_layout(self) -> bool:
        """True when member-wise initializers can be checked against fields."""
        return (
            self.kind == TypeKind.STRUCT
            and self.struct_decl is not None
            and bool(self.struct_decl.entries)
            and self.pointer_depth == 0
            and not self.is_array
        )
