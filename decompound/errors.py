"""Error taxonomy. Library code raises these; only the CLI reports and exits."""

from __future__ import annotations


class DecompoundError(Exception):
    """Base class for every unrecoverable conversion failure."""


class LookupFailure(DecompoundError):
    """A token, symbol, member or type could not be found."""


class TokenNotFoundError(LookupFailure):
    def __init__(self, spelling: str):
        super().__init__(f"Could not find token {spelling!r} in set")
        self.spelling = spelling


class TokenRangeError(LookupFailure):
    def __init__(self, index: int, size: int):
        super().__init__(f"Token index {index} out of range (0..{size - 1})")
        self.index = index


class UnknownEnumSymbolError(LookupFailure):
    def __init__(self, symbol: str):
        super().__init__(f"Unknown enum value {symbol}")
        self.symbol = symbol


class UnknownMemberError(LookupFailure):
    def __init__(self, member: str, struct_name: str):
        shown = struct_name or "<anonymous>"
        super().__init__(f"Unknown member .{member} in struct {shown}")
        self.member = member
        self.struct_name = struct_name


class TypeResolutionError(LookupFailure):
    """The type of a literal or typedef chain could not be derived."""


class ConstantExpressionError(DecompoundError):
    """Malformed enum initializer: unsupported operator, node or division by zero."""


class UnhoistableLiteralError(DecompoundError):
    """A compound literal sits where no declaration can be hoisted."""
