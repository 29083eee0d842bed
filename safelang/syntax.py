"""Tokens, syntax tree nodes and error types shared by every compiler stage."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Union


class SafeLangError(Exception):
    """Base class for all errors reported by the compiler."""


class ParseError(SafeLangError):
    """Raised when a token stream does not form a valid program."""

    def __init__(self, message: str, token: Optional["Token"] = None) -> None:
        super().__init__(message)
        self.token = token


class MoldError(SafeLangError):
    """Raised when a molding phase rejects the program."""


class TypeCheckError(SafeLangError):
    """Raised when the type checker rejects the program."""


class TokenKind(enum.Enum):
    """Kinds of tokens produced by the lexer."""

    IDENTIFIER = "identifier"
    INTEGER = "integer"
    STRING_LITERAL = "string"

    SAFE = "safe"
    RAW = "raw"
    FN = "fn"
    ALIAS = "alias"
    LET = "let"
    CONST = "const"
    IF = "if"
    ELSE = "else"
    FOR = "for"
    IN = "in"
    BREAK = "break"
    CONTINUE = "continue"
    TRUE = "true"
    FALSE = "false"
    UNSAFE = "unsafe"

    OPEN_PAREN = "("
    CLOSE_PAREN = ")"
    OPEN_BRACE = "{"
    CLOSE_BRACE = "}"
    OPEN_BRACKET = "["
    CLOSE_BRACKET = "]"
    COMMA = ","
    COLON = ":"
    EQUAL = "="
    EQUAL_EQUAL = "=="
    NOT_EQUAL = "!="
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    LESS_THAN = "<"
    GREATER_THAN = ">"
    DOT_DOT = ".."
    DOT_DOT_EQUAL = "..="
    ARROW = "->"
    STAR = "*"
    AMPERSAND = "&"


@dataclass(frozen=True)
class Token:
    """A lexed token; ``value`` holds the text of identifiers and literals."""

    kind: TokenKind
    value: Optional[str] = None
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        if self.value is None:
            return self.kind.name
        return f"{self.kind.name}({self.value!r})"


# ---------------------------------------------------------------- types


@dataclass
class PathType:
    """A named type such as ``u8`` or ``core::types::Option<u8>``."""

    name: str


@dataclass
class RawPtrType:
    """A raw pointer ``*T``."""

    inner: "TypeNode"


@dataclass
class RefType:
    """A reference ``&T`` or ``&mut T``."""

    mutable: bool
    inner: "TypeNode"


TypeNode = Union[PathType, RawPtrType, RefType]


def format_type(ty: TypeNode) -> str:
    """Render a type the way it is written in source."""
    if isinstance(ty, PathType):
        return ty.name
    if isinstance(ty, RawPtrType):
        return f"*{format_type(ty.inner)}"
    if isinstance(ty, RefType):
        prefix = "&mut " if ty.mutable else "&"
        return f"{prefix}{format_type(ty.inner)}"
    raise TypeError(f"not a type node: {ty!r}")


# ---------------------------------------------------------- expressions


class BinaryOp(enum.Enum):
    """Comparison operators."""

    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS_THAN = "<"
    LESS_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="


@dataclass
class Literal:
    """A boolean, integer or string literal."""

    value: Union[bool, int, str]


@dataclass
class Variable:
    """A reference to a named variable."""

    name: str


@dataclass
class Binary:
    """A binary comparison."""

    op: BinaryOp
    left: "Expression"
    right: "Expression"


@dataclass
class Ref:
    """A borrow expression ``&expr`` or ``&mut expr``."""

    mutable: bool
    expr: "Expression"


@dataclass
class Call:
    """A function call."""

    func_name: str
    args: list["Expression"] = field(default_factory=list)


@dataclass
class Block:
    """A sequence of statements, optionally marked ``unsafe``."""

    statements: list["Statement"] = field(default_factory=list)
    unsafe_block: bool = False


Expression = Union[Literal, Variable, Binary, Ref, Call, Block]


# ----------------------------------------------------------- statements


@dataclass
class LetStatement:
    """``let name[: ty] = value``."""

    name: str
    ty: Optional[TypeNode]
    value: Expression


@dataclass
class ConstStatement:
    """``const name[: ty] = value``."""

    name: str
    ty: Optional[TypeNode]
    value: Expression


@dataclass
class IfStatement:
    """``if condition { ... } [else { ... }]``."""

    condition: Expression
    then_block: Block
    else_block: Optional[Block] = None


@dataclass
class ForStatement:
    """``for var in start..end { ... }`` or with ``..=``."""

    var_name: str
    start: Expression
    end: Expression
    inclusive: bool
    body: Block


@dataclass
class Break:
    """``break``."""


@dataclass
class Continue:
    """``continue``."""


@dataclass
class ExprStatement:
    """An expression used as a statement."""

    expr: Expression


Statement = Union[
    LetStatement, ConstStatement, IfStatement, ForStatement, Break, Continue, ExprStatement
]


# ---------------------------------------------------------------- items


class FunctionSafety(enum.Enum):
    """Safety qualifier of a function."""

    SAFE = "safe"
    RAW = "raw"


@dataclass
class Arg:
    """A function parameter."""

    name: str
    ty: TypeNode


@dataclass
class Alias:
    """``alias name = target``."""

    name: str
    target: str


@dataclass
class Function:
    """A function definition."""

    name: str
    safety: FunctionSafety
    args: list[Arg]
    ret_type: Optional[TypeNode]
    body: Block


@dataclass
class StructDef:
    """A struct declaration, known to the type checker by name."""

    name: str


Item = Union[Alias, Function, StructDef]


@dataclass
class SourceFile:
    """A whole program."""

    items: list[Item] = field(default_factory=list)