"""Type comparison, canonicalisation and validation used by the type checker."""

from __future__ import annotations

from collections.abc import Collection
from typing import Optional

from safelang import std_api
from safelang.syntax import (
    Block,
    ExprStatement,
    Literal,
    PathType,
    RawPtrType,
    RefType,
    TypeCheckError,
    TypeNode,
    format_type,
)

_INTEGER_TYPES = frozenset(
    {"i8", "i16", "i32", "i64", "isize", "u8", "u16", "u32", "u64", "usize"}
)


def split_generic_args(text: str) -> list[str]:
    """Split the inside of ``<...>`` at top-level commas."""
    out: list[str] = []
    depth = 0
    start = 0
    for idx, ch in enumerate(text):
        if ch == "<":
            depth += 1
        elif ch == ">":
            if depth == 0:
                raise TypeCheckError(f"Malformed generic args '{text}'")
            depth -= 1
        elif ch == "," and depth == 0:
            out.append(text[start:idx].strip())
            start = idx + 1
    if depth != 0:
        raise TypeCheckError(f"Malformed generic args '{text}'")
    tail = text[start:].strip()
    if tail:
        out.append(tail)
    return out


def parse_generic_type(name: str) -> Optional[tuple[str, list[str]]]:
    """Split ``Base<A, B>`` into its base and arguments; None if not generic."""
    start = name.find("<")
    if start < 0:
        return None
    if not name.endswith(">"):
        raise TypeCheckError(f"Malformed type '{name}'")
    base = name[:start].strip()
    return base, split_generic_args(name[start + 1 : -1])


def _strip_bracket(inner: str) -> str:
    return inner[:-1] if inner.endswith("]") else inner


def canonicalize_type_path(name: str) -> str:
    """Rewrite a type string with every known API type in its canonical form."""
    if name.startswith("&mut ["):
        return f"&mut [{canonicalize_type_path(_strip_bracket(name[6:]))}]"
    if name.startswith("&["):
        return f"&[{canonicalize_type_path(_strip_bracket(name[2:]))}]"
    if name.startswith("&mut "):
        return f"&mut {canonicalize_type_path(name[5:])}"
    if name.startswith("&"):
        return f"&{canonicalize_type_path(name[1:])}"
    if name.startswith("["):
        return f"[{canonicalize_type_path(_strip_bracket(name[1:]))}]"

    start = name.find("<")
    if start >= 0 and name.endswith(">"):
        base = name[:start].strip()
        try:
            args = split_generic_args(name[start + 1 : -1])
        except TypeCheckError:
            pass
        else:
            rendered = ", ".join(canonicalize_type_path(arg) for arg in args)
            return f"{std_api.normalize_type_name(base)}<{rendered}>"

    return std_api.normalize_type_name(name)


def types_equal(lhs: TypeNode, rhs: TypeNode) -> bool:
    """Structural equality of two types, treating API aliases as equal."""
    if isinstance(lhs, RawPtrType) and isinstance(rhs, RawPtrType):
        return types_equal(lhs.inner, rhs.inner)
    if isinstance(lhs, RefType) and isinstance(rhs, RefType):
        return lhs.mutable == rhs.mutable and types_equal(lhs.inner, rhs.inner)
    if isinstance(lhs, PathType) and isinstance(rhs, PathType):
        return canonicalize_type_path(lhs.name) == canonicalize_type_path(rhs.name)
    if isinstance(lhs, RefType) and isinstance(rhs, PathType):
        return canonicalize_type_path(format_type(lhs)) == canonicalize_type_path(rhs.name)
    if isinstance(lhs, PathType) and isinstance(rhs, RefType):
        return canonicalize_type_path(lhs.name) == canonicalize_type_path(format_type(rhs))
    return False


def is_compatible_int_target(ty: TypeNode) -> bool:
    """True if ``ty`` is one of the primitive integer types."""
    return isinstance(ty, PathType) and ty.name in _INTEGER_TYPES


def is_compatible_integer_return(block: Block, expected: TypeNode) -> bool:
    """True if ``block`` ends in an integer literal and ``expected`` is an integer type."""
    if not is_compatible_int_target(expected) or not block.statements:
        return False
    last = block.statements[-1]
    if not isinstance(last, ExprStatement) or not isinstance(last.expr, Literal):
        return False
    value = last.expr.value
    return isinstance(value, int) and not isinstance(value, bool)


def validate_type(ty: TypeNode, known_types: Collection[str]) -> None:
    """Raise TypeCheckError unless every name in ``ty`` is a known type."""
    if isinstance(ty, (RawPtrType, RefType)):
        validate_type(ty.inner, known_types)
    elif isinstance(ty, PathType):
        _validate_type_path(ty.name, known_types)
    else:
        raise TypeError(f"not a type node: {ty!r}")


def _strip_required_bracket(name: str, inner: str) -> str:
    if not inner.endswith("]"):
        raise TypeCheckError(f"Malformed type '{name}'")
    return inner[:-1]


def _validate_type_path(name: str, known_types: Collection[str]) -> None:
    if name.startswith("&mut ["):
        _validate_type_path(_strip_required_bracket(name, name[6:]), known_types)
        return
    if name.startswith("&["):
        _validate_type_path(_strip_required_bracket(name, name[2:]), known_types)
        return
    if name.startswith("&mut "):
        _validate_type_path(name[5:], known_types)
        return
    if name.startswith("&"):
        _validate_type_path(name[1:], known_types)
        return
    if name.startswith("["):
        _validate_type_path(_strip_required_bracket(name, name[1:]), known_types)
        return

    generic = parse_generic_type(name)
    if generic is not None:
        base, args = generic
        canonical_base = std_api.normalize_type_name(base)
        if canonical_base not in ("core::types::Option", "core::types::Result"):
            raise TypeCheckError(
                "Generic type syntax is not supported in v0.1 except Option/Result: "
                f"'{name}'"
            )
        expected = 1 if canonical_base == "core::types::Option" else 2
        if len(args) != expected:
            raise TypeCheckError(
                f"Type '{base}' expects {expected} generic argument(s), got {len(args)}"
            )
        for arg in args:
            _validate_type_path(arg, known_types)
        return

    if std_api.normalize_type_name(name) in known_types or name in known_types:
        return
    raise TypeCheckError(f"Unknown type '{name}'")