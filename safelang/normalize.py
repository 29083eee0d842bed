"""Type and call-name normalisation: the second molding phase."""

from __future__ import annotations

from safelang import std_api
from safelang.syntax import (
    Binary,
    Block,
    Call,
    ConstStatement,
    Expression,
    ExprStatement,
    ForStatement,
    Function,
    IfStatement,
    LetStatement,
    PathType,
    RawPtrType,
    Ref,
    RefType,
    SourceFile,
    TypeNode,
)

_POINTER_TYPES = {
    "HighPtr": "core::memory::safe::HighPtr",
    "ValidatedPtr": "core::memory::safe::ValidatedPtr",
    "RawPtr": "core::memory::raw::RawPtr",
}


def normalize_type(ty: TypeNode) -> TypeNode:
    """Return ``ty`` with short pointer type names replaced by their full paths."""
    if isinstance(ty, PathType):
        return PathType(_POINTER_TYPES.get(ty.name, ty.name))
    if isinstance(ty, RawPtrType):
        return RawPtrType(normalize_type(ty.inner))
    if isinstance(ty, RefType):
        return RefType(ty.mutable, normalize_type(ty.inner))
    raise TypeError(f"not a type node: {ty!r}")


def normalize_function_name(name: str) -> str:
    """Canonical path of a built-in function, or the name unchanged."""
    return std_api.canonical_name(name) or name


def normalize_types(source: SourceFile) -> None:
    """Normalise types and built-in call names in every function, in place."""
    for item in source.items:
        if not isinstance(item, Function):
            continue
        for arg in item.args:
            arg.ty = normalize_type(arg.ty)
        if item.ret_type is not None:
            item.ret_type = normalize_type(item.ret_type)
        _normalize_block(item.body)


def _normalize_block(block: Block) -> None:
    for stmt in block.statements:
        if isinstance(stmt, (LetStatement, ConstStatement)):
            if stmt.ty is not None:
                stmt.ty = normalize_type(stmt.ty)
            _normalize_expr(stmt.value)
        elif isinstance(stmt, IfStatement):
            _normalize_expr(stmt.condition)
            _normalize_block(stmt.then_block)
            if stmt.else_block is not None:
                _normalize_block(stmt.else_block)
        elif isinstance(stmt, ForStatement):
            _normalize_expr(stmt.start)
            _normalize_expr(stmt.end)
            _normalize_block(stmt.body)
        elif isinstance(stmt, ExprStatement):
            _normalize_expr(stmt.expr)


def _normalize_expr(expr: Expression) -> None:
    if isinstance(expr, Call):
        expr.func_name = normalize_function_name(expr.func_name)
        for arg in expr.args:
            _normalize_expr(arg)
    elif isinstance(expr, Binary):
        _normalize_expr(expr.left)
        _normalize_expr(expr.right)
    elif isinstance(expr, Ref):
        _normalize_expr(expr.expr)
    elif isinstance(expr, Block):
        _normalize_block(expr)