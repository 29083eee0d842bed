"""Explicit unsafe: the third molding phase.

Calls to raw operations made outside an unsafe context are wrapped in an
``unsafe`` block, after which every raw call is checked to sit inside one.
"""

from __future__ import annotations

from collections.abc import Collection

from safelang.syntax import (
    Binary,
    Block,
    Call,
    ConstStatement,
    Expression,
    ExprStatement,
    ForStatement,
    Function,
    FunctionSafety,
    IfStatement,
    LetStatement,
    MoldError,
    Ref,
    SourceFile,
    Statement,
)


def is_raw_operation(name: str, raw_functions: Collection[str]) -> bool:
    """True if calling ``name`` needs an unsafe context."""
    return name.startswith("raw_") or "::raw::" in name or name in raw_functions


def expr_contains_raw_call(expr: Expression, raw_functions: Collection[str]) -> bool:
    """True if ``expr`` calls a raw operation anywhere within it."""
    if isinstance(expr, Call):
        return is_raw_operation(expr.func_name, raw_functions) or any(
            expr_contains_raw_call(arg, raw_functions) for arg in expr.args
        )
    if isinstance(expr, Binary):
        return expr_contains_raw_call(expr.left, raw_functions) or expr_contains_raw_call(
            expr.right, raw_functions
        )
    if isinstance(expr, Ref):
        return expr_contains_raw_call(expr.expr, raw_functions)
    if isinstance(expr, Block):
        return any(_stmt_contains_raw_call(stmt, raw_functions) for stmt in expr.statements)
    return False


def _stmt_contains_raw_call(stmt: Statement, raw_functions: Collection[str]) -> bool:
    if isinstance(stmt, (LetStatement, ConstStatement)):
        return expr_contains_raw_call(stmt.value, raw_functions)
    if isinstance(stmt, IfStatement):
        return (
            expr_contains_raw_call(stmt.condition, raw_functions)
            or expr_contains_raw_call(stmt.then_block, raw_functions)
            or (
                stmt.else_block is not None
                and expr_contains_raw_call(stmt.else_block, raw_functions)
            )
        )
    if isinstance(stmt, ForStatement):
        return (
            expr_contains_raw_call(stmt.start, raw_functions)
            or expr_contains_raw_call(stmt.end, raw_functions)
            or expr_contains_raw_call(stmt.body, raw_functions)
        )
    if isinstance(stmt, ExprStatement):
        return expr_contains_raw_call(stmt.expr, raw_functions)
    return False


def wrap_unsafe(source: SourceFile, raw_functions: Collection[str]) -> None:
    """Wrap raw calls in every function in place, then verify unsafe boundaries."""
    for item in source.items:
        if isinstance(item, Function):
            func_unsafe = item.safety is FunctionSafety.RAW
            _wrap_block(item.body, func_unsafe, raw_functions)
            _verify_block(item.body, func_unsafe, raw_functions)


def _wrap_block(block: Block, in_unsafe: bool, raw_functions: Collection[str]) -> None:
    current = in_unsafe or block.unsafe_block
    for stmt in block.statements:
        if isinstance(stmt, (LetStatement, ConstStatement)):
            stmt.value = _wrap_expr(stmt.value, current, raw_functions)
        elif isinstance(stmt, IfStatement):
            stmt.condition = _wrap_expr(stmt.condition, current, raw_functions)
            _wrap_block(stmt.then_block, current, raw_functions)
            if stmt.else_block is not None:
                _wrap_block(stmt.else_block, current, raw_functions)
        elif isinstance(stmt, ForStatement):
            stmt.start = _wrap_expr(stmt.start, current, raw_functions)
            stmt.end = _wrap_expr(stmt.end, current, raw_functions)
            _wrap_block(stmt.body, current, raw_functions)
        elif isinstance(stmt, ExprStatement):
            stmt.expr = _wrap_expr(stmt.expr, current, raw_functions)


def _wrap_expr(expr: Expression, in_unsafe: bool, raw_functions: Collection[str]) -> Expression:
    if isinstance(expr, Block) and expr.unsafe_block:
        _wrap_block(expr, True, raw_functions)
        return expr
    if in_unsafe:
        return _wrap_inner(expr, in_unsafe, raw_functions)
    if expr_contains_raw_call(expr, raw_functions):
        inner = _wrap_inner(expr, True, raw_functions)
        return Block([ExprStatement(inner)], unsafe_block=True)
    return _wrap_inner(expr, in_unsafe, raw_functions)


def _wrap_inner(expr: Expression, in_unsafe: bool, raw_functions: Collection[str]) -> Expression:
    if isinstance(expr, Call):
        expr.args = [_wrap_inner(arg, in_unsafe, raw_functions) for arg in expr.args]
    elif isinstance(expr, Binary):
        expr.left = _wrap_inner(expr.left, in_unsafe, raw_functions)
        expr.right = _wrap_inner(expr.right, in_unsafe, raw_functions)
    elif isinstance(expr, Ref):
        expr.expr = _wrap_inner(expr.expr, in_unsafe, raw_functions)
    elif isinstance(expr, Block):
        _wrap_block(expr, in_unsafe, raw_functions)
    return expr


def _verify_block(block: Block, in_unsafe: bool, raw_functions: Collection[str]) -> None:
    current = in_unsafe or block.unsafe_block
    for stmt in block.statements:
        if isinstance(stmt, (LetStatement, ConstStatement)):
            _verify_expr(stmt.value, current, raw_functions)
        elif isinstance(stmt, IfStatement):
            _verify_expr(stmt.condition, current, raw_functions)
            _verify_block(stmt.then_block, current, raw_functions)
            if stmt.else_block is not None:
                _verify_block(stmt.else_block, current, raw_functions)
        elif isinstance(stmt, ForStatement):
            _verify_expr(stmt.start, current, raw_functions)
            _verify_expr(stmt.end, current, raw_functions)
            _verify_block(stmt.body, current, raw_functions)
        elif isinstance(stmt, ExprStatement):
            _verify_expr(stmt.expr, current, raw_functions)


def _verify_expr(expr: Expression, in_unsafe: bool, raw_functions: Collection[str]) -> None:
    if isinstance(expr, Call):
        if not in_unsafe and is_raw_operation(expr.func_name, raw_functions):
            raise MoldError(
                f"Phase 3 Error: Raw function '{expr.func_name}' called outside unsafe block. "
                "Wrap with `unsafe { ... }`"
            )
        for arg in expr.args:
            _verify_expr(arg, in_unsafe, raw_functions)
    elif isinstance(expr, Binary):
        _verify_expr(expr.left, in_unsafe, raw_functions)
        _verify_expr(expr.right, in_unsafe, raw_functions)
    elif isinstance(expr, Ref):
        _verify_expr(expr.expr, in_unsafe, raw_functions)
    elif isinstance(expr, Block):
        _verify_block(expr, in_unsafe, raw_functions)