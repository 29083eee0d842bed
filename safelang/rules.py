"""Rule verification: the fourth molding phase.

Checks variable naming by safety context, single definition of every
variable, unsafe types outside unsafe code, and the raw -> validated -> high
promotion chain inside unsafe code.
"""

from __future__ import annotations

from typing import Optional

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
    PathType,
    RawPtrType,
    Ref,
    RefType,
    SourceFile,
    Statement,
    TypeNode,
    Variable,
    format_type,
)

_VALIDATE_RAW_NAMES = frozenset({"validate_raw", "core::memory::safe::validate_raw"})
_INTO_HIGH_NAMES = frozenset({"into_high", "core::memory::safe::into_high"})


def is_unsafe_type(ty: TypeNode) -> bool:
    """True if ``ty`` may only appear inside unsafe code."""
    if isinstance(ty, RawPtrType):
        return True
    if isinstance(ty, RefType):
        return is_unsafe_type(ty.inner)
    if isinstance(ty, PathType):
        name = ty.name
        return (
            "::raw::" in name
            or "Raw<" in name
            or name.endswith("RawPtr")
            or "Validated<" in name
            or name.endswith("ValidatedPtr")
        )
    raise TypeError(f"not a type node: {ty!r}")


def verify_var_prefix(name: str, in_unsafe: bool) -> None:
    """Raise MoldError if ``name`` lacks the prefix its context requires."""
    if in_unsafe:
        if not name.startswith(("raw_", "validated_", "high_")):
            raise MoldError(
                f"Rule 5 Violation: Variable '{name}' in unsafe block must start with "
                "'raw_', 'validated_', or 'high_'."
            )
    elif not name.startswith("high_"):
        raise MoldError(
            f"Rule 5 Violation: Variable '{name}' outside unsafe must start with 'high_'."
        )


def verify_rules(source: SourceFile) -> None:
    """Check every function of ``source`` against the language rules."""
    defined: set[str] = set()
    for item in source.items:
        if isinstance(item, Function):
            func_unsafe = item.safety is FunctionSafety.RAW
            _verify_signature(item, defined, func_unsafe)
            _verify_block(item.body, defined, func_unsafe)


def _define(name: str, defined: set[str]) -> None:
    if name in defined:
        raise MoldError(f"Rule 4 Violation: Variable '{name}' already defined.")
    defined.add(name)


def _verify_type_safety(ty: TypeNode, in_unsafe: bool) -> None:
    if not in_unsafe and is_unsafe_type(ty):
        raise MoldError(
            f"Rule 3 Violation: Unsafe type '{format_type(ty)}' used outside unsafe block."
        )


def _verify_signature(func: Function, defined: set[str], in_unsafe: bool) -> None:
    for arg in func.args:
        _define(arg.name, defined)
        verify_var_prefix(arg.name, in_unsafe)
        _verify_type_safety(arg.ty, in_unsafe)
    if func.ret_type is not None:
        _verify_type_safety(func.ret_type, in_unsafe)


def _verify_block(block: Block, defined: set[str], in_unsafe: bool) -> None:
    current = in_unsafe or block.unsafe_block
    for stmt in block.statements:
        _verify_stmt(stmt, defined, current)


def _verify_binding(
    name: str, ty: Optional[TypeNode], value: Expression, defined: set[str], in_unsafe: bool
) -> None:
    _define(name, defined)
    verify_var_prefix(name, in_unsafe)
    if ty is not None:
        _verify_type_safety(ty, in_unsafe)
    _verify_expr(value, defined, in_unsafe)
    _verify_promotion(name, value, in_unsafe)


def _verify_stmt(stmt: Statement, defined: set[str], in_unsafe: bool) -> None:
    if isinstance(stmt, (LetStatement, ConstStatement)):
        _verify_binding(stmt.name, stmt.ty, stmt.value, defined, in_unsafe)
    elif isinstance(stmt, IfStatement):
        _verify_expr(stmt.condition, defined, in_unsafe)
        _verify_block(stmt.then_block, defined, in_unsafe)
        if stmt.else_block is not None:
            _verify_block(stmt.else_block, defined, in_unsafe)
    elif isinstance(stmt, ForStatement):
        _define(stmt.var_name, defined)
        verify_var_prefix(stmt.var_name, in_unsafe)
        _verify_expr(stmt.start, defined, in_unsafe)
        _verify_expr(stmt.end, defined, in_unsafe)
        _verify_block(stmt.body, defined, in_unsafe)
    elif isinstance(stmt, ExprStatement):
        _verify_expr(stmt.expr, defined, in_unsafe)


def _verify_expr(expr: Expression, defined: set[str], in_unsafe: bool) -> None:
    if isinstance(expr, Block):
        _verify_block(expr, defined, in_unsafe)
    elif isinstance(expr, Call):
        for arg in expr.args:
            _verify_expr(arg, defined, in_unsafe)
    elif isinstance(expr, Binary):
        _verify_expr(expr.left, defined, in_unsafe)
        _verify_expr(expr.right, defined, in_unsafe)
    elif isinstance(expr, Ref):
        _verify_expr(expr.expr, defined, in_unsafe)


def _verify_promotion(name: str, value: Expression, in_unsafe: bool) -> None:
    if not in_unsafe:
        return

    if name.startswith("validated_"):
        if not isinstance(value, Call) or value.func_name not in _VALIDATE_RAW_NAMES:
            raise MoldError(
                f"Rule 6 Violation: Validated variable '{name}' must be created via validate_raw()."
            )
        first = value.args[0] if value.args else None
        if not isinstance(first, Variable):
            raise MoldError(
                f"Rule 6 Violation: validate_raw() must take a raw_ variable for '{name}'."
            )
        if not first.name.startswith("raw_"):
            raise MoldError(
                f"Rule 6 Violation: validate_raw() must use a raw_ value (got '{first.name}')."
            )

    if name.startswith("high_"):
        if not isinstance(value, Call) or value.func_name not in _INTO_HIGH_NAMES:
            raise MoldError(
                f"Rule 6 Violation: High variable '{name}' in unsafe must be created via into_high()."
            )
        first = value.args[0] if value.args else None
        if not isinstance(first, Variable):
            raise MoldError(
                f"Rule 6 Violation: into_high() must take a validated_ variable for '{name}'."
            )
        if not first.name.startswith("validated_"):
            raise MoldError(
                f"Rule 6 Violation: into_high() must use a validated_ value (got '{first.name}')."
            )