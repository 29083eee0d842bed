"""Static type checking of a parsed (and usually molded) program."""

from __future__ import annotations

from typing import Optional

from safelang import std_api
from safelang.syntax import (
    Binary,
    BinaryOp,
    Block,
    Break,
    Call,
    ConstStatement,
    Continue,
    Expression,
    ExprStatement,
    ForStatement,
    Function,
    IfStatement,
    LetStatement,
    Literal,
    PathType,
    RawPtrType,
    Ref,
    RefType,
    SourceFile,
    Statement,
    StructDef,
    TypeCheckError,
    TypeNode,
    Variable,
    format_type,
)
from safelang.typeops import (
    is_compatible_int_target,
    is_compatible_integer_return,
    types_equal,
    validate_type,
)

_PRIMITIVE_TYPES = (
    "i8", "i16", "i32", "i64", "isize",
    "u8", "u16", "u32", "u64", "usize",
    "bool", "char", "String", "()",
)

_PRINTABLE_TYPES = frozenset(
    {
        "String", "core::types::String", "bool", "char",
        "i8", "i16", "i32", "i64", "isize",
        "u8", "u16", "u32", "u64", "usize",
    }
)

_EQUALITY_OPS = frozenset({BinaryOp.EQUAL, BinaryOp.NOT_EQUAL})

Signature = tuple[list[TypeNode], Optional[TypeNode]]
Scope = dict[str, TypeNode]


def _unit() -> TypeNode:
    return PathType("()")


def _bool() -> TypeNode:
    return PathType("bool")


def _is_integer_literal(expr: Expression) -> bool:
    return (
        isinstance(expr, Literal)
        and isinstance(expr.value, int)
        and not isinstance(expr.value, bool)
    )


def is_printable_type(ty: TypeNode) -> bool:
    """True if values of ``ty`` can be passed to print/printl."""
    if isinstance(ty, RefType):
        return is_printable_type(ty.inner)
    if isinstance(ty, RawPtrType):
        return False
    if isinstance(ty, PathType):
        return ty.name in _PRINTABLE_TYPES
    raise TypeError(f"not a type node: {ty!r}")


class TypeChecker:
    """Checks function signatures, bindings, calls and return types."""

    def __init__(self) -> None:
        self.functions: dict[str, Signature] = {}
        self.builtins: set[str] = set()
        self.known_types: set[str] = set(_PRIMITIVE_TYPES)
        self.known_types.update(std_api.known_type_names())

        for func in std_api.api_functions():
            arg_types = [std_api.type_from_str(name) for name in func.args]
            ret = std_api.type_from_str(func.ret) if func.ret is not None else None
            self._register_builtin(func.name, arg_types, ret)
            if func.canonical != func.name:
                self._register_builtin(func.canonical, arg_types, ret)

        self.builtins.update(std_api.variadic_print_function_names())

    def _register_builtin(
        self, name: str, arg_types: list[TypeNode], ret: Optional[TypeNode]
    ) -> None:
        self.functions[name] = (list(arg_types), ret)
        self.builtins.add(name)

    # --------------------------------------------------------------- program

    def check(self, source: SourceFile) -> None:
        """Type-check ``source``; raise TypeCheckError at the first problem."""
        for item in source.items:
            if isinstance(item, StructDef):
                self.known_types.add(item.name)

        for item in source.items:
            if not isinstance(item, Function):
                continue
            if item.name in self.builtins:
                raise TypeCheckError(f"Builtin function '{item.name}' cannot be redefined")
            if item.name in self.functions:
                raise TypeCheckError(f"Duplicate function definition '{item.name}'")
            for arg in item.args:
                validate_type(arg.ty, self.known_types)
            if item.ret_type is not None:
                validate_type(item.ret_type, self.known_types)
            self.functions[item.name] = ([arg.ty for arg in item.args], item.ret_type)

        for item in source.items:
            if isinstance(item, Function):
                self._check_function(item)

    def _check_function(self, func: Function) -> None:
        symbols: Scope = {arg.name: arg.ty for arg in func.args}
        self._check_block(func.body, symbols, 0)

        inferred = self._infer_block(func.body, symbols, 0)
        expected = func.ret_type if func.ret_type is not None else _unit()
        if types_equal(inferred, expected):
            return
        if is_compatible_integer_return(func.body, expected):
            return
        raise TypeCheckError(
            f"Return Type Mismatch in '{func.name}': expected {format_type(expected)}, "
            f"got {format_type(inferred)}"
        )

    # ----------------------------------------------------------- statements

    def _check_block(self, block: Block, symbols: Scope, loop_depth: int) -> None:
        scope = dict(symbols)
        for stmt in block.statements:
            self._check_statement(stmt, scope, loop_depth, infer_branches=False)

    def _infer_block(self, block: Block, scope: Scope, loop_depth: int) -> TypeNode:
        if not block.statements:
            return _unit()
        block_scope = dict(scope)
        *leading, last = block.statements
        for stmt in leading:
            self._check_statement(stmt, block_scope, loop_depth, infer_branches=True)
        if isinstance(last, ExprStatement):
            return self._infer_expr(last.expr, block_scope, loop_depth)
        self._check_statement(last, block_scope, loop_depth, infer_branches=True)
        return _unit()

    def _check_statement(
        self, stmt: Statement, scope: Scope, loop_depth: int, infer_branches: bool
    ) -> None:
        if isinstance(stmt, (LetStatement, ConstStatement)):
            scope[stmt.name] = self._check_binding(
                stmt.name, stmt.ty, stmt.value, scope, loop_depth
            )
        elif isinstance(stmt, IfStatement):
            cond_ty = self._infer_expr(stmt.condition, scope, loop_depth)
            if not types_equal(cond_ty, _bool()):
                raise TypeCheckError(
                    f"If condition must be bool, got {format_type(cond_ty)}"
                )
            for branch in (stmt.then_block, stmt.else_block):
                if branch is None:
                    continue
                if infer_branches:
                    self._infer_block(branch, scope, loop_depth)
                else:
                    self._check_block(branch, scope, loop_depth)
        elif isinstance(stmt, ForStatement):
            start_ty = self._infer_expr(stmt.start, scope, loop_depth)
            end_ty = self._infer_expr(stmt.end, scope, loop_depth)
            var_ty = self._for_loop_var_type(stmt.start, start_ty, stmt.end, end_ty)
            loop_scope = dict(scope)
            loop_scope[stmt.var_name] = var_ty
            self._check_block(stmt.body, loop_scope, loop_depth + 1)
        elif isinstance(stmt, (Break, Continue)):
            if loop_depth == 0:
                raise TypeCheckError("break/continue can only be used inside for-loops")
        elif isinstance(stmt, ExprStatement):
            self._infer_expr(stmt.expr, scope, loop_depth)

    def _check_binding(
        self,
        name: str,
        annotation: Optional[TypeNode],
        value: Expression,
        scope: Scope,
        loop_depth: int,
    ) -> TypeNode:
        rhs_type = self._infer_expr(value, scope, loop_depth)
        if annotation is not None:
            validate_type(annotation, self.known_types)
            if not types_equal(annotation, rhs_type):
                raise TypeCheckError(
                    f"Type Mismatch: Variable '{name}' declared as {format_type(annotation)} "
                    f"but assigned {format_type(rhs_type)}"
                )
        return rhs_type

    @staticmethod
    def _for_loop_var_type(
        start_expr: Expression, start_ty: TypeNode, end_expr: Expression, end_ty: TypeNode
    ) -> TypeNode:
        if not is_compatible_int_target(start_ty) or not is_compatible_int_target(end_ty):
            raise TypeCheckError(
                f"For range bounds must be integers, got {format_type(start_ty)} "
                f"and {format_type(end_ty)}"
            )
        if types_equal(start_ty, end_ty):
            return start_ty
        if _is_integer_literal(start_expr):
            return end_ty
        if _is_integer_literal(end_expr):
            return start_ty
        raise TypeCheckError(
            f"For range type mismatch: {format_type(start_ty)} vs {format_type(end_ty)}. "
            "Use matching integer types or integer literals."
        )

    # ---------------------------------------------------------- expressions

    def _infer_expr(self, expr: Expression, scope: Scope, loop_depth: int) -> TypeNode:
        if isinstance(expr, Literal):
            if isinstance(expr.value, bool):
                return _bool()
            if isinstance(expr.value, int):
                return PathType("i32")
            return PathType("String")
        if isinstance(expr, Variable):
            if expr.name not in scope:
                raise TypeCheckError(f"Undefined variable: '{expr.name}'")
            return scope[expr.name]
        if isinstance(expr, Binary):
            return self._infer_binary(expr, scope, loop_depth)
        if isinstance(expr, Ref):
            return RefType(expr.mutable, self._infer_expr(expr.expr, scope, loop_depth))
        if isinstance(expr, Call):
            return self._infer_call(expr, scope, loop_depth)
        if isinstance(expr, Block):
            return self._infer_block(expr, scope, loop_depth)
        raise TypeError(f"not an expression: {expr!r}")

    def _infer_binary(self, expr: Binary, scope: Scope, loop_depth: int) -> TypeNode:
        left = self._infer_expr(expr.left, scope, loop_depth)
        right = self._infer_expr(expr.right, scope, loop_depth)
        both_int = is_compatible_int_target(left) and is_compatible_int_target(right)
        if expr.op in _EQUALITY_OPS:
            if types_equal(left, right) or both_int:
                return _bool()
            raise TypeCheckError(
                f"Comparison type mismatch: {format_type(left)} vs {format_type(right)}"
            )
        if both_int:
            return _bool()
        raise TypeCheckError(
            "Ordered comparison requires integer operands: "
            f"{format_type(left)} and {format_type(right)}"
        )

    def _infer_call(self, call: Call, scope: Scope, loop_depth: int) -> TypeNode:
        name = call.func_name
        if std_api.is_print_function(name) or std_api.is_printl_function(name):
            for arg in call.args:
                inferred = self._infer_expr(arg, scope, loop_depth)
                if not is_printable_type(inferred):
                    raise TypeCheckError(
                        f"print/printl does not support type {format_type(inferred)}"
                    )
            return _unit()

        if name not in self.functions:
            raise TypeCheckError(f"Undefined function: '{name}'")
        arg_types, ret_type = self.functions[name]

        if len(call.args) != len(arg_types):
            raise TypeCheckError(
                f"Arg count mismatch for '{name}': expected {len(arg_types)}, "
                f"got {len(call.args)}"
            )

        for position, (arg_expr, expected) in enumerate(zip(call.args, arg_types), start=1):
            inferred = self._infer_expr(arg_expr, scope, loop_depth)
            if _is_integer_literal(arg_expr) and is_compatible_int_target(expected):
                continue
            if not types_equal(inferred, expected):
                raise TypeCheckError(
                    f"Type Mismatch in arg {position} of '{name}': "
                    f"expected {format_type(expected)}, got {format_type(inferred)}"
                )

        return ret_type if ret_type is not None else _unit()