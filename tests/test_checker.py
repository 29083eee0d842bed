import pytest

from safelang.checker import TypeChecker, is_printable_type
from safelang.syntax import (
    Arg,
    Binary,
    BinaryOp,
    Block,
    Break,
    Call,
    ExprStatement,
    ForStatement,
    Function,
    FunctionSafety,
    IfStatement,
    LetStatement,
    Literal,
    PathType,
    RawPtrType,
    Ref,
    RefType,
    SourceFile,
    StructDef,
    TypeCheckError,
    Variable,
)


def fn(name, statements, args=(), ret=None):
    return Function(
        name=name,
        safety=FunctionSafety.SAFE,
        args=list(args),
        ret_type=ret,
        body=Block(list(statements)),
    )


def check(*items):
    checker = TypeChecker()
    checker.check(SourceFile(list(items)))
    return checker


def expect_error(message, *items):
    with pytest.raises(TypeCheckError) as info:
        check(*items)
    assert str(info.value) == message


def test_builtins_are_registered_under_both_names():
    checker = TypeChecker()
    assert "string_new" in checker.builtins
    assert "core::types::string_new" in checker.builtins
    assert "printl" in checker.builtins
    assert checker.functions["raw_read"] == (
        [PathType("core::memory::raw::RawPtr"), PathType("usize")],
        PathType("u8"),
    )


def test_builtin_cannot_be_redefined():
    expect_error("Builtin function 'print' cannot be redefined", fn("print", []))


def test_duplicate_function():
    expect_error(
        "Duplicate function definition 'high_f'", fn("high_f", []), fn("high_f", [])
    )


def test_unknown_argument_type():
    expect_error("Unknown type 'Widget'", fn("f", [], args=[Arg("a", PathType("Widget"))]))


def test_struct_names_become_known_types():
    checker = check(StructDef("Widget"), fn("f", [], args=[Arg("a", PathType("Widget"))]))
    assert "Widget" in checker.known_types
    assert checker.functions["f"] == ([PathType("Widget")], None)


def test_return_type_mismatch():
    expect_error(
        "Return Type Mismatch in 'f': expected i32, got String",
        fn("f", [ExprStatement(Literal("text"))], ret=PathType("i32")),
    )


def test_integer_literal_return_is_compatible():
    checker = check(fn("f", [ExprStatement(Literal(5))], ret=PathType("u8")))
    assert checker.functions["f"] == ([], PathType("u8"))


def test_undefined_variable():
    expect_error("Undefined variable: 'x'", fn("f", [ExprStatement(Variable("x"))]))


def test_undefined_function():
    expect_error("Undefined function: 'nope'", fn("f", [ExprStatement(Call("nope", []))]))


def test_arg_count_mismatch():
    expect_error(
        "Arg count mismatch for 'string_new': expected 0, got 1",
        fn("f", [ExprStatement(Call("string_new", [Literal(1)]))]),
    )


def test_arg_type_mismatch():
    expect_error(
        "Type Mismatch in arg 1 of 'option_some_u8': expected u8, got bool",
        fn("f", [LetStatement("x", None, Call("option_some_u8", [Literal(True)]))]),
    )


def test_integer_literal_argument_accepted_for_any_integer_param():
    body = [ExprStatement(Call("allocate_buffer", [Literal(16)]))]
    checker = check(fn("f", body, ret=PathType("HighPtr")))
    assert checker.functions["f"][1] == PathType("HighPtr")


def test_reference_to_short_string_matches_canonical_param():
    body = [
        LetStatement("n", PathType("usize"), Call("string_len", [Ref(False, Variable("s"))])),
        ExprStatement(Variable("n")),
    ]
    checker = check(fn("f", body, args=[Arg("s", PathType("String"))], ret=PathType("usize")))
    assert checker.functions["f"] == ([PathType("String")], PathType("usize"))


def test_let_annotation_mismatch():
    expect_error(
        "Type Mismatch: Variable 'x' declared as bool but assigned i32",
        fn("f", [LetStatement("x", PathType("bool"), Literal(1))]),
    )


def test_if_condition_must_be_bool():
    stmt = IfStatement(Literal(1), Block([]), None)
    expect_error("If condition must be bool, got i32", fn("f", [stmt]))


def test_break_outside_loop():
    expect_error("break/continue can only be used inside for-loops", fn("f", [Break()]))


def test_break_inside_loop_accepted():
    loop = ForStatement("i", Literal(0), Literal(3), False, Block([Break()]))
    checker = check(fn("f", [loop]))
    assert checker.functions["f"] == ([], None)


def test_for_bounds_must_be_integers():
    loop = ForStatement("i", Literal(0), Literal(True), False, Block([]))
    expect_error("For range bounds must be integers, got i32 and bool", fn("f", [loop]))


def test_for_bounds_type_mismatch():
    loop = ForStatement("i", Variable("a"), Variable("b"), False, Block([]))
    args = [Arg("a", PathType("u8")), Arg("b", PathType("i64"))]
    expect_error(
        "For range type mismatch: u8 vs i64. Use matching integer types or integer literals.",
        fn("f", [loop], args=args),
    )


def test_loop_variable_takes_non_literal_bound_type():
    body = Block([LetStatement("x", PathType("u8"), Variable("i"))])
    loop = ForStatement("i", Literal(0), Variable("n"), True, body)
    checker = check(fn("f", [loop], args=[Arg("n", PathType("u8"))]))
    assert checker.functions["f"][0] == [PathType("u8")]


def test_equality_comparison_mismatch():
    cond = Binary(BinaryOp.EQUAL, Literal(1), Literal(True))
    expect_error("Comparison type mismatch: i32 vs bool", fn("f", [ExprStatement(cond)]))


def test_ordered_comparison_requires_integers():
    cond = Binary(BinaryOp.LESS_THAN, Literal("a"), Literal(1))
    expect_error(
        "Ordered comparison requires integer operands: String and i32",
        fn("f", [ExprStatement(cond)]),
    )


def test_comparison_yields_bool():
    cond = Binary(BinaryOp.LESS_EQUAL, Literal(1), Literal(2))
    checker = check(fn("f", [ExprStatement(cond)], ret=PathType("bool")))
    assert checker.functions["f"][1] == PathType("bool")


def test_print_rejects_raw_pointer():
    body = [ExprStatement(Call("print", [Variable("p")]))]
    args = [Arg("p", RawPtrType(PathType("u8")))]
    expect_error("print/printl does not support type *u8", fn("f", body, args=args))


def test_is_printable_type():
    assert is_printable_type(PathType("core::types::String"))
    assert is_printable_type(RefType(False, PathType("u8")))
    assert not is_printable_type(RawPtrType(PathType("u8")))
    assert not is_printable_type(PathType("core::types::List"))