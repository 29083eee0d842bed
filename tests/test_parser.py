import pytest

from safelang.parser import (
    parse,
    parse_expression,
    parse_function,
    parse_type,
    parse_with_diagnostics,
)
from safelang.syntax import (
    Alias,
    Arg,
    Binary,
    BinaryOp,
    Block,
    Break,
    Call,
    ConstStatement,
    Continue,
    ExprStatement,
    ForStatement,
    Function,
    FunctionSafety,
    IfStatement,
    LetStatement,
    Literal,
    ParseError,
    PathType,
    RawPtrType,
    Ref,
    RefType,
    Token,
    TokenKind,
    Variable,
)

_VALUED = {TokenKind.IDENTIFIER, TokenKind.INTEGER, TokenKind.STRING_LITERAL}
_FIXED = {kind.value: kind for kind in TokenKind if kind not in _VALUED}


def lex(text):
    """Split on whitespace; each word becomes one token on line 1."""
    tokens = []
    for index, word in enumerate(text.split(), start=1):
        if word in _FIXED:
            tokens.append(Token(_FIXED[word], None, 1, index))
        elif word.lstrip("+-").isdigit():
            tokens.append(Token(TokenKind.INTEGER, word, 1, index))
        elif word.startswith('"'):
            tokens.append(Token(TokenKind.STRING_LITERAL, word.strip('"'), 1, index))
        else:
            tokens.append(Token(TokenKind.IDENTIFIER, word, 1, index))
    return tokens


# ---------------------------------------------------------------- types


@pytest.mark.parametrize(
    "text, expected",
    [
        ("u8", PathType("u8")),
        ("* u8", RawPtrType(PathType("u8"))),
        ("& String", RefType(False, PathType("String"))),
        ("& mut String", RefType(True, PathType("String"))),
        ("[ u8 ]", PathType("[u8]")),
        ("& [ u8 ]", PathType("&[u8]")),
        ("& mut [ u8 ]", PathType("&mut [u8]")),
        ("Option < u8 >", PathType("Option<u8>")),
        ("Result < u8 , i32 >", PathType("Result<u8, i32>")),
        ("Option < & String >", PathType("Option<&String>")),
    ],
)
def test_parse_type(text, expected):
    ty, rest = parse_type(lex(text))
    assert ty == expected
    assert rest == []


def test_parse_type_leaves_rest():
    ty, rest = parse_type(lex("u8 = 1"))
    assert ty == PathType("u8")
    assert [t.kind for t in rest] == [TokenKind.EQUAL, TokenKind.INTEGER]


def test_parse_type_unclosed_generic_fails():
    with pytest.raises(ParseError):
        parse_type(lex("Option < u8"))


# ---------------------------------------------------------- expressions


def test_literals():
    assert parse_expression(lex("true"))[0] == Literal(True)
    assert parse_expression(lex("false"))[0] == Literal(False)
    assert parse_expression(lex("42"))[0] == Literal(42)
    assert parse_expression(lex('"hi"'))[0] == Literal("hi")


def test_integer_i64_bounds():
    assert parse_expression(lex("9223372036854775807"))[0] == Literal(2**63 - 1)
    with pytest.raises(ParseError):
        parse_expression(lex("9223372036854775808"))


def test_call_with_args():
    expr, rest = parse_expression(lex("f ( 1 , x )"))
    assert expr == Call("f", [Literal(1), Variable("x")])
    assert rest == []


def test_call_without_args():
    assert parse_expression(lex("f ( )"))[0] == Call("f", [])


def test_trailing_comma_falls_back_to_variable():
    expr, rest = parse_expression(lex("f ( 1 , )"))
    assert expr == Variable("f")
    assert len(rest) == 4


def test_comparison_is_left_associative():
    expr, _ = parse_expression(lex("a < b == c"))
    assert expr == Binary(
        BinaryOp.EQUAL,
        Binary(BinaryOp.LESS_THAN, Variable("a"), Variable("b")),
        Variable("c"),
    )


@pytest.mark.parametrize(
    "symbol, op",
    [
        ("==", BinaryOp.EQUAL),
        ("!=", BinaryOp.NOT_EQUAL),
        ("<=", BinaryOp.LESS_EQUAL),
        (">=", BinaryOp.GREATER_EQUAL),
        ("<", BinaryOp.LESS_THAN),
        (">", BinaryOp.GREATER_THAN),
    ],
)
def test_each_comparison_operator(symbol, op):
    expr, _ = parse_expression(lex(f"a {symbol} 1"))
    assert expr == Binary(op, Variable("a"), Literal(1))


def test_ref_expression():
    assert parse_expression(lex("& mut x"))[0] == Ref(True, Variable("x"))
    assert parse_expression(lex("& x"))[0] == Ref(False, Variable("x"))


def test_ref_takes_whole_comparison():
    expr, _ = parse_expression(lex("& a == b"))
    assert expr == Ref(False, Binary(BinaryOp.EQUAL, Variable("a"), Variable("b")))


def test_unsafe_block_expression():
    expr, _ = parse_expression(lex("unsafe { raw_alloc ( 4 ) }"))
    assert expr == Block([ExprStatement(Call("raw_alloc", [Literal(4)]))], unsafe_block=True)


def test_missing_rhs_is_an_error():
    with pytest.raises(ParseError):
        parse_expression(lex("a =="))


# ----------------------------------------------------------- functions


def test_raw_function_with_signature():
    item, rest = parse_function(lex("raw fn f ( raw_p : * u8 , n : usize ) -> u8 { 1 }"))
    assert rest == []
    assert item == Function(
        "f",
        FunctionSafety.RAW,
        [Arg("raw_p", RawPtrType(PathType("u8"))), Arg("n", PathType("usize"))],
        PathType("u8"),
        Block([ExprStatement(Literal(1))], unsafe_block=False),
    )


def test_function_defaults_to_safe():
    item, _ = parse_function(lex("fn main ( ) { }"))
    assert item.safety is FunctionSafety.SAFE
    assert item.ret_type is None
    assert item.body == Block([], unsafe_block=False)


def test_explicit_safe_function():
    item, _ = parse_function(lex("safe fn g ( ) { }"))
    assert item.safety is FunctionSafety.SAFE
    assert item.name == "g"


def test_let_and_const_statements():
    item, _ = parse_function(lex("fn f ( ) { let high_a : u8 = 1 const high_b = high_a }"))
    assert item.body.statements == [
        LetStatement("high_a", PathType("u8"), Literal(1)),
        ConstStatement("high_b", None, Variable("high_a")),
    ]


def test_if_else_if_chain():
    item, _ = parse_function(lex("fn f ( ) { if a { } else if b { } else { 1 } }"))
    (stmt,) = item.body.statements
    assert stmt == IfStatement(
        Variable("a"),
        Block([]),
        Block(
            [IfStatement(Variable("b"), Block([]), Block([ExprStatement(Literal(1))]))],
            unsafe_block=False,
        ),
    )


def test_for_loop_inclusive_and_exclusive():
    item, _ = parse_function(
        lex("fn f ( ) { for i in 0 ..= n { break } for j in 0 .. 3 { continue } }")
    )
    first, second = item.body.statements
    assert first == ForStatement("i", Literal(0), Variable("n"), True, Block([Break()]))
    assert second == ForStatement("j", Literal(0), Literal(3), False, Block([Continue()]))


def test_parse_source_with_alias_and_functions():
    source, rest = parse(lex("alias out = printl fn a ( ) { } raw fn b ( ) { }"))
    assert rest == []
    assert source.items[0] == Alias("out", "printl")
    assert [item.name for item in source.items[1:]] == ["a", "b"]


def test_parse_stops_at_unparsable_item():
    source, rest = parse(lex("fn a ( ) { } x"))
    assert len(source.items) == 1
    assert rest[0].value == "x"


# ---------------------------------------------------------- diagnostics


def test_diagnostics_success():
    source = parse_with_diagnostics(lex("fn main ( ) { print ( 1 ) }"))
    assert source.items[0].body.statements == [ExprStatement(Call("print", [Literal(1)]))]


def test_diagnostics_arrow_without_type_rejects_function():
    with pytest.raises(ParseError) as info:
        parse_with_diagnostics(lex("fn f ( ) -> { }"))
    assert str(info.value) == "Parse error: unconsumed token Fn at line 1, column 1"


def test_error_at_end_of_input():
    with pytest.raises(ParseError) as info:
        parse_expression([])
    assert str(info.value) == "Parse error at end of input"
    assert info.value.token is None


def test_error_near_token():
    with pytest.raises(ParseError) as info:
        parse_expression(lex(")"))
    assert str(info.value) == "Parse error near token CloseParen at line 1, column 1"


def test_empty_program():
    assert parse_with_diagnostics([]).items == []