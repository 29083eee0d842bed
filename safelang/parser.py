"""Recursive-descent parser turning a token stream into a syntax tree.

Every rule backtracks on failure, so alternatives are tried in order and the
error reported for a failed choice is the one raised by its last alternative.
The public entry points return the parsed value together with the tokens that
were left over.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional, Sequence, TypeVar

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
    Expression,
    ExprStatement,
    ForStatement,
    Function,
    FunctionSafety,
    IfStatement,
    Item,
    LetStatement,
    Literal,
    ParseError,
    PathType,
    RawPtrType,
    Ref,
    RefType,
    SourceFile,
    Statement,
    Token,
    TokenKind,
    TypeNode,
    Variable,
    format_type,
)

T = TypeVar("T")

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

_COMPARISON_OPS: tuple[tuple[TokenKind, BinaryOp], ...] = (
    (TokenKind.EQUAL_EQUAL, BinaryOp.EQUAL),
    (TokenKind.NOT_EQUAL, BinaryOp.NOT_EQUAL),
    (TokenKind.LESS_EQUAL, BinaryOp.LESS_EQUAL),
    (TokenKind.GREATER_EQUAL, BinaryOp.GREATER_EQUAL),
    (TokenKind.LESS_THAN, BinaryOp.LESS_THAN),
    (TokenKind.GREATER_THAN, BinaryOp.GREATER_THAN),
)


class _Backtrack(Exception):
    """Internal signal that a rule did not match at ``pos``."""

    def __init__(self, pos: int) -> None:
        super().__init__(pos)
        self.pos = pos


def _parse_i64(text: str) -> Optional[int]:
    if not _INTEGER_RE.fullmatch(text):
        return None
    value = int(text)
    if not _I64_MIN <= value <= _I64_MAX:
        return None
    return value


class _Parser:
    """Grammar rules; each takes a position and returns ``(value, new_pos)``."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = tuple(tokens)

    # ----------------------------------------------------------- primitives

    def expect(self, pos: int, kind: TokenKind, value: Optional[str] = None) -> int:
        if pos < len(self.tokens):
            token = self.tokens[pos]
            if token.kind is kind and (value is None or token.value == value):
                return pos + 1
        raise _Backtrack(pos)

    def accept(self, pos: int, kind: TokenKind, value: Optional[str] = None) -> Optional[int]:
        try:
            return self.expect(pos, kind, value)
        except _Backtrack:
            return None

    def _valued(self, pos: int, kind: TokenKind) -> tuple[str, int]:
        if pos < len(self.tokens):
            token = self.tokens[pos]
            if token.kind is kind:
                return token.value or "", pos + 1
        raise _Backtrack(pos)

    def identifier(self, pos: int) -> tuple[str, int]:
        return self._valued(pos, TokenKind.IDENTIFIER)

    @staticmethod
    def alt(pos: int, *rules: Callable[[int], tuple[T, int]]) -> tuple[T, int]:
        last: Optional[_Backtrack] = None
        for rule in rules:
            try:
                return rule(pos)
            except _Backtrack as exc:
                last = exc
        assert last is not None
        raise last

    @staticmethod
    def many0(pos: int, rule: Callable[[int], tuple[T, int]]) -> tuple[list[T], int]:
        items: list[T] = []
        while True:
            try:
                value, new_pos = rule(pos)
            except _Backtrack:
                return items, pos
            if new_pos == pos:
                raise _Backtrack(pos)
            items.append(value)
            pos = new_pos

    def separated_list0(
        self, pos: int, separator: TokenKind, rule: Callable[[int], tuple[T, int]]
    ) -> tuple[list[T], int]:
        try:
            first, pos = rule(pos)
        except _Backtrack:
            return [], pos
        items = [first]
        while True:
            after_sep = self.accept(pos, separator)
            if after_sep is None:
                return items, pos
            try:
                value, new_pos = rule(after_sep)
            except _Backtrack:
                return items, pos
            items.append(value)
            pos = new_pos

    def mut_flag(self, pos: int) -> tuple[bool, int]:
        after = self.accept(pos, TokenKind.IDENTIFIER, "mut")
        return (True, after) if after is not None else (False, pos)

    # ---------------------------------------------------------------- types

    def type_(self, pos: int) -> tuple[TypeNode, int]:
        after = self.accept(pos, TokenKind.STAR)
        if after is not None:
            inner, pos = self.type_(after)
            return RawPtrType(inner), pos

        after = self.accept(pos, TokenKind.AMPERSAND)
        if after is not None:
            mutable, pos = self.mut_flag(after)
            after_bracket = self.accept(pos, TokenKind.OPEN_BRACKET)
            if after_bracket is not None:
                inner, pos = self.type_(after_bracket)
                pos = self.expect(pos, TokenKind.CLOSE_BRACKET)
                prefix = "&mut " if mutable else "&"
                return PathType(f"{prefix}[{format_type(inner)}]"), pos
            inner, pos = self.type_(pos)
            return RefType(mutable, inner), pos

        after = self.accept(pos, TokenKind.OPEN_BRACKET)
        if after is not None:
            inner, pos = self.type_(after)
            pos = self.expect(pos, TokenKind.CLOSE_BRACKET)
            return PathType(f"[{format_type(inner)}]"), pos

        name, pos = self.identifier(pos)
        after = self.accept(pos, TokenKind.LESS_THAN)
        if after is None:
            return PathType(name), pos
        args, pos = self.separated_list0(after, TokenKind.COMMA, self.type_)
        pos = self.expect(pos, TokenKind.GREATER_THAN)
        rendered = ", ".join(format_type(arg) for arg in args)
        return PathType(f"{name}<{rendered}>"), pos

    def optional_type(self, pos: int) -> tuple[Optional[TypeNode], int]:
        try:
            after = self.expect(pos, TokenKind.ARROW)
            return self.type_(after)
        except _Backtrack:
            return None, pos

    def annotation(self, pos: int) -> tuple[Optional[TypeNode], int]:
        try:
            after = self.expect(pos, TokenKind.COLON)
            return self.type_(after)
        except _Backtrack:
            return None, pos

    # ---------------------------------------------------------- expressions

    def expression(self, pos: int) -> tuple[Expression, int]:
        expr, pos = self.primary(pos)
        while True:
            for kind, op in _COMPARISON_OPS:
                after = self.accept(pos, kind)
                if after is not None:
                    break
            else:
                return expr, pos
            rhs, pos = self.primary(after)
            expr = Binary(op, expr, rhs)

    def primary(self, pos: int) -> tuple[Expression, int]:
        return self.alt(
            pos, self.ref_expr, self.unsafe_block_expr, self.call, self.variable, self.literal
        )

    def literal(self, pos: int) -> tuple[Expression, int]:
        return self.alt(pos, self.true_literal, self.false_literal, self.integer, self.string)

    def true_literal(self, pos: int) -> tuple[Expression, int]:
        return Literal(True), self.expect(pos, TokenKind.TRUE)

    def false_literal(self, pos: int) -> tuple[Expression, int]:
        return Literal(False), self.expect(pos, TokenKind.FALSE)

    def integer(self, pos: int) -> tuple[Expression, int]:
        text, after = self._valued(pos, TokenKind.INTEGER)
        value = _parse_i64(text)
        if value is None:
            raise _Backtrack(pos)
        return Literal(value), after

    def string(self, pos: int) -> tuple[Expression, int]:
        text, after = self._valued(pos, TokenKind.STRING_LITERAL)
        return Literal(text), after

    def variable(self, pos: int) -> tuple[Expression, int]:
        name, pos = self.identifier(pos)
        return Variable(name), pos

    def call(self, pos: int) -> tuple[Expression, int]:
        name, pos = self.identifier(pos)
        pos = self.expect(pos, TokenKind.OPEN_PAREN)
        args, pos = self.separated_list0(pos, TokenKind.COMMA, self.expression)
        pos = self.expect(pos, TokenKind.CLOSE_PAREN)
        return Call(name, args), pos

    def unsafe_block_expr(self, pos: int) -> tuple[Expression, int]:
        pos = self.expect(pos, TokenKind.UNSAFE)
        pos = self.expect(pos, TokenKind.OPEN_BRACE)
        statements, pos = self.block_content(pos)
        pos = self.expect(pos, TokenKind.CLOSE_BRACE)
        return Block(statements, unsafe_block=True), pos

    def ref_expr(self, pos: int) -> tuple[Expression, int]:
        pos = self.expect(pos, TokenKind.AMPERSAND)
        mutable, pos = self.mut_flag(pos)
        inner, pos = self.expression(pos)
        return Ref(mutable, inner), pos

    def arg(self, pos: int) -> tuple[Arg, int]:
        name, pos = self.identifier(pos)
        pos = self.expect(pos, TokenKind.COLON)
        ty, pos = self.type_(pos)
        return Arg(name, ty), pos

    # ----------------------------------------------------------- statements

    def binding(self, pos: int, keyword: TokenKind) -> tuple[str, Optional[TypeNode], Expression, int]:
        pos = self.expect(pos, keyword)
        name, pos = self.identifier(pos)
        ty, pos = self.annotation(pos)
        pos = self.expect(pos, TokenKind.EQUAL)
        value, pos = self.expression(pos)
        return name, ty, value, pos

    def let(self, pos: int) -> tuple[Statement, int]:
        name, ty, value, pos = self.binding(pos, TokenKind.LET)
        return LetStatement(name, ty, value), pos

    def const(self, pos: int) -> tuple[Statement, int]:
        name, ty, value, pos = self.binding(pos, TokenKind.CONST)
        return ConstStatement(name, ty, value), pos

    def if_statement(self, pos: int) -> tuple[IfStatement, int]:
        pos = self.expect(pos, TokenKind.IF)
        condition, pos = self.expression(pos)
        then_block, pos = self.block(pos)
        else_block: Optional[Block] = None
        after_else = self.accept(pos, TokenKind.ELSE)
        if after_else is not None:
            try:
                nested, pos = self.if_statement(after_else)
                else_block = Block([nested], unsafe_block=False)
            except _Backtrack:
                else_block, pos = self.block(after_else)
        return IfStatement(condition, then_block, else_block), pos

    def for_statement(self, pos: int) -> tuple[Statement, int]:
        pos = self.expect(pos, TokenKind.FOR)
        var_name, pos = self.identifier(pos)
        pos = self.expect(pos, TokenKind.IN)
        start, pos = self.expression(pos)
        after = self.accept(pos, TokenKind.DOT_DOT_EQUAL)
        if after is not None:
            inclusive, pos = True, after
        else:
            inclusive, pos = False, self.expect(pos, TokenKind.DOT_DOT)
        end, pos = self.expression(pos)
        body, pos = self.block(pos)
        return ForStatement(var_name, start, end, inclusive, body), pos

    def break_(self, pos: int) -> tuple[Statement, int]:
        return Break(), self.expect(pos, TokenKind.BREAK)

    def continue_(self, pos: int) -> tuple[Statement, int]:
        return Continue(), self.expect(pos, TokenKind.CONTINUE)

    def expr_statement(self, pos: int) -> tuple[Statement, int]:
        expr, pos = self.expression(pos)
        return ExprStatement(expr), pos

    def block(self, pos: int) -> tuple[Block, int]:
        pos = self.expect(pos, TokenKind.OPEN_BRACE)
        statements, pos = self.block_content(pos)
        pos = self.expect(pos, TokenKind.CLOSE_BRACE)
        return Block(statements, unsafe_block=False), pos

    def statement(self, pos: int) -> tuple[Statement, int]:
        return self.alt(
            pos,
            self.const,
            self.let,
            self.if_statement,
            self.for_statement,
            self.break_,
            self.continue_,
            self.expr_statement,
        )

    def block_content(self, pos: int) -> tuple[list[Statement], int]:
        return self.many0(pos, self.statement)

    # ---------------------------------------------------------------- items

    def alias(self, pos: int) -> tuple[Item, int]:
        pos = self.expect(pos, TokenKind.ALIAS)
        name, pos = self.identifier(pos)
        pos = self.expect(pos, TokenKind.EQUAL)
        target, pos = self.identifier(pos)
        return Alias(name, target), pos

    def function(self, pos: int) -> tuple[Item, int]:
        safety = FunctionSafety.SAFE
        after = self.accept(pos, TokenKind.SAFE)
        if after is not None:
            pos = after
        else:
            after = self.accept(pos, TokenKind.RAW)
            if after is not None:
                safety, pos = FunctionSafety.RAW, after

        pos = self.expect(pos, TokenKind.FN)
        name, pos = self.identifier(pos)
        pos = self.expect(pos, TokenKind.OPEN_PAREN)
        args, pos = self.separated_list0(pos, TokenKind.COMMA, self.arg)
        pos = self.expect(pos, TokenKind.CLOSE_PAREN)
        ret_type, pos = self.optional_type(pos)
        pos = self.expect(pos, TokenKind.OPEN_BRACE)
        statements, pos = self.block_content(pos)
        pos = self.expect(pos, TokenKind.CLOSE_BRACE)
        body = Block(statements, unsafe_block=False)
        return Function(name, safety, args, ret_type, body), pos

    def source(self, pos: int) -> tuple[SourceFile, int]:
        items, pos = self.many0(pos, lambda p: self.alt(p, self.alias, self.function))
        return SourceFile(items), pos


def _kind_debug(token: Token) -> str:
    name = "".join(part.capitalize() for part in token.kind.name.split("_"))
    if token.kind in (TokenKind.IDENTIFIER, TokenKind.INTEGER, TokenKind.STRING_LITERAL):
        text = (token.value or "").replace("\\", "\\\\").replace('"', '\\"')
        return f'{name}("{text}")'
    return name


def _run(
    tokens: Iterable[Token], rule: Callable[[_Parser, int], tuple[T, int]]
) -> tuple[T, list[Token]]:
    parser = _Parser(tuple(tokens))
    try:
        value, pos = rule(parser, 0)
    except _Backtrack as exc:
        if exc.pos < len(parser.tokens):
            token = parser.tokens[exc.pos]
            raise ParseError(
                f"Parse error near token {_kind_debug(token)} "
                f"at line {token.line}, column {token.column}",
                token,
            ) from None
        raise ParseError("Parse error at end of input") from None
    return value, list(parser.tokens[pos:])


def parse(tokens: Iterable[Token]) -> tuple[SourceFile, list[Token]]:
    """Parse as many aliases and functions as possible; return them and the rest."""
    return _run(tokens, _Parser.source)


def parse_function(tokens: Iterable[Token]) -> tuple[Item, list[Token]]:
    """Parse one function definition; return it and the remaining tokens."""
    return _run(tokens, _Parser.function)


def parse_expression(tokens: Iterable[Token]) -> tuple[Expression, list[Token]]:
    """Parse one expression; return it and the remaining tokens."""
    return _run(tokens, _Parser.expression)


def parse_type(tokens: Iterable[Token]) -> tuple[TypeNode, list[Token]]:
    """Parse one type; return it and the remaining tokens."""
    return _run(tokens, _Parser.type_)


def parse_with_diagnostics(tokens: Iterable[Token]) -> SourceFile:
    """Parse a whole program, raising ParseError if any token is left over."""
    source, rest = parse(tokens)
    if rest:
        token = rest[0]
        raise ParseError(
            f"Parse error: unconsumed token {_kind_debug(token)} "
            f"at line {token.line}, column {token.column}",
            token,
        )
    return source