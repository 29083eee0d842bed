"""Alias expansion: the first molding phase."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from safelang.syntax import (
    Alias,
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
    MoldError,
    Ref,
    SourceFile,
)

DEFAULT_RULES_PATH = Path("rules.safe")

PathLike = Union[str, "os.PathLike[str]"]


def _validate_alias(target: str) -> None:
    if "unsafe" in target:
        raise MoldError(f"Phase 1 Error: Alias target '{target}' cannot include 'unsafe'")


def _register_alias(aliases: dict[str, str], name: str, target: str) -> None:
    _validate_alias(target)
    if name in aliases:
        raise MoldError(f"Phase 1 Error: Duplicate alias '{name}' is not allowed")
    aliases[name] = target


def load_alias_rules(path: PathLike, aliases: dict[str, str]) -> None:
    """Add the aliases declared in a rules file to ``aliases``; a missing file is ignored."""
    rules_file = Path(path)
    if not rules_file.exists():
        return
    try:
        contents = rules_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MoldError(f"Phase 1 Error: Failed to read rules.safe: {exc}") from exc

    for line_no, raw_line in enumerate(contents.split("\n"), start=1):
        line = raw_line.strip()
        if not line or line.startswith("//") or line.startswith("#"):
            continue
        invalid = MoldError(f"Phase 1 Error: Invalid alias syntax at line {line_no}")
        if not line.startswith("alias "):
            raise invalid
        parts = [part.strip() for part in line[len("alias "):].split("=")]
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise invalid
        _register_alias(aliases, parts[0], parts[1])


def resolve_alias_target(name: str, aliases: dict[str, str]) -> str:
    """Follow a chain of aliases to its final target."""
    seen: set[str] = set()
    current = name
    while current in aliases:
        if current in seen:
            raise MoldError(f"Phase 1 Error: Alias cycle detected while resolving '{name}'")
        seen.add(current)
        current = aliases[current]
    return current


def expand_aliases(
    source: SourceFile,
    aliases: dict[str, str],
    rules_path: PathLike = DEFAULT_RULES_PATH,
) -> dict[str, str]:
    """Collect aliases from the rules file and the source, then rewrite call names.

    Alias items are removed from ``source``; ``aliases`` receives every declared
    alias. Returns the fully resolved alias mapping.
    """
    load_alias_rules(rules_path, aliases)

    kept = []
    for item in source.items:
        if isinstance(item, Alias):
            _register_alias(aliases, item.name, item.target)
        else:
            kept.append(item)
    source.items = kept

    resolved = {name: resolve_alias_target(name, aliases) for name in aliases}

    for item in source.items:
        if isinstance(item, Function):
            _expand_block(item.body, resolved)
    return resolved


def _expand_block(block: Block, aliases: dict[str, str]) -> None:
    for stmt in block.statements:
        if isinstance(stmt, (LetStatement, ConstStatement)):
            _expand_expr(stmt.value, aliases)
        elif isinstance(stmt, IfStatement):
            _expand_expr(stmt.condition, aliases)
            _expand_block(stmt.then_block, aliases)
            if stmt.else_block is not None:
                _expand_block(stmt.else_block, aliases)
        elif isinstance(stmt, ForStatement):
            _expand_expr(stmt.start, aliases)
            _expand_expr(stmt.end, aliases)
            _expand_block(stmt.body, aliases)
        elif isinstance(stmt, ExprStatement):
            _expand_expr(stmt.expr, aliases)


def _expand_expr(expr: Expression, aliases: dict[str, str]) -> None:
    if isinstance(expr, Call):
        expr.func_name = aliases.get(expr.func_name, expr.func_name)
        for arg in expr.args:
            _expand_expr(arg, aliases)
    elif isinstance(expr, Ref):
        _expand_expr(expr.expr, aliases)
    elif isinstance(expr, Binary):
        _expand_expr(expr.left, aliases)
        _expand_expr(expr.right, aliases)
    elif isinstance(expr, Block):
        _expand_block(expr, aliases)