"""The molding pipeline: alias expansion, normalisation, unsafe wrapping, rules."""

from __future__ import annotations

from safelang.aliases import DEFAULT_RULES_PATH, PathLike, expand_aliases
from safelang.normalize import normalize_types
from safelang.rules import verify_rules
from safelang.syntax import Function, FunctionSafety, SourceFile
from safelang.unsafe_wrap import wrap_unsafe


class Molder:
    """Runs the four molding phases over a parsed program, in place."""

    def __init__(self, source: SourceFile, rules_path: PathLike = DEFAULT_RULES_PATH) -> None:
        self.source = source
        self.rules_path = rules_path
        self.aliases: dict[str, str] = {}
        self.raw_functions: set[str] = set()

    def mold(self) -> None:
        """Run every phase; raise MoldError at the first violation."""
        self.raw_functions.update(
            item.name
            for item in self.source.items
            if isinstance(item, Function) and item.safety is FunctionSafety.RAW
        )
        expand_aliases(self.source, self.aliases, self.rules_path)
        normalize_types(self.source)
        wrap_unsafe(self.source, frozenset(self.raw_functions))
        verify_rules(self.source)

    def output(self) -> SourceFile:
        """The program as transformed so far."""
        return self.source