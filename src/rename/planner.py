"""Rename planning: safe symbols to their unexported names."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from parse.program import Symbol


def unexported_name(name: str) -> str:
    """Return the unexported spelling of an identifier.

    The whole name is lower-cased one character at a time. A character whose
    lower case expands to several code points keeps only the first, so the
    result has the same length as ``name``. No check is made against
    identifiers already declared in the same scope.

    Examples:
        >>> unexported_name("Foo")
        'foo'
        >>> unexported_name("HTTPClient")
        'httpclient'
        >>> unexported_name("\\u0130ndex")
        'index'
    """
    return "".join(char.lower()[0] for char in name)


@dataclass(frozen=True)
class RenamePlan:
    """Immutable mapping of symbol to its new identifier text."""

    renames: Mapping[Symbol, str] = field(default_factory=lambda: MappingProxyType({}))

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.renames

    def __iter__(self) -> Iterator[Symbol]:
        return iter(sorted(self.renames))

    def __len__(self) -> int:
        return len(self.renames)

    def new_name(self, symbol: Symbol) -> str:
        return self.renames[symbol]

    def items(self) -> list[tuple[Symbol, str]]:
        return [(symbol, self.renames[symbol]) for symbol in self]


def plan_renames(safe: Iterable[Symbol], identifiers: Iterable[str] = ()) -> RenamePlan:
    """Build the rename plan for a set of safe symbols.

    Args:
        safe: Symbols proven to have no external references
        identifiers: Optional allowlist (``Name`` or ``Type.Member``); when
            given, symbols it does not match are left out of the plan

    Returns:
        A RenamePlan mapping each retained symbol to ``name.lower()``.
    """
    allowlist = frozenset(identifiers)
    renames = {
        symbol: unexported_name(symbol.name)
        for symbol in safe
        if not allowlist
        or symbol.name in allowlist
        or symbol.qualified_name in allowlist
    }
    return RenamePlan(renames=MappingProxyType(renames))


__all__ = ["RenamePlan", "plan_renames", "unexported_name"]
