"""Symbol-resolved program model produced by one load operation.

Symbols are plain frozen values keyed by a stable surrogate (defining
package, qualified name, declaration position). Two loads of the same
declaration therefore compare equal, but nothing in the analysis relies on
that: symbols are always re-derived from the load being examined.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from utils import is_exported

if TYPE_CHECKING:
    from pathlib import Path

    from tree_sitter import Tree

    from parse.go_imports import ImportSpec

SymbolKind = Literal["const", "var", "type", "func", "field", "method"]

MEMBER_KINDS: frozenset[str] = frozenset({"field", "method"})


class LoadError(Exception):
    """Raised when a package cannot be parsed or resolved."""


@dataclass(frozen=True, order=True)
class Symbol:
    """A uniquely resolved named entity declared in a workspace package."""

    package: str
    qualified_name: str
    path: str
    line: int
    col: int
    name: str = field(compare=False)
    kind: SymbolKind = field(compare=False)

    @property
    def exported(self) -> bool:
        return is_exported(self.name)

    @property
    def is_member(self) -> bool:
        return self.kind in MEMBER_KINDS

    def __str__(self) -> str:
        return f"{self.kind} {self.package}.{self.qualified_name}"


@dataclass(frozen=True, order=True)
class Site:
    """An identifier occurrence: file, byte span and owning package."""

    path: str
    start_byte: int
    end_byte: int
    line: int = field(compare=False)
    col: int = field(compare=False)
    package: str = field(compare=False)


@dataclass
class SourceFile:
    """A parsed Go file; the unit of rewrite and persistence."""

    path: Path
    rel_path: str
    package: str
    source: bytes
    tree: Tree
    is_test: bool
    imports: tuple[ImportSpec, ...] = ()


@dataclass
class Package:
    """One loaded package and the bindings produced for it.

    Attributes:
        path: Import path (``<path>_test`` for an external test package)
        name: Package clause name
        files: Files in load order
        defs: Declaring occurrences
        uses: Referencing occurrences
        unresolved_members: Member names referenced through a receiver whose
            type could not be inferred
    """

    path: str
    name: str
    files: list[SourceFile] = field(default_factory=list)
    defs: dict[Site, Symbol] = field(default_factory=dict)
    uses: dict[Site, Symbol] = field(default_factory=dict)
    unresolved_members: set[str] = field(default_factory=set)

    def defined_symbols(self) -> set[Symbol]:
        return {sym for sym in self.defs.values() if sym.package == self.path}


@dataclass
class Program:
    """The result of one ``load_program`` call.

    Attributes:
        packages: Every loaded package by import path
        requested: Paths named in the load request and their external test
            packages; the rest were loaded only for type information
        protected_members: Member names that always count as referenced
    """

    packages: dict[str, Package] = field(default_factory=dict)
    requested: frozenset[str] = frozenset()
    protected_members: frozenset[str] = frozenset()

    def package(self, path: str) -> Package | None:
        return self.packages.get(path)

    def sorted_packages(self) -> list[Package]:
        return [self.packages[path] for path in sorted(self.packages)]

    def unresolved_members(self) -> set[str]:
        """Member names that may be referenced through an unattributed selector.

        Includes the protected names: every interface method declared in the
        load and the configured standard-library interface methods.
        """
        names: set[str] = set(self.protected_members)
        for pkg in self.packages.values():
            names |= pkg.unresolved_members
        return names


__all__ = [
    "LoadError",
    "MEMBER_KINDS",
    "Package",
    "Program",
    "Site",
    "SourceFile",
    "Symbol",
    "SymbolKind",
]
