"""Export safety analysis.

Proves which exported identifiers of a target package have no references
outside it. The work runs in a fixed order, each phase narrowing the next:

1. load the target alone (with its tests);
2. extract exported candidates from that load;
3. scan the workspace import graph and collect the reverse-dependency
   closure of the target;
4. load that closure in a single operation;
5. re-derive the candidates from the second load;
6. scan every use site of the second load for references from other
   packages.

Symbols from the first load are only used to decide whether the second load
is needed; they are never compared with symbols of the second load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from graph.importgraph import build_reverse_graph
from parse.loader import load_program

if TYPE_CHECKING:
    from collections.abc import Iterable

    from parse.program import Program, Symbol
    from scan.workspace import Workspace

logger = logging.getLogger(__name__)


def _matches(symbol: Symbol, identifiers: frozenset[str]) -> bool:
    if not identifiers:
        return True
    return symbol.name in identifiers or symbol.qualified_name in identifiers


def find_exported_symbols(
    program: Program,
    target: str,
    identifiers: Iterable[str] = (),
) -> set[Symbol]:
    """Collect the exported symbols defined in ``target``.

    Args:
        program: The load to extract from
        target: Import path of the package
        identifiers: Allowlist of names (``Name`` or ``Type.Member``);
            empty means every exported symbol

    Returns:
        Symbols whose defining package is ``target``, that are exported and
        matched by the allowlist.
    """
    allowlist = frozenset(identifiers)
    package = program.package(target)
    if package is None:
        return set()
    return {
        symbol
        for symbol in package.defined_symbols()
        if symbol.exported and _matches(symbol, allowlist)
    }


def find_external_references(
    program: Program,
    candidates: set[Symbol],
) -> dict[Symbol, list[str]]:
    """Map each externally referenced candidate to the reasons it is.

    A candidate is referenced externally when a use site bound to it lies in
    another package than the one defining it. A field or method is also
    treated as referenced when a selector or literal key of the same name
    could not be attributed to a type, or when the name is a protected
    interface method.
    """
    reasons: dict[Symbol, list[str]] = {}
    for package in program.sorted_packages():
        for site, symbol in sorted(package.uses.items()):
            if symbol in candidates and site.package != symbol.package:
                reasons.setdefault(symbol, []).append(
                    f"used in {site.package} at {site.path}:{site.line}:{site.col}"
                )

    unresolved = program.unresolved_members()
    for symbol in candidates:
        if symbol.is_member and symbol.name in unresolved:
            reasons.setdefault(symbol, []).append(
                f"member name {symbol.name} is referenced through an unresolved selector "
                "or required by an interface"
            )
    return reasons


@dataclass
class AnalysisResult:
    """Outcome of an export safety analysis.

    Attributes:
        target: Import path of the analyzed package
        affected_packages: Reverse-dependency closure used for the full load
        candidates: Exported symbols of the target (from the full load)
        safe: Candidates with no external reference
        unsafe: Candidates mapped to why they must stay exported
        scan_errors: Packages the import-graph scan skipped
        program: The full load the symbols belong to
    """

    target: str
    affected_packages: frozenset[str]
    candidates: frozenset[Symbol]
    safe: frozenset[Symbol]
    unsafe: dict[Symbol, list[str]] = field(default_factory=dict)
    scan_errors: dict[str, Exception] = field(default_factory=dict)
    program: Program | None = None

    def sorted_affected(self) -> list[str]:
        return sorted(self.affected_packages)

    def sorted_candidates(self) -> list[Symbol]:
        return sorted(self.candidates)

    def sorted_safe(self) -> list[Symbol]:
        return sorted(self.safe)

    def sorted_unsafe(self) -> list[Symbol]:
        return sorted(self.unsafe)


def analyze_exports(
    workspace: Workspace,
    target: str,
    identifiers: Iterable[str] = (),
    *,
    include_test_imports: bool = True,
    protected_members: Iterable[str] = (),
) -> AnalysisResult:
    """Determine which exported identifiers of ``target`` can be unexported.

    Args:
        workspace: Package index of the module
        target: Import path of the package to analyze
        identifiers: Optional allowlist restricting the candidates
        include_test_imports: Build the import graph with test imports
        protected_members: Method names that must stay exported

    Raises:
        LoadError: If either load fails; nothing has been modified then.
    """
    allowlist = frozenset(identifiers)
    protected = tuple(protected_members)

    scoped = load_program(workspace, [target], protected_members=protected)
    scoped_candidates = find_exported_symbols(scoped, target, allowlist)
    logger.debug(
        "Scoped load of %s: %d exported candidate(s)", target, len(scoped_candidates)
    )

    graph, scan_errors = build_reverse_graph(
        workspace, include_test_imports=include_test_imports
    )
    if scan_errors:
        logger.warning("While scanning Go workspace:")
        for path, error in sorted(scan_errors.items()):
            logger.warning("Package %r: %s.", path, error)

    affected: set[str] = {target}
    for symbol in scoped_candidates:
        affected |= graph.reverse_dependents(symbol.package)
    affected -= set(scan_errors)
    affected.add(target)

    if not scoped_candidates:
        return AnalysisResult(
            target=target,
            affected_packages=frozenset(affected),
            candidates=frozenset(),
            safe=frozenset(),
            scan_errors=scan_errors,
            program=scoped,
        )

    program = load_program(workspace, affected, protected_members=protected)
    candidates = find_exported_symbols(program, target, allowlist)
    unsafe = find_external_references(program, candidates)
    safe = frozenset(symbol for symbol in candidates if symbol not in unsafe)

    return AnalysisResult(
        target=target,
        affected_packages=frozenset(affected),
        candidates=frozenset(candidates),
        safe=safe,
        unsafe=unsafe,
        scan_errors=scan_errors,
        program=program,
    )


__all__ = [
    "AnalysisResult",
    "analyze_exports",
    "find_exported_symbols",
    "find_external_references",
]
