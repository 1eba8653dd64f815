"""Workspace-wide import graph for Go packages."""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from parse.go_imports import extract_header
from scan.buildtags import ConstraintSyntaxError

if TYPE_CHECKING:
    from scan.workspace import Workspace

logger = logging.getLogger(__name__)


class ScanError(Exception):
    """A package whose imports could not be determined."""


@dataclass
class ImportGraph:
    """Forward and reverse import edges between packages.

    Attributes:
        forward: Package -> packages it imports directly
        reverse: Package -> packages importing it directly
    """

    forward: dict[str, set[str]] = field(default_factory=dict)
    reverse: dict[str, set[str]] = field(default_factory=dict)

    def add_edge(self, importer: str, imported: str) -> None:
        self.forward.setdefault(importer, set()).add(imported)
        self.reverse.setdefault(imported, set()).add(importer)

    def reverse_dependents(self, *roots: str) -> set[str]:
        """Return every package that transitively imports one of ``roots``.

        The roots themselves are included in the result.
        """
        seen: set[str] = set(roots)
        queue: deque[str] = deque(roots)
        while queue:
            path = queue.popleft()
            for importer in self.reverse.get(path, ()):
                if importer not in seen:
                    seen.add(importer)
                    queue.append(importer)
        return seen


def _package_imports(
    workspace: Workspace,
    import_path: str,
    *,
    include_test_imports: bool,
) -> set[str]:
    """Collect the import paths of one package.

    Raises:
        OSError, ConstraintSyntaxError, ScanError: On unreadable files,
            malformed constraints or inconsistent package clauses.
    """
    names: set[str] = set()
    imports: set[str] = set()
    for path, data in workspace.build_files(import_path):
        is_test = path.name.endswith("_test.go")
        if is_test and not include_test_imports:
            continue
        header = extract_header(data)
        if header.package_name is None:
            msg = f"{path.name}: expected package clause"
            raise ScanError(msg)
        if not is_test:
            names.add(header.package_name)
        imports.update(spec.path for spec in header.imports)
    if len(names) > 1:
        msg = f"found packages {', '.join(sorted(names))}"
        raise ScanError(msg)
    imports.discard(import_path)
    return imports


def build_reverse_graph(
    workspace: Workspace,
    *,
    include_test_imports: bool = True,
) -> tuple[ImportGraph, dict[str, Exception]]:
    """Scan every package of the workspace and build its import graph.

    Args:
        workspace: Package index to scan
        include_test_imports: Count the imports of ``_test.go`` files, both
            in-package and external, as imports of their package. Without it,
            a package that reaches another only from its external tests is
            never reported as an importer.

    Returns:
        (graph, errors) where errors maps each package that could not be
        scanned to the reason. Such packages are absent from the graph.
    """
    graph = ImportGraph()
    errors: dict[str, Exception] = {}
    edges: dict[str, set[str]] = defaultdict(set)

    for import_path in workspace.package_paths():
        try:
            edges[import_path] = _package_imports(
                workspace,
                import_path,
                include_test_imports=include_test_imports,
            )
        except (OSError, ConstraintSyntaxError, ScanError) as exc:
            errors[import_path] = exc

    for importer, imported in sorted(edges.items()):
        graph.forward.setdefault(importer, set())
        for path in sorted(imported):
            graph.add_edge(importer, path)

    logger.debug(
        "Import graph: %d package(s), %d scan error(s)", len(graph.forward), len(errors)
    )
    return graph, errors


__all__ = ["ImportGraph", "ScanError", "build_reverse_graph"]
