"""Program loading: parse, collect declarations and resolve a package set.

``load_program`` is the single entry point. Each call is an independent
load operation producing its own ``Program``; nothing is cached between
calls.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from parse.declarations import DeclarationCollector, PackageDecls, build_file_context
from parse.go_imports import imports_of, package_name_of
from parse.name_resolution import TypeEngine, resolve_package
from parse.program import LoadError, Package, Program, SourceFile
from parse.treesitter_go import first_error, parse_source
from scan.buildtags import ConstraintSyntaxError
from utils import xtest_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from scan.workspace import Workspace

logger = logging.getLogger(__name__)


def _parse_file(workspace: Workspace, import_path: str, path: Path, data: bytes) -> SourceFile:
    rel_path = path.relative_to(workspace.root).as_posix()
    tree = parse_source(data)
    error = first_error(tree.root_node)
    if error is not None:
        line, col = error.start_point
        msg = f"{rel_path}:{line + 1}:{col + 1}: syntax error"
        raise LoadError(msg)
    return SourceFile(
        path=path,
        rel_path=rel_path,
        package=import_path,
        source=data,
        tree=tree,
        is_test=path.name.endswith("_test.go"),
        imports=tuple(imports_of(tree.root_node)),
    )


def _split_package_files(
    import_path: str,
    files: list[SourceFile],
) -> tuple[str, list[SourceFile], list[SourceFile]]:
    """Split a directory's files into the package proper and its external tests.

    Returns:
        (package name, package files, external test files)
    """
    names: dict[str, str] = {}
    for source_file in files:
        name = package_name_of(source_file.tree.root_node)
        if name is None:
            msg = f"{source_file.rel_path}: expected package clause"
            raise LoadError(msg)
        names[source_file.rel_path] = name

    base_names = {
        names[f.rel_path]
        for f in files
        if not (f.is_test and names[f.rel_path].endswith("_test"))
    }
    if not base_names:
        base_names = {names[f.rel_path][: -len("_test")] for f in files}
    if len(base_names) > 1:
        found = ", ".join(
            f"{names[f.rel_path]} ({f.rel_path})" for f in files
        )
        msg = f"found packages {found} in {import_path}"
        raise LoadError(msg)

    base_name = base_names.pop()
    own: list[SourceFile] = []
    external: list[SourceFile] = []
    for source_file in files:
        name = names[source_file.rel_path]
        if name == base_name:
            own.append(source_file)
        elif source_file.is_test and name == base_name + "_test":
            external.append(source_file)
        else:
            msg = (
                f"{source_file.rel_path}: package {name}; "
                f"expected {base_name} or {base_name}_test"
            )
            raise LoadError(msg)
    return base_name, own, external


def _read_package(
    workspace: Workspace,
    import_path: str,
    *,
    with_tests: bool,
) -> list[SourceFile]:
    try:
        selected = workspace.build_files(import_path)
    except (OSError, ConstraintSyntaxError) as exc:
        msg = f"package {import_path}: {exc}"
        raise LoadError(msg) from exc
    files = [
        _parse_file(workspace, import_path, path, data)
        for path, data in selected
        if with_tests or not path.name.endswith("_test.go")
    ]
    if not files:
        msg = f"package {import_path}: no buildable Go source files"
        raise LoadError(msg)
    return files


def _check_imports(workspace: Workspace, package: Package, queue: deque[str]) -> None:
    for source_file in package.files:
        for spec in source_file.imports:
            if workspace.has_package(spec.path):
                queue.append(spec.path)
            elif workspace.is_local_import(spec.path):
                msg = (
                    f"{source_file.rel_path}:{spec.line}: could not import "
                    f"{spec.path} (no such package in module {workspace.module_path})"
                )
                raise LoadError(msg)


def load_program(
    workspace: Workspace,
    import_paths: Iterable[str],
    *,
    include_tests: bool = True,
    protected_members: Iterable[str] = (),
) -> Program:
    """Parse and resolve a set of packages in one load operation.

    Args:
        workspace: Package index of the module
        import_paths: Packages to load
        include_tests: Also load the requested packages' ``_test.go`` files,
            including external test packages (``<path>_test``)
        protected_members: Member names treated as possibly referenced from
            outside the load (interface methods of other modules)

    Returns:
        A Program holding the requested packages, their test variants and
        every workspace package they transitively import.

    Raises:
        LoadError: If any package is missing, unreadable, syntactically
            invalid or inconsistent.
    """
    requested = sorted(set(import_paths))
    for path in requested:
        if not workspace.has_package(path):
            msg = f"cannot find package {path!r} in module {workspace.module_path}"
            raise LoadError(msg)

    packages: dict[str, Package] = {}
    requested_paths: set[str] = set()
    queue: deque[str] = deque(requested)
    while queue:
        path = queue.popleft()
        if path in packages:
            continue
        is_requested = path in requested
        files = _read_package(workspace, path, with_tests=is_requested and include_tests)
        name, own, external = _split_package_files(path, files)
        package = Package(path=path, name=name, files=own)
        packages[path] = package
        if is_requested:
            requested_paths.add(path)
        _check_imports(workspace, package, queue)
        if external:
            xtest = Package(path=xtest_path(path), name=name + "_test", files=external)
            for source_file in external:
                source_file.package = xtest.path
            packages[xtest.path] = xtest
            requested_paths.add(xtest.path)
            _check_imports(workspace, xtest, queue)

    loaded_names = {path: package.name for path, package in packages.items()}
    index: dict[str, PackageDecls] = {}
    for path, package in sorted(packages.items()):
        decls = PackageDecls(path=path, name=package.name)
        decls.files = [build_file_context(f, path, loaded_names) for f in package.files]
        index[path] = DeclarationCollector(package, decls).collect()

    engine = TypeEngine(index)
    for path, package in sorted(packages.items()):
        resolve_package(engine, package, index[path])

    protected = set(protected_members)
    for decls in index.values():
        protected |= decls.interface_methods

    logger.debug(
        "Loaded %d package(s), %d requested", len(packages), len(requested_paths)
    )
    return Program(
        packages=packages,
        requested=frozenset(requested_paths),
        protected_members=frozenset(protected),
    )


__all__ = ["LoadError", "load_program"]
