"""Go module discovery and the workspace package index."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from scan.buildtags import BuildContext, should_build
from scan.files import find_go_package_dirs
from utils import dir_to_import_path

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import UnexportConfig

logger = logging.getLogger(__name__)

_MODULE_LINE = re.compile(r'^\s*module\s+"?([^"\s]+)"?\s*(?://.*)?$')


class WorkspaceError(Exception):
    """Raised when the workspace root is not a usable Go module."""


def read_module_path(root: Path) -> str | None:
    """Return the module path declared in ``root/go.mod``, if any."""
    go_mod = root / "go.mod"
    if not go_mod.is_file():
        return None
    for line in go_mod.read_text(encoding="utf-8").splitlines():
        match = _MODULE_LINE.match(line)
        if match:
            return match.group(1)
    return None


@dataclass(frozen=True)
class PackageDir:
    """A directory of Go files forming one package (plus its tests)."""

    import_path: str
    rel_dir: Path
    files: tuple[Path, ...]


@dataclass
class Workspace:
    """Index of every package directory in a single Go module.

    Attributes:
        root: Absolute module root
        module_path: Module path from go.mod (or the configured override)
        build: Build context used to select files
        packages: Import path -> package directory
    """

    root: Path
    module_path: str
    build: BuildContext
    packages: dict[str, PackageDir] = field(default_factory=dict)

    def has_package(self, import_path: str) -> bool:
        return import_path in self.packages

    def is_local_import(self, import_path: str) -> bool:
        """Report whether an import path lies inside this module."""
        return import_path == self.module_path or import_path.startswith(
            self.module_path + "/"
        )

    def package_paths(self) -> list[str]:
        return sorted(self.packages)

    def build_files(self, import_path: str) -> list[tuple[Path, bytes]]:
        """Read the files of a package that satisfy the build context.

        Raises:
            KeyError: If the package is not part of the workspace.
            OSError: If a file cannot be read.
            ConstraintSyntaxError: If a build constraint is malformed.
        """
        selected: list[tuple[Path, bytes]] = []
        for path in self.packages[import_path].files:
            data = path.read_bytes()
            text = data.decode("utf-8", errors="replace")
            if should_build(path.name, text, self.build):
                selected.append((path, data))
        return selected


def scan_workspace(
    root: Path,
    config: UnexportConfig,
    *,
    extra_tags: list[str] | None = None,
) -> Workspace:
    """Build the package index for the Go module rooted at ``root``.

    Args:
        root: Module root directory
        config: Loaded configuration
        extra_tags: Build tags from the command line, added to the configured ones

    Raises:
        WorkspaceError: If root is not a directory.
    """
    root = root.resolve()
    if not root.is_dir():
        msg = f"workspace root is not a directory: {root}"
        raise WorkspaceError(msg)

    module_path = config.module or read_module_path(root) or root.name
    tags = frozenset([*config.tags, *(extra_tags or [])])
    build = BuildContext(goos=config.goos, goarch=config.goarch, tags=tags)

    workspace = Workspace(root=root, module_path=module_path, build=build)
    for rel_dir, files in find_go_package_dirs(
        root,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    ).items():
        import_path = dir_to_import_path(module_path, rel_dir)
        workspace.packages[import_path] = PackageDir(
            import_path=import_path,
            rel_dir=rel_dir,
            files=tuple(files),
        )

    logger.debug(
        "Scanned module %s: %d package director%s",
        module_path,
        len(workspace.packages),
        "y" if len(workspace.packages) == 1 else "ies",
    )
    return workspace


__all__ = [
    "PackageDir",
    "Workspace",
    "WorkspaceError",
    "read_module_path",
    "scan_workspace",
]
