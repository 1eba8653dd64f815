"""File scanning utilities for Go workspaces."""

from __future__ import annotations

from collections import defaultdict
from fnmatch import fnmatch
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

# Directory names the go tool never treats as part of a package tree.
_SKIPPED_DIR_NAMES = frozenset({"vendor", "testdata"})


def _is_skipped_dir(rel_parts: tuple[str, ...]) -> bool:
    for part in rel_parts:
        if part in _SKIPPED_DIR_NAMES:
            return True
        if part.startswith((".", "_")):
            return True
    return False


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _is_nested_module(directory: Path, root: Path) -> bool:
    """Report whether a directory below root belongs to another Go module."""
    current = directory
    while current != root:
        if (current / "go.mod").is_file():
            return True
        current = current.parent
    return False


def _iter_gitignore_files(root: Path) -> list[Path]:
    """Return sorted list of .gitignore files under root (including root)."""
    gitignore_paths = [root / ".gitignore"]
    gitignore_paths.extend(root.rglob(".gitignore"))
    unique_paths = {
        path for path in gitignore_paths if path.is_file() and not path.is_symlink()
    }
    return sorted(unique_paths, key=lambda p: p.relative_to(root).as_posix())


def _build_gitignore_matcher(
    root: Path,
    *,
    nested_gitignore: bool,
) -> Callable[[str], bool] | None:
    if not nested_gitignore:
        gitignore_path = root / ".gitignore"
        if gitignore_path.is_file():
            return cast("Callable[[str], bool]", parse_gitignore(gitignore_path))
        return None

    gitignore_paths = _iter_gitignore_files(root)
    if not gitignore_paths:
        return None

    matchers = [parse_gitignore(path) for path in gitignore_paths]

    def matches(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                continue
        return False

    return matches


def _should_include_file(
    path: Path,
    root: Path,
    gitignore_matches: Callable[[str], bool] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a Go source file should be included based on all filtering rules."""
    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, root):
        return False

    try:
        rel_path = path.relative_to(root)
    except ValueError:
        return False

    if _is_skipped_dir(rel_path.parts[:-1]):
        return False

    # Files starting with "_" or "." are ignored by the go tool.
    if rel_path.name.startswith(("_", ".")):
        return False

    if gitignore_matches is not None and gitignore_matches(str(path)):
        return False

    rel_path_str = rel_path.as_posix()
    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def find_go_package_dirs(
    root: Path,
    *,
    exclude_patterns: list[str] | None = None,
    nested_gitignore: bool = False,
) -> dict[Path, list[Path]]:
    """Group the Go source files under root by directory, respecting .gitignore.

    Args:
        root: Module root to search
        exclude_patterns: Optional list of fnmatch patterns; files matching
            any pattern are excluded
        nested_gitignore: Compose every .gitignore below root instead of
            the root one only

    Returns:
        Mapping of directory (relative to root) to its ``.go`` files, both
        sorted lexicographically for deterministic ordering. Directories
        belonging to a nested module (their own ``go.mod``) are skipped.
    """
    gitignore_matches = _build_gitignore_matcher(
        root,
        nested_gitignore=nested_gitignore,
    )

    by_dir: dict[Path, list[Path]] = defaultdict(list)
    for path in root.rglob("*.go"):
        if not _should_include_file(path, root, gitignore_matches, exclude_patterns):
            continue
        if _is_nested_module(path.parent, root):
            continue
        by_dir[path.parent.relative_to(root)].append(path)

    return {
        rel_dir: sorted(files, key=lambda p: p.name)
        for rel_dir, files in sorted(by_dir.items(), key=lambda kv: kv[0].as_posix())
    }


__all__ = ["_should_include_file", "find_go_package_dirs"]
