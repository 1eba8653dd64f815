"""Shared utilities for go-unexport."""

from __future__ import annotations

from pathlib import Path

XTEST_SUFFIX = "_test"


def plural(n: int) -> str:
    """Return the plural suffix for a count.

    Examples:
        >>> plural(1)
        ''
        >>> plural(0)
        's'
    """
    return "" if n == 1 else "s"


def is_exported(name: str) -> bool:
    """Report whether a Go identifier is exported (upper-case first letter).

    Examples:
        >>> is_exported("Foo")
        True
        >>> is_exported("foo")
        False
        >>> is_exported("_Foo")
        False
    """
    return bool(name) and name[0].isupper()


def dir_to_import_path(module_path: str, rel_dir: str | Path) -> str:
    """Convert a module-relative directory to a Go import path.

    Examples:
        >>> dir_to_import_path("example.com/m", ".")
        'example.com/m'
        >>> dir_to_import_path("example.com/m", "internal/store")
        'example.com/m/internal/store'
    """
    rel_str = rel_dir.as_posix() if isinstance(rel_dir, Path) else str(rel_dir)
    parts = [part for part in rel_str.replace("\\", "/").split("/") if part not in ("", ".")]
    if not parts:
        return module_path
    return "/".join([module_path, *parts])


def xtest_path(import_path: str) -> str:
    """Import path assigned to a package's external test package."""
    return import_path + XTEST_SUFFIX


def default_package_name(import_path: str) -> str:
    """Guess the package name a Go import path binds when not aliased.

    Used only for packages outside the workspace, whose package clause is
    never read.

    Examples:
        >>> default_package_name("fmt")
        'fmt'
        >>> default_package_name("github.com/go-yaml/yaml/v3")
        'yaml'
        >>> default_package_name("gopkg.in/check.v1")
        'check'
    """
    parts = [part for part in import_path.split("/") if part]
    if not parts:
        return import_path
    last = parts[-1]
    if len(parts) > 1 and last.startswith("v") and last[1:].isdigit():
        last = parts[-2]
    if "." in last:
        head, _, tail = last.rpartition(".")
        if tail.startswith("v") and tail[1:].isdigit():
            last = head
    if last.startswith("go-"):
        last = last[3:]
    return last.replace("-", "_").replace(".", "_")
