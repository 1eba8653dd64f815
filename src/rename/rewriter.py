"""Apply a rename plan to loaded files and persist the result.

Rewriting never mutates the loaded program: each touched file gets a new
byte string with the planned name spliced over every bound site.
"""

from __future__ import annotations

import difflib
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from utils import plural

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from parse.program import Program
    from rename.planner import RenamePlan

logger = logging.getLogger(__name__)


class RewriteError(Exception):
    """Raised when one or more touched files could not be written."""


class FormatError(Exception):
    """Raised when the formatter command rejects a rewritten file."""


@dataclass
class FileRewrite:
    """The rewritten content of one touched file."""

    path: Path
    rel_path: str
    package: str
    original: bytes
    rewritten: bytes
    occurrences: int


@dataclass
class RewriteResult:
    """Occurrence, file and package counts of an applied plan."""

    occurrences: int = 0
    files: dict[str, FileRewrite] = field(default_factory=dict)
    packages: set[str] = field(default_factory=set)

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def package_count(self) -> int:
        return len(self.packages)


@dataclass
class PersistReport:
    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


Formatter = Callable[[FileRewrite], bytes]


def splice(source: bytes, edits: dict[tuple[int, int], str]) -> bytes:
    """Replace byte spans of ``source``; spans must not overlap.

    Examples:
        >>> splice(b"var Foo = Foo", {(4, 7): "foo", (10, 13): "foo"})
        b'var foo = foo'
    """
    buffer = bytearray(source)
    for (start, end), text in sorted(edits.items(), reverse=True):
        buffer[start:end] = text.encode("utf-8")
    return bytes(buffer)


def rewrite_program(program: Program, plan: RenamePlan) -> RewriteResult:
    """Rename every definition and use site bound to a planned symbol.

    Args:
        program: The load the plan was computed from
        plan: Symbol to new-name mapping

    Returns:
        RewriteResult with the occurrence count (definitions plus uses,
        each site counted once), the rewritten bytes of every touched file
        and the set of touched packages.
    """
    edits: dict[str, dict[tuple[int, int], str]] = {}
    for package in program.sorted_packages():
        for sites in (package.defs, package.uses):
            for site, symbol in sites.items():
                if symbol in plan:
                    edits.setdefault(site.path, {})[(site.start_byte, site.end_byte)] = (
                        plan.new_name(symbol)
                    )

    result = RewriteResult()
    for package in program.sorted_packages():
        for source_file in package.files:
            file_edits = edits.get(source_file.rel_path)
            if not file_edits:
                continue
            result.files[source_file.rel_path] = FileRewrite(
                path=source_file.path,
                rel_path=source_file.rel_path,
                package=package.path,
                original=source_file.source,
                rewritten=splice(source_file.source, file_edits),
                occurrences=len(file_edits),
            )
            result.occurrences += len(file_edits)
            result.packages.add(package.path)
    return result


def identity_formatter(rewrite: FileRewrite) -> bytes:
    return rewrite.rewritten


def command_formatter(command: list[str]) -> Formatter:
    """Build a formatter that pipes source through ``command`` (e.g. gofmt)."""

    def run(rewrite: FileRewrite) -> bytes:
        try:
            completed = subprocess.run(
                command,
                input=rewrite.rewritten,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            msg = f"failed to run {command[0]}: {exc}"
            raise FormatError(msg) from exc
        if completed.returncode != 0:
            detail = completed.stderr.decode("utf-8", errors="replace").strip()
            msg = f"failed to pretty-print {rewrite.rel_path}: {detail}"
            raise FormatError(msg)
        return completed.stdout

    return run


def write_file_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` via a temporary file in the same directory."""
    mode = path.stat().st_mode & 0o777 if path.exists() else 0o644
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def persist(
    result: RewriteResult,
    *,
    dry_run: bool = False,
    formatter: Formatter | None = None,
) -> PersistReport:
    """Write every touched file, attempting all of them.

    Args:
        result: Output of ``rewrite_program``
        dry_run: Compute nothing further and write nothing
        formatter: Pretty-printer applied before writing (default: identity)

    Returns:
        PersistReport listing written files and per-file failures.
    """
    report = PersistReport()
    if dry_run:
        return report
    fmt = formatter or identity_formatter
    for rel_path in sorted(result.files):
        rewrite = result.files[rel_path]
        try:
            write_file_atomic(rewrite.path, fmt(rewrite))
        except (OSError, FormatError) as exc:
            logger.error("%s: %s", rel_path, exc)
            report.failed[rel_path] = str(exc)
            continue
        report.written.append(rel_path)
    return report


def unified_diff(result: RewriteResult) -> Iterator[str]:
    """Yield a unified diff of every touched file, in path order."""
    for rel_path in sorted(result.files):
        rewrite = result.files[rel_path]
        yield from difflib.unified_diff(
            rewrite.original.decode("utf-8", errors="replace").splitlines(keepends=True),
            rewrite.rewritten.decode("utf-8", errors="replace").splitlines(keepends=True),
            fromfile=f"a/{rel_path}",
            tofile=f"b/{rel_path}",
        )


def format_summary(result: RewriteResult) -> str:
    """Render the one-line run summary.

    Examples:
        >>> format_summary(RewriteResult(occurrences=1))
        'Unexported 1 occurrence in 0 files in 0 packages.'
    """
    return (
        f"Unexported {result.occurrences} occurrence{plural(result.occurrences)} "
        f"in {result.file_count} file{plural(result.file_count)} "
        f"in {result.package_count} package{plural(result.package_count)}."
    )


def check_report(report: PersistReport) -> None:
    """Raise the aggregate failure once every file has been attempted."""
    if report.failed:
        count = len(report.failed)
        msg = f"failed to rewrite {count} file{plural(count)}"
        raise RewriteError(msg)


__all__ = [
    "FileRewrite",
    "FormatError",
    "PersistReport",
    "RewriteError",
    "RewriteResult",
    "check_report",
    "command_formatter",
    "format_summary",
    "identity_formatter",
    "persist",
    "rewrite_program",
    "splice",
    "unified_diff",
]
