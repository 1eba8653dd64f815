"""Sequential orchestration of one unexport run."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from analysis.safety import analyze_exports
from parse.program import LoadError
from rename.planner import plan_renames
from rename.rewriter import (
    RewriteError,
    RewriteResult,
    check_report,
    command_formatter,
    format_summary,
    persist,
    rewrite_program,
    unified_diff,
)
from rules.config import ConfigError, load_config, parse_tags
from scan.workspace import WorkspaceError, scan_workspace

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import TextIO

logger = logging.getLogger(__name__)


class UnexportError(Exception):
    """Base class for errors raised by the orchestration layer."""


class ArgumentError(UnexportError):
    """Raised when the command line is incomplete or inconsistent."""


# Every error that aborts a run with exit status 1.
FATAL_ERRORS = (UnexportError, ConfigError, WorkspaceError, LoadError, RewriteError)


def parse_identifiers(value: str | None) -> list[str]:
    """Split the comma-separated ``--identifier`` value.

    Examples:
        >>> parse_identifiers("Foo, Bar.Baz,")
        ['Foo', 'Bar.Baz']
        >>> parse_identifiers(None)
        []
    """
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


@dataclass
class RunSummary:
    """What a run found and changed."""

    package: str
    dry_run: bool
    occurrences: int = 0
    files: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    exported: list[str] = field(default_factory=list)
    unexported: list[str] = field(default_factory=list)
    kept: dict[str, list[str]] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "package": self.package,
            "dry_run": self.dry_run,
            "occurrences": self.occurrences,
            "files": self.files,
            "packages": self.packages,
            "exported": self.exported,
            "unexported": self.unexported,
            "kept": self.kept,
            "failed": self.failed,
        }


def run_unexport(
    root: Path,
    package: str | None,
    identifiers: Iterable[str] = (),
    *,
    dry_run: bool = False,
    verbose: bool = False,
    tags: str | None = None,
    diff: bool = False,
    out: TextIO | None = None,
) -> RunSummary:
    """Unexport every safe exported identifier of ``package`` under ``root``.

    Args:
        root: Go module root
        package: Import path of the target package
        identifiers: Optional allowlist of names to consider
        dry_run: Compute and report without writing
        verbose: Print diagnostics (and diffs on a dry run)
        tags: Extra build tags, comma or space separated
        diff: Print a unified diff of every touched file
        out: Stream diffs are written to (default: stdout)

    Returns:
        RunSummary of the run.

    Raises:
        ArgumentError: If no package is given.
        ConfigError, WorkspaceError, LoadError: Before anything is written.
        RewriteError: After every touched file was attempted, if any failed.
    """
    if not package:
        msg = "import path of the package must be given"
        raise ArgumentError(msg)
    package = package.rstrip("/")
    allowlist = list(identifiers)

    config = load_config(root)
    workspace = scan_workspace(root, config, extra_tags=parse_tags(tags or ""))
    if not workspace.has_package(package):
        msg = f"package {package!r} not found in module {workspace.module_path}"
        raise LoadError(msg)

    analysis = analyze_exports(
        workspace,
        package,
        allowlist,
        include_test_imports=config.include_test_imports,
        protected_members=config.interface_methods,
    )

    logger.debug("Possible affected packages:")
    for path in analysis.sorted_affected():
        logger.debug("\t%s", path)
    if analysis.program is not None:
        logger.debug("Loaded packages:")
        for loaded in analysis.program.sorted_packages():
            if loaded.path in analysis.program.requested:
                logger.debug("\t%s", loaded.path)
            else:
                logger.debug("\t%s (dependency only)", loaded.path)
    logger.debug("Exported identifiers are:")
    for symbol in analysis.sorted_candidates():
        logger.debug("\t%s", symbol)
    logger.debug("Safe to unexport identifiers are:")
    for symbol in analysis.sorted_safe():
        logger.debug("\t%s", symbol)
    for symbol in analysis.sorted_unsafe():
        for reason in analysis.unsafe[symbol]:
            logger.debug("Keeping %s: %s", symbol, reason)

    plan = plan_renames(analysis.safe, allowlist)
    summary = RunSummary(
        package=package,
        dry_run=dry_run,
        exported=[symbol.qualified_name for symbol in analysis.sorted_candidates()],
        unexported=[symbol.qualified_name for symbol in plan],
        kept={
            symbol.qualified_name: analysis.unsafe[symbol]
            for symbol in analysis.sorted_unsafe()
        },
    )
    if not plan or analysis.program is None:
        logger.info(format_summary(RewriteResult()))
        return summary

    result = rewrite_program(analysis.program, plan)
    summary.occurrences = result.occurrences
    summary.files = sorted(result.files)
    summary.packages = sorted(result.packages)

    if diff or (dry_run and verbose):
        stream = out or sys.stdout
        for line in unified_diff(result):
            stream.write(line)

    formatter = command_formatter(config.formatter) if config.formatter else None
    report = persist(result, dry_run=dry_run, formatter=formatter)
    summary.failed = dict(report.failed)

    logger.info(format_summary(result))
    check_report(report)
    return summary


__all__ = [
    "FATAL_ERRORS",
    "ArgumentError",
    "RunSummary",
    "UnexportError",
    "parse_identifiers",
    "run_unexport",
]
