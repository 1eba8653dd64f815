"""Rename planning and rewriting for go-unexport."""

from rename.planner import RenamePlan, plan_renames, unexported_name
from rename.rewriter import (
    PersistReport,
    RewriteError,
    RewriteResult,
    format_summary,
    persist,
    rewrite_program,
)

__all__ = [
    "PersistReport",
    "RenamePlan",
    "RewriteError",
    "RewriteResult",
    "format_summary",
    "persist",
    "plan_renames",
    "rewrite_program",
    "unexported_name",
]
