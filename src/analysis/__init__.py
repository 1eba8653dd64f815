"""Export safety analysis for go-unexport."""

from analysis.safety import (
    AnalysisResult,
    analyze_exports,
    find_exported_symbols,
    find_external_references,
)

__all__ = [
    "AnalysisResult",
    "analyze_exports",
    "find_exported_symbols",
    "find_external_references",
]
