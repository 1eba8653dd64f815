"""Import graph index for go-unexport."""

from graph.importgraph import ImportGraph, ScanError, build_reverse_graph

__all__ = ["ImportGraph", "ScanError", "build_reverse_graph"]
