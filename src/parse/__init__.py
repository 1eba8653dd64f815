"""Go source toolkit: parsing, declarations and name resolution."""

from parse.go_imports import extract_header
from parse.loader import load_program
from parse.program import LoadError, Package, Program, Site, SourceFile, Symbol

__all__ = [
    "LoadError",
    "Package",
    "Program",
    "Site",
    "SourceFile",
    "Symbol",
    "extract_header",
    "load_program",
]
