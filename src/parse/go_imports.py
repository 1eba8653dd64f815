"""Package clause and import extraction for Go files."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from parse.treesitter_go import iter_specs, node_text, parse_source, string_literal_value

if TYPE_CHECKING:
    from tree_sitter import Node

DOT_IMPORT = "."
BLANK_IMPORT = "_"


@dataclass(frozen=True)
class ImportSpec:
    """One import declaration: ``import name "path"``."""

    path: str
    name: str | None
    line: int


@dataclass(frozen=True)
class FileHeader:
    """Package clause and imports of one file."""

    package_name: str | None
    imports: tuple[ImportSpec, ...]


def package_name_of(root: Node) -> str | None:
    for child in root.named_children:
        if child.type == "package_clause":
            for ident in child.named_children:
                return node_text(ident)
    return None


def imports_of(root: Node) -> list[ImportSpec]:
    """Extract import specs from a parsed ``source_file`` node."""
    specs: list[ImportSpec] = []
    for decl in root.named_children:
        if decl.type != "import_declaration":
            continue
        for spec in iter_specs(decl, "import_spec"):
            path_node = spec.child_by_field_name("path")
            if path_node is None:
                continue
            name_node = spec.child_by_field_name("name")
            specs.append(
                ImportSpec(
                    path=string_literal_value(path_node),
                    name=node_text(name_node) if name_node is not None else None,
                    line=spec.start_point[0] + 1,
                )
            )
    return specs


def extract_header(source: bytes) -> FileHeader:
    """Parse a Go file and return its package clause and imports.

    Syntax errors elsewhere in the file are tolerated; only the header is
    read, which keeps workspace-wide scans best-effort.
    """
    root = parse_source(source).root_node
    return FileHeader(package_name=package_name_of(root), imports=tuple(imports_of(root)))


__all__ = [
    "BLANK_IMPORT",
    "DOT_IMPORT",
    "FileHeader",
    "ImportSpec",
    "extract_header",
    "imports_of",
    "package_name_of",
]
