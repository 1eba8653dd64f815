"""Tree-sitter parser and node helpers for Go source."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tree_sitter import Language, Node, Parser, Tree
from tree_sitter_go import language as get_go_language

if TYPE_CHECKING:
    from collections.abc import Iterator

_PARSER: Parser | None = None


def _get_parser() -> Parser:
    """Initialize and return the Tree-sitter parser with Go language."""
    global _PARSER
    if _PARSER is None:
        lang = Language(get_go_language())
        _PARSER = Parser(lang)

    return _PARSER


def parse_source(source: bytes) -> Tree:
    return _get_parser().parse(source)


def node_text(node: Node) -> str:
    text = node.text
    return text.decode("utf8", errors="replace") if text is not None else ""


def first_error(node: Node) -> Node | None:
    """Return the first ERROR or MISSING node below ``node`` in source order."""
    if not node.has_error:
        return None
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        found = first_error(child)
        if found is not None:
            return found
    return node


def field_child(node: Node, *names: str, first_named: bool = False) -> Node | None:
    """Return the first present field child among ``names``.

    With ``first_named`` the first named child is the fallback, for grammar
    rules whose operand carries no field name.
    """
    for name in names:
        child = node.child_by_field_name(name)
        if child is not None:
            return child
    if first_named and node.named_children:
        return node.named_children[0]
    return None


def named_children_of(node: Node | None, *types: str) -> Iterator[Node]:
    """Yield named children, optionally restricted to the given node types."""
    if node is None:
        return
    for child in node.named_children:
        if not types or child.type in types:
            yield child


def iter_specs(node: Node, spec_type: str) -> Iterator[Node]:
    """Yield ``*_spec`` nodes of a declaration, flattening ``(...)`` groups."""
    for child in node.named_children:
        if child.type == spec_type:
            yield child
        elif child.type.endswith("_spec_list"):
            yield from iter_specs(child, spec_type)


def has_token(node: Node, token: str) -> bool:
    """Report whether an anonymous token is a direct child of ``node``."""
    return any(not child.is_named and child.type == token for child in node.children)


def string_literal_value(node: Node) -> str:
    """Unquote an interpreted or raw string literal (no escape processing)."""
    text = node_text(node)
    if len(text) >= 2 and text[0] in "\"`" and text[-1] == text[0]:
        return text[1:-1]
    return text


__all__ = [
    "field_child",
    "first_error",
    "has_token",
    "iter_specs",
    "named_children_of",
    "node_text",
    "parse_source",
    "string_literal_value",
]
