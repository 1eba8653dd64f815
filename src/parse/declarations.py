"""Package-level declaration collection for Go packages.

First pass of a load: every package-level constant, variable, type,
function, method, struct field and interface method becomes a ``Symbol``
with a definition site. The nodes behind each declaration are kept so the
resolver can infer types through them later.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from parse.go_imports import BLANK_IMPORT, DOT_IMPORT
from parse.program import LoadError, Site, Symbol
from parse.treesitter_go import iter_specs, node_text
from utils import default_package_name

if TYPE_CHECKING:
    from tree_sitter import Node

    from parse.program import Package, SourceFile, SymbolKind

_INTERFACE_METHOD_NODES = ("method_elem", "method_spec")
_INTERFACE_EMBED_NODES = (
    "type_elem",
    "constraint_elem",
    "interface_type_name",
    "type_identifier",
    "qualified_type",
)


@dataclass
class FileContext:
    """Per-file name bindings: the package plus what the imports introduce."""

    file: SourceFile
    package: str
    import_names: dict[str, str] = field(default_factory=dict)
    dot_imports: list[str] = field(default_factory=list)


@dataclass
class Decl:
    """A declared symbol together with the syntax needed to type it."""

    symbol: Symbol
    ctx: FileContext
    type_node: Node | None = None
    value_node: Node | None = None
    value_index: int = 0
    params_node: Node | None = None
    result_node: Node | None = None


@dataclass
class EmbeddedField:
    name: str
    type_node: Node
    ctx: FileContext


@dataclass
class TypeDecl:
    """A package-level named type and its members."""

    decl: Decl
    type_node: Node
    alias: bool = False
    fields: dict[str, Decl] = field(default_factory=dict)
    embedded: list[EmbeddedField] = field(default_factory=list)
    methods: dict[str, Decl] = field(default_factory=dict)
    embedded_interfaces: list[Node] = field(default_factory=list)

    @property
    def is_interface(self) -> bool:
        return self.type_node.type == "interface_type"

    @property
    def is_struct(self) -> bool:
        return self.type_node.type == "struct_type"


@dataclass
class PackageDecls:
    """Package scope of one loaded package."""

    path: str
    name: str
    scope: dict[str, Decl] = field(default_factory=dict)
    types: dict[str, TypeDecl] = field(default_factory=dict)
    files: list[FileContext] = field(default_factory=list)
    interface_methods: set[str] = field(default_factory=set)


def make_site(ctx: FileContext, node: Node) -> Site:
    return Site(
        path=ctx.file.rel_path,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        line=node.start_point[0] + 1,
        col=node.start_point[1] + 1,
        package=ctx.package,
    )


def build_file_context(
    file: SourceFile,
    package: str,
    loaded_names: dict[str, str],
) -> FileContext:
    """Bind import names for a file.

    Args:
        file: The parsed file
        package: Import path of the package the file belongs to
        loaded_names: Package clause names of loaded workspace packages
    """
    ctx = FileContext(file=file, package=package)
    for spec in file.imports:
        if spec.name == BLANK_IMPORT:
            continue
        if spec.name == DOT_IMPORT:
            ctx.dot_imports.append(spec.path)
            continue
        name = spec.name or loaded_names.get(spec.path) or default_package_name(spec.path)
        ctx.import_names[name] = spec.path
    return ctx


def receiver_base_name(receiver: Node | None) -> tuple[str | None, list[Node]]:
    """Return the receiver's base type name and any type-parameter identifiers.

    ``func (s *List[T]) Len()`` yields ``("List", [<T>])``.
    """
    if receiver is None:
        return None, []
    for param in receiver.named_children:
        if param.type != "parameter_declaration":
            continue
        type_node = param.child_by_field_name("type")
        while type_node is not None and type_node.type in ("pointer_type", "parenthesized_type"):
            type_node = type_node.named_children[0] if type_node.named_children else None
        if type_node is None:
            return None, []
        type_params: list[Node] = []
        if type_node.type == "generic_type":
            args = type_node.child_by_field_name("type_arguments")
            type_params = [
                ident
                for arg in (args.named_children if args is not None else [])
                for ident in _identifiers_in(arg)
            ]
            type_node = type_node.child_by_field_name("type")
        if type_node is not None and type_node.type == "type_identifier":
            return node_text(type_node), type_params
        return None, type_params
    return None, []


def _identifiers_in(node: Node) -> list[Node]:
    if node.type in ("type_identifier", "identifier"):
        return [node]
    found: list[Node] = []
    for child in node.named_children:
        found.extend(_identifiers_in(child))
    return found


class DeclarationCollector:
    """Collects the package scope of one package into ``PackageDecls``."""

    def __init__(self, package: Package, decls: PackageDecls) -> None:
        self.package = package
        self.decls = decls
        self._pending_methods: dict[str, dict[str, Decl]] = {}

    def _symbol(
        self,
        ctx: FileContext,
        name_node: Node,
        kind: SymbolKind,
        qualified_name: str | None = None,
    ) -> Symbol:
        name = node_text(name_node)
        symbol = Symbol(
            package=self.decls.path,
            qualified_name=qualified_name or name,
            path=ctx.file.rel_path,
            line=name_node.start_point[0] + 1,
            col=name_node.start_point[1] + 1,
            name=name,
            kind=kind,
        )
        self.package.defs[make_site(ctx, name_node)] = symbol
        return symbol

    def _declare(self, decl: Decl) -> None:
        name = decl.symbol.name
        if name in self.decls.scope:
            previous = self.decls.scope[name].symbol
            msg = (
                f"{decl.ctx.file.rel_path}:{decl.symbol.line}:{decl.symbol.col}: "
                f"{name} redeclared in this block "
                f"(previous declaration at {previous.path}:{previous.line})"
            )
            raise LoadError(msg)
        self.decls.scope[name] = decl

    def collect_file(self, ctx: FileContext) -> None:
        root = ctx.file.tree.root_node
        for node in root.named_children:
            if node.type == "function_declaration":
                self._collect_function(ctx, node)
            elif node.type == "method_declaration":
                self._collect_method(ctx, node)
            elif node.type in ("const_declaration", "var_declaration"):
                self._collect_value_specs(ctx, node)
            elif node.type == "type_declaration":
                self._collect_types(ctx, node)

    def _collect_function(self, ctx: FileContext, node: Node) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(name_node)
        if name in ("init", "_"):
            return
        decl = Decl(
            symbol=self._symbol(ctx, name_node, "func"),
            ctx=ctx,
            params_node=node.child_by_field_name("parameters"),
            result_node=node.child_by_field_name("result"),
        )
        self._declare(decl)

    def _collect_method(self, ctx: FileContext, node: Node) -> None:
        name_node = node.child_by_field_name("name")
        base, _ = receiver_base_name(node.child_by_field_name("receiver"))
        if name_node is None or base is None:
            return
        name = node_text(name_node)
        if name == "_":
            return
        decl = Decl(
            symbol=self._symbol(ctx, name_node, "method", f"{base}.{name}"),
            ctx=ctx,
            params_node=node.child_by_field_name("parameters"),
            result_node=node.child_by_field_name("result"),
        )
        pending = self._pending_methods.setdefault(base, {})
        if name in pending:
            msg = f"{ctx.file.rel_path}:{decl.symbol.line}: method {base}.{name} already declared"
            raise LoadError(msg)
        pending[name] = decl

    def _collect_value_specs(self, ctx: FileContext, node: Node) -> None:
        kind: SymbolKind = "const" if node.type == "const_declaration" else "var"
        spec_type = "const_spec" if kind == "const" else "var_spec"
        for spec in iter_specs(node, spec_type):
            names = spec.children_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            value_list = spec.child_by_field_name("value")
            values = list(value_list.named_children) if value_list is not None else []
            for index, name_node in enumerate(names):
                if node_text(name_node) == "_":
                    continue
                if len(values) == len(names):
                    value, value_index = values[index], 0
                elif len(values) == 1:
                    value, value_index = values[0], index
                else:
                    value, value_index = None, 0
                decl = Decl(
                    symbol=self._symbol(ctx, name_node, kind),
                    ctx=ctx,
                    type_node=type_node,
                    value_node=value,
                    value_index=value_index,
                )
                self._declare(decl)

    def _collect_types(self, ctx: FileContext, node: Node) -> None:
        for spec in node.named_children:
            if spec.type not in ("type_spec", "type_alias"):
                continue
            name_node = spec.child_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            if name_node is None or type_node is None or node_text(name_node) == "_":
                continue
            decl = Decl(symbol=self._symbol(ctx, name_node, "type"), ctx=ctx, type_node=type_node)
            self._declare(decl)
            type_decl = TypeDecl(decl=decl, type_node=type_node, alias=spec.type == "type_alias")
            self.decls.types[decl.symbol.name] = type_decl
            if type_node.type == "struct_type":
                self._collect_fields(ctx, type_decl)
            elif type_node.type == "interface_type":
                self._collect_interface(ctx, type_decl)

    def _collect_fields(self, ctx: FileContext, type_decl: TypeDecl) -> None:
        owner = type_decl.decl.symbol.name
        for field_list in type_decl.type_node.named_children:
            if field_list.type != "field_declaration_list":
                continue
            for field_decl in field_list.named_children:
                if field_decl.type != "field_declaration":
                    continue
                type_node = field_decl.child_by_field_name("type")
                names = field_decl.children_by_field_name("name")
                if not names:
                    if type_node is not None:
                        type_decl.embedded.append(
                            EmbeddedField(name=_embedded_name(type_node), type_node=type_node, ctx=ctx)
                        )
                    continue
                for name_node in names:
                    name = node_text(name_node)
                    if name == "_":
                        continue
                    if name in type_decl.fields:
                        msg = f"{ctx.file.rel_path}:{name_node.start_point[0] + 1}: {name} redeclared"
                        raise LoadError(msg)
                    type_decl.fields[name] = Decl(
                        symbol=self._symbol(ctx, name_node, "field", f"{owner}.{name}"),
                        ctx=ctx,
                        type_node=type_node,
                    )

    def _collect_interface(self, ctx: FileContext, type_decl: TypeDecl) -> None:
        owner = type_decl.decl.symbol.name
        for elem in type_decl.type_node.named_children:
            if elem.type in _INTERFACE_METHOD_NODES:
                name_node = elem.child_by_field_name("name")
                if name_node is None:
                    continue
                name = node_text(name_node)
                type_decl.methods[name] = Decl(
                    symbol=self._symbol(ctx, name_node, "method", f"{owner}.{name}"),
                    ctx=ctx,
                    params_node=elem.child_by_field_name("parameters"),
                    result_node=elem.child_by_field_name("result"),
                )
                self.decls.interface_methods.add(name)
            elif elem.type in _INTERFACE_EMBED_NODES:
                type_decl.embedded_interfaces.append(elem)

    def collect(self) -> PackageDecls:
        for ctx in self.decls.files:
            self.collect_file(ctx)
        for base, methods in self._pending_methods.items():
            type_decl = self.decls.types.get(base)
            if type_decl is None:
                continue
            for name, decl in methods.items():
                if name in type_decl.fields:
                    msg = f"{decl.ctx.file.rel_path}:{decl.symbol.line}: field and method with the same name {name}"
                    raise LoadError(msg)
                type_decl.methods[name] = decl
        return self.decls


def _embedded_name(type_node: Node) -> str:
    """Field name implied by an embedded type: ``*pkg.T[X]`` -> ``T``."""
    ident = embedded_type_ident(type_node)
    return node_text(ident) if ident is not None else node_text(type_node)


def embedded_type_ident(type_node: Node) -> Node | None:
    """The identifier node an embedded field is named after."""
    node: Node | None = type_node
    while node is not None and node.type in ("pointer_type", "generic_type", "qualified_type"):
        if node.type == "generic_type":
            node = node.child_by_field_name("type")
        elif node.type == "qualified_type":
            node = node.child_by_field_name("name")
        else:
            node = node.named_children[0] if node.named_children else None
    return node


__all__ = [
    "Decl",
    "DeclarationCollector",
    "EmbeddedField",
    "FileContext",
    "PackageDecls",
    "TypeDecl",
    "build_file_context",
    "embedded_type_ident",
    "make_site",
    "receiver_base_name",
]
