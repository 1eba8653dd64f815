"""Scope-aware identifier resolution for Go packages.

Second pass of a load. Every identifier occurrence in a file is walked with
a block-scope stack; occurrences that denote a package-level declaration,
a struct field or a method of a loaded package become use sites.

Member selectors (``x.F``) need the type of ``x``. ``TypeEngine`` infers it
from declarations, parameters, composite literals, call results, field
chains and embedding. When it cannot, the member name is recorded in the
package's ``unresolved_members`` instead of being bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

from parse.declarations import Decl, make_site, receiver_base_name
from parse.treesitter_go import field_child, has_token, iter_specs, node_text
from parse.types import (
    OPAQUE,
    Chan,
    GoType,
    Map,
    Named,
    Opaque,
    Pointer,
    Signature,
    Slice,
    deref,
    element_of,
    is_foreign,
    single_result,
)

if TYPE_CHECKING:
    from tree_sitter import Node

    from parse.declarations import FileContext, PackageDecls, TypeDecl
    from parse.program import Package, Symbol

UNIVERSE_TYPES = frozenset(
    {
        "any",
        "bool",
        "byte",
        "comparable",
        "complex64",
        "complex128",
        "error",
        "float32",
        "float64",
        "int",
        "int8",
        "int16",
        "int32",
        "int64",
        "rune",
        "string",
        "uint",
        "uint8",
        "uint16",
        "uint32",
        "uint64",
        "uintptr",
    }
)
UNIVERSE_VALUES = frozenset(
    {
        "append",
        "cap",
        "clear",
        "close",
        "complex",
        "copy",
        "delete",
        "false",
        "imag",
        "iota",
        "len",
        "make",
        "max",
        "min",
        "new",
        "nil",
        "panic",
        "print",
        "println",
        "real",
        "recover",
        "true",
    }
)

_LITERAL_NODES = frozenset(
    {
        "int_literal",
        "float_literal",
        "imaginary_literal",
        "rune_literal",
        "interpreted_string_literal",
        "raw_string_literal",
        "true",
        "false",
        "nil",
        "iota",
    }
)
_COMPARISON_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "&&", "||"})
_TYPE_NODES = frozenset(
    {
        "pointer_type",
        "slice_type",
        "array_type",
        "implicit_length_array_type",
        "map_type",
        "channel_type",
        "function_type",
        "struct_type",
        "interface_type",
        "qualified_type",
        "generic_type",
        "parenthesized_type",
    }
)


@dataclass(frozen=True)
class LocalBinding:
    """A block-scoped name: a variable of ``type`` or, if ``is_type``, a type."""

    type: GoType | None
    is_type: bool = False


@dataclass(frozen=True)
class ImportBinding:
    path: str


@dataclass(frozen=True)
class UniverseBinding:
    name: str


Binding = Union[LocalBinding, ImportBinding, UniverseBinding, Decl]
Lookup = Callable[[str], Union[Binding, None]]


@dataclass(frozen=True)
class MemberHit:
    """A selector resolved to a loaded member (or embedded type) symbol."""

    symbol: Symbol
    type: GoType | None


class _Foreign:
    """Member belongs to a type declared outside the loaded packages."""


class _Unknown:
    """Member could not be attributed to any type."""


FOREIGN = _Foreign()
UNKNOWN = _Unknown()

MemberResult = Union[MemberHit, _Foreign, _Unknown]

_MAX_TYPE_DEPTH = 32


def _unwrap_element(node: Node) -> Node:
    """Strip ``literal_element`` wrappers from a composite-literal element."""
    while node.type == "literal_element" and node.named_children:
        node = node.named_children[0]
    return node


class TypeEngine:
    """Type inference over the declarations of one load."""

    def __init__(self, index: dict[str, PackageDecls]) -> None:
        self.index = index
        self._decl_types: dict[int, GoType | None] = {}
        self._in_progress: set[int] = set()

    # -- name lookup -------------------------------------------------------

    def lookup_global(self, ctx: FileContext, name: str) -> Binding | None:
        """Resolve a name in package, file and universe scope."""
        decls = self.index.get(ctx.package)
        if decls is not None and name in decls.scope:
            return decls.scope[name]
        if name in ctx.import_names:
            return ImportBinding(ctx.import_names[name])
        for path in ctx.dot_imports:
            imported = self.index.get(path)
            if imported is not None:
                decl = imported.scope.get(name)
                if decl is not None and decl.symbol.exported:
                    return decl
        if name in UNIVERSE_TYPES or name in UNIVERSE_VALUES:
            return UniverseBinding(name)
        return None

    def global_lookup(self, ctx: FileContext) -> Lookup:
        return lambda name: self.lookup_global(ctx, name)

    def imported_decl(self, path: str, name: str) -> Decl | None:
        decls = self.index.get(path)
        if decls is None:
            return None
        return decls.scope.get(name)

    def type_decl(self, named: Named) -> TypeDecl | None:
        decls = self.index.get(named.package)
        if decls is None:
            return None
        return decls.types.get(named.name)

    # -- types from syntax -------------------------------------------------

    def named_type_of(self, decl: Decl, depth: int = 0) -> GoType | None:
        """The type a package-level type declaration denotes (aliases followed)."""
        type_decl = self.index[decl.symbol.package].types.get(decl.symbol.name)
        if type_decl is not None and type_decl.alias and depth < _MAX_TYPE_DEPTH:
            return self.type_from_node(
                type_decl.type_node, decl.ctx, self.global_lookup(decl.ctx), depth + 1
            )
        return Named(decl.symbol.package, decl.symbol.name)

    def type_from_node(
        self,
        node: Node | None,
        ctx: FileContext,
        lookup: Lookup,
        depth: int = 0,
    ) -> GoType | None:
        if node is None or depth > _MAX_TYPE_DEPTH:
            return None
        kind = node.type
        if kind in ("type_identifier", "identifier"):
            binding = lookup(node_text(node))
            if isinstance(binding, Decl):
                if binding.symbol.kind == "type":
                    return self.named_type_of(binding, depth)
                return None
            if isinstance(binding, LocalBinding):
                return binding.type if binding.is_type else None
            if isinstance(binding, UniverseBinding):
                return OPAQUE
            return None
        if kind in ("qualified_type", "selector_expression"):
            pkg_node = field_child(node, "package", "operand")
            name_node = field_child(node, "name", "field")
            if pkg_node is None or name_node is None:
                return None
            binding = lookup(node_text(pkg_node))
            if not isinstance(binding, ImportBinding):
                return None
            if binding.path not in self.index:
                return OPAQUE
            decl = self.imported_decl(binding.path, node_text(name_node))
            if decl is None or decl.symbol.kind != "type":
                return None
            return self.named_type_of(decl, depth)
        if kind == "pointer_type" or (kind == "unary_expression" and has_token(node, "*")):
            inner = field_child(node, "operand", first_named=True)
            return Pointer(self.type_from_node(inner, ctx, lookup, depth + 1))
        if kind in ("slice_type", "array_type", "implicit_length_array_type"):
            return Slice(
                self.type_from_node(node.child_by_field_name("element"), ctx, lookup, depth + 1)
            )
        if kind == "map_type":
            return Map(
                self.type_from_node(node.child_by_field_name("key"), ctx, lookup, depth + 1),
                self.type_from_node(node.child_by_field_name("value"), ctx, lookup, depth + 1),
            )
        if kind == "channel_type":
            return Chan(
                self.type_from_node(node.child_by_field_name("value"), ctx, lookup, depth + 1)
            )
        if kind == "function_type":
            return Signature(
                self.results_of(node.child_by_field_name("result"), ctx, lookup, depth + 1)
            )
        if kind == "generic_type":
            base = self.type_from_node(node.child_by_field_name("type"), ctx, lookup, depth + 1)
            if isinstance(base, Opaque) and not self._foreign_arguments(
                node.child_by_field_name("type_arguments"), ctx, lookup, depth + 1
            ):
                return None
            return base
        if kind in ("parenthesized_type", "parenthesized_expression"):
            inner = node.named_children[0] if node.named_children else None
            return self.type_from_node(inner, ctx, lookup, depth + 1)
        return None

    def _foreign_arguments(
        self,
        type_args: Node | None,
        ctx: FileContext,
        lookup: Lookup,
        depth: int = 0,
    ) -> bool:
        """True when every type argument is known and foreign to the load."""
        if type_args is None:
            return True
        for arg in type_args.named_children:
            terms = arg.named_children if arg.type == "type_elem" else [arg]
            for term in terms:
                if not is_foreign(self.type_from_node(term, ctx, lookup, depth)):
                    return False
        return True

    def results_of(
        self,
        result: Node | None,
        ctx: FileContext,
        lookup: Lookup,
        depth: int = 0,
    ) -> tuple[GoType | None, ...]:
        if result is None:
            return ()
        if result.type != "parameter_list":
            return (self.type_from_node(result, ctx, lookup, depth),)
        results: list[GoType | None] = []
        for param in result.named_children:
            if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            param_type = self.type_from_node(param.child_by_field_name("type"), ctx, lookup, depth)
            count = max(1, len(param.children_by_field_name("name")))
            results.extend([param_type] * count)
        return tuple(results)

    def decl_type(self, decl: Decl) -> GoType | None:
        """Type of the value a declaration denotes (cached per load)."""
        key = id(decl)
        if key in self._decl_types:
            return self._decl_types[key]
        if key in self._in_progress:
            return None
        self._in_progress.add(key)
        try:
            result = self._compute_decl_type(decl)
        finally:
            self._in_progress.discard(key)
        self._decl_types[key] = result
        return result

    def _compute_decl_type(self, decl: Decl) -> GoType | None:
        lookup = self.global_lookup(decl.ctx)
        kind = decl.symbol.kind
        if kind == "type":
            return self.named_type_of(decl)
        if kind in ("func", "method"):
            return Signature(self.results_of(decl.result_node, decl.ctx, lookup))
        if decl.type_node is not None:
            return self.type_from_node(decl.type_node, decl.ctx, lookup)
        if decl.value_node is None:
            return None
        if decl.value_index:
            values = self.infer_tuple(decl.value_node, decl.ctx, lookup)
            return values[decl.value_index] if decl.value_index < len(values) else None
        return self.infer(decl.value_node, decl.ctx, lookup)

    # -- members -----------------------------------------------------------

    def underlying(self, t: GoType | None, depth: int = 0) -> GoType | None:
        """Follow a defined type to the composite type it is declared over."""
        if not isinstance(t, Named) or depth > _MAX_TYPE_DEPTH:
            return t
        type_decl = self.type_decl(t)
        if type_decl is None:
            return None
        if type_decl.is_struct or type_decl.is_interface:
            return t
        ctx = type_decl.decl.ctx
        inner = self.type_from_node(type_decl.type_node, ctx, self.global_lookup(ctx))
        return self.underlying(inner, depth + 1)

    def _embedded_hit(self, embedded_type: GoType | None) -> MemberResult:
        target = deref(embedded_type)
        if isinstance(target, Named):
            type_decl = self.type_decl(target)
            if type_decl is not None:
                return MemberHit(type_decl.decl.symbol, embedded_type)
        if isinstance(target, Opaque):
            return FOREIGN
        return UNKNOWN

    def lookup_member(self, t: GoType | None, name: str) -> MemberResult:
        """Find the field, method or embedded field ``name`` of type ``t``.

        Searches depth by depth through embedded fields, as Go's selector
        rules do.
        """
        t = deref(t)
        if isinstance(t, Opaque):
            return FOREIGN
        if not isinstance(t, Named):
            return UNKNOWN

        start = self.type_decl(t)
        if start is None:
            return UNKNOWN
        level: list[tuple[TypeDecl, bool]] = [(start, True)]
        visited: set[int] = set()
        saw_foreign = False
        saw_unknown = False

        for _ in range(_MAX_TYPE_DEPTH):
            if not level:
                break
            next_level: list[tuple[TypeDecl, bool]] = []
            for type_decl, with_methods in level:
                if id(type_decl) in visited:
                    continue
                visited.add(id(type_decl))
                if with_methods and name in type_decl.methods:
                    method = type_decl.methods[name]
                    return MemberHit(method.symbol, self.decl_type(method))
                if name in type_decl.fields:
                    field_decl = type_decl.fields[name]
                    return MemberHit(field_decl.symbol, self.decl_type(field_decl))

                ctx = type_decl.decl.ctx
                lookup = self.global_lookup(ctx)
                embeds: list[GoType | None] = []
                for embedded in type_decl.embedded:
                    embedded_type = self.type_from_node(
                        embedded.type_node, embedded.ctx, self.global_lookup(embedded.ctx)
                    )
                    if embedded.name == name:
                        return self._embedded_hit(embedded_type)
                    embeds.append(embedded_type)
                for iface in type_decl.embedded_interfaces:
                    embeds.extend(self._interface_embeds(iface, ctx, lookup))
                if not (type_decl.is_struct or type_decl.is_interface):
                    inner = self.type_from_node(type_decl.type_node, ctx, lookup)
                    if type_decl.alias:
                        embeds.append(inner)
                    else:
                        inner_named = deref(inner)
                        if isinstance(inner_named, Named):
                            inner_decl = self.type_decl(inner_named)
                            if inner_decl is not None:
                                next_level.append((inner_decl, False))
                        elif isinstance(inner_named, Opaque):
                            saw_foreign = True

                for embedded_type in embeds:
                    target = deref(embedded_type)
                    if isinstance(target, Named):
                        embedded_decl = self.type_decl(target)
                        if embedded_decl is not None:
                            next_level.append((embedded_decl, True))
                        else:
                            saw_unknown = True
                    elif isinstance(target, Opaque):
                        saw_foreign = True
                    else:
                        saw_unknown = True
            level = next_level

        if saw_foreign and not saw_unknown:
            return FOREIGN
        return UNKNOWN

    def _interface_embeds(
        self, node: Node, ctx: FileContext, lookup: Lookup
    ) -> list[GoType | None]:
        if node.type in ("type_identifier", "qualified_type", "generic_type"):
            return [self.type_from_node(node, ctx, lookup)]
        found: list[GoType | None] = []
        for child in node.named_children:
            if child.type in ("type_identifier", "qualified_type", "generic_type"):
                found.append(self.type_from_node(child, ctx, lookup))
            elif child.type in ("interface_type_name", "constraint_term"):
                found.extend(self._interface_embeds(child, ctx, lookup))
        return found

    # -- expressions -------------------------------------------------------

    def denoted_type(self, node: Node, ctx: FileContext, lookup: Lookup) -> GoType | None:
        """If ``node`` is a type expression, the type it denotes; else None."""
        if node.type in _TYPE_NODES:
            return self.type_from_node(node, ctx, lookup)
        if node.type in ("identifier", "type_identifier"):
            binding = lookup(node_text(node))
            if isinstance(binding, Decl) and binding.symbol.kind == "type":
                return self.named_type_of(binding)
            if isinstance(binding, LocalBinding) and binding.is_type:
                return binding.type
            if isinstance(binding, UniverseBinding) and binding.name in UNIVERSE_TYPES:
                return OPAQUE
            return None
        if node.type == "selector_expression":
            operand = node.child_by_field_name("operand")
            if operand is not None and operand.type == "identifier":
                binding = lookup(node_text(operand))
                if isinstance(binding, ImportBinding):
                    return self.type_from_node(node, ctx, lookup)
            return None
        if node.type == "parenthesized_expression" and node.named_children:
            return self.denoted_type(node.named_children[0], ctx, lookup)
        if node.type == "unary_expression" and has_token(node, "*"):
            operand = node.child_by_field_name("operand")
            if operand is not None:
                inner = self.denoted_type(operand, ctx, lookup)
                return Pointer(inner) if inner is not None else None
        return None

    def infer(self, node: Node | None, ctx: FileContext, lookup: Lookup) -> GoType | None:
        """Infer the type of an expression; None when it cannot be inferred."""
        if node is None:
            return None
        kind = node.type
        if kind in _LITERAL_NODES:
            return OPAQUE
        if kind in ("identifier", "type_identifier"):
            binding = lookup(node_text(node))
            if isinstance(binding, LocalBinding):
                return binding.type
            if isinstance(binding, Decl):
                return self.decl_type(binding)
            if isinstance(binding, UniverseBinding):
                return OPAQUE
            return None
        if kind in ("parenthesized_expression", "literal_element"):
            inner = node.named_children[0] if node.named_children else None
            return self.infer(inner, ctx, lookup)
        if kind == "unary_expression":
            operand = self.infer(node.child_by_field_name("operand"), ctx, lookup)
            if has_token(node, "&"):
                return Pointer(operand)
            if has_token(node, "*"):
                return deref(operand)
            if has_token(node, "<-"):
                return element_of(self.underlying(operand))
            if has_token(node, "!"):
                return OPAQUE
            return operand
        if kind == "binary_expression":
            operator = node.child_by_field_name("operator")
            if operator is not None and node_text(operator) in _COMPARISON_OPERATORS:
                return OPAQUE
            return self.infer(node.child_by_field_name("left"), ctx, lookup)
        if kind == "composite_literal":
            return self.type_from_node(node.child_by_field_name("type"), ctx, lookup)
        if kind == "func_literal":
            return Signature(self.results_of(node.child_by_field_name("result"), ctx, lookup))
        if kind in ("type_assertion_expression", "type_conversion_expression"):
            return self.type_from_node(node.child_by_field_name("type"), ctx, lookup)
        if kind == "call_expression":
            return self._infer_call(node, ctx, lookup)
        if kind == "selector_expression":
            return self._infer_selector(node, ctx, lookup)
        if kind == "index_expression":
            operand = self.infer(node.child_by_field_name("operand"), ctx, lookup)
            if isinstance(operand, Signature):
                return operand
            return element_of(self.underlying(operand))
        if kind == "slice_expression":
            return self.infer(node.child_by_field_name("operand"), ctx, lookup)
        if kind in ("generic_type", "type_instantiation_expression"):
            inner = field_child(node, "type", first_named=True)
            return self.infer(inner, ctx, lookup)
        return None

    def _infer_call(self, node: Node, ctx: FileContext, lookup: Lookup) -> GoType | None:
        function = node.child_by_field_name("function")
        if function is None:
            return None
        arguments = node.child_by_field_name("arguments")
        args = list(arguments.named_children) if arguments is not None else []
        if function.type == "identifier":
            binding = lookup(node_text(function))
            if isinstance(binding, UniverseBinding):
                name = binding.name
                if name == "new" and args:
                    return Pointer(self.type_from_node(args[0], ctx, lookup))
                if name == "make" and args:
                    return self.type_from_node(args[0], ctx, lookup)
                if name in ("append", "min", "max") and args:
                    return self.infer(args[0], ctx, lookup)
                return OPAQUE
        converted = self.denoted_type(function, ctx, lookup)
        if isinstance(converted, Opaque) and function.type == "selector_expression":
            # pkg.Name from outside the load may be a function as well as a type
            return self._foreign_call_result(node, function, args, ctx, lookup)
        if converted is not None:
            return converted
        callee = self.infer(function, ctx, lookup)
        if isinstance(callee, Opaque):
            return self._foreign_call_result(node, function, args, ctx, lookup)
        return single_result(callee)

    def _foreign_call_result(
        self,
        node: Node,
        function: Node,
        args: list[Node],
        ctx: FileContext,
        lookup: Lookup,
    ) -> GoType | None:
        """Result of calling a function declared outside the load.

        Such a function may be generic, so its result is only foreign when
        neither explicit type arguments nor argument types bring in a
        loaded type.
        """
        if node.child_by_field_name("type_arguments") is not None:
            return None
        if function.type in ("index_expression", "type_instantiation_expression", "generic_type"):
            return None
        if all(is_foreign(self.infer(arg, ctx, lookup)) for arg in args):
            return OPAQUE
        return None

    def _infer_selector(self, node: Node, ctx: FileContext, lookup: Lookup) -> GoType | None:
        operand = node.child_by_field_name("operand")
        field_node = node.child_by_field_name("field")
        if operand is None or field_node is None:
            return None
        name = node_text(field_node)
        if operand.type == "identifier":
            binding = lookup(node_text(operand))
            if isinstance(binding, ImportBinding):
                if binding.path not in self.index:
                    return OPAQUE
                decl = self.imported_decl(binding.path, name)
                return self.decl_type(decl) if decl is not None else None
        result = self.lookup_member(self.infer(operand, ctx, lookup), name)
        if isinstance(result, MemberHit):
            return result.type
        if result is FOREIGN:
            return OPAQUE
        return None

    def infer_tuple(self, node: Node, ctx: FileContext, lookup: Lookup) -> tuple[GoType | None, ...]:
        """Types of a multi-valued expression (call, comma-ok forms)."""
        node = _unwrap_element(node)
        if node.type == "call_expression":
            function = node.child_by_field_name("function")
            if function is not None:
                callee = self.infer(function, ctx, lookup)
                if isinstance(callee, Signature):
                    return callee.results
            return ()
        if node.type in ("type_assertion_expression", "index_expression"):
            return (self.infer(node, ctx, lookup), OPAQUE)
        if node.type == "unary_expression" and has_token(node, "<-"):
            return (self.infer(node, ctx, lookup), OPAQUE)
        return (self.infer(node, ctx, lookup),)


class FileResolver:
    """Walks one file, recording use sites into its package.

    Args:
        engine: Type engine shared by every package of the load
        package: Package receiving the use sites
        ctx: File being walked
    """

    def __init__(self, engine: TypeEngine, package: Package, ctx: FileContext) -> None:
        self.engine = engine
        self.package = package
        self.ctx = ctx
        self.scopes: list[dict[str, LocalBinding]] = []
        self._dispatch: dict[str, Callable[[Node], None]] = {
            "block": self._visit_block,
            "func_literal": self._visit_func_literal,
            "short_var_declaration": self._visit_short_var,
            "var_declaration": self._visit_local_values,
            "const_declaration": self._visit_local_values,
            "type_declaration": self._visit_local_types,
            "range_clause": self._visit_range,
            "for_statement": self._visit_scoped,
            "if_statement": self._visit_scoped,
            "expression_switch_statement": self._visit_scoped,
            "expression_case": self._visit_scoped,
            "default_case": self._visit_scoped,
            "type_switch_statement": self._visit_type_switch,
            "communication_case": self._visit_communication_case,
            "selector_expression": self._visit_selector,
            "qualified_type": self._visit_qualified_type,
            "composite_literal": self._visit_composite_literal,
            "function_type": self._visit_signature_type,
            "struct_type": self._visit_anonymous_struct,
            "interface_type": self._visit_interface_type,
            "identifier": self._visit_identifier,
            "type_identifier": self._visit_identifier,
        }

    # -- scopes ------------------------------------------------------------

    def lookup(self, name: str) -> Binding | None:
        for scope in reversed(self.scopes):
            if name in scope:
                return scope[name]
        return self.engine.lookup_global(self.ctx, name)

    def define(self, node: Node, binding: LocalBinding) -> None:
        name = node_text(node)
        if name != "_" and self.scopes:
            self.scopes[-1][name] = binding

    def push(self) -> None:
        self.scopes.append({})

    def pop(self) -> None:
        self.scopes.pop()

    def infer(self, node: Node | None) -> GoType | None:
        return self.engine.infer(node, self.ctx, self.lookup)

    def type_of(self, node: Node | None) -> GoType | None:
        return self.engine.type_from_node(node, self.ctx, self.lookup)

    def bind(self, node: Node, symbol: Symbol) -> None:
        self.package.uses[make_site(self.ctx, node)] = symbol

    # -- entry point -------------------------------------------------------

    def resolve(self) -> None:
        root = self.ctx.file.tree.root_node
        for node in root.named_children:
            if node.type in ("package_clause", "import_declaration", "comment"):
                continue
            if node.type == "function_declaration":
                self._visit_function(node, receiver=None)
            elif node.type == "method_declaration":
                self._visit_function(node, receiver=node.child_by_field_name("receiver"))
            elif node.type in ("const_declaration", "var_declaration"):
                self._visit_package_values(node)
            elif node.type == "type_declaration":
                self._visit_package_types(node)
            else:
                self.visit(node)

    def visit(self, node: Node | None) -> None:
        if node is None:
            return
        handler = self._dispatch.get(node.type)
        if handler is not None:
            handler(node)
            return
        if node.type in ("field_identifier", "package_identifier", "label_name", "comment"):
            return
        for child in node.named_children:
            self.visit(child)

    def visit_all(self, nodes: list[Node]) -> None:
        for node in nodes:
            self.visit(node)

    # -- declarations ------------------------------------------------------

    def _define_type_params(self, type_params: Node | None) -> None:
        if type_params is None:
            return
        for param in type_params.named_children:
            if param.type != "type_parameter_declaration":
                continue
            for name_node in param.children_by_field_name("name"):
                self.define(name_node, LocalBinding(None, is_type=True))
        for param in type_params.named_children:
            self.visit(param.child_by_field_name("type"))

    def _visit_params(self, params: Node | None, *, define: bool) -> None:
        if params is None:
            return
        if params.type != "parameter_list":
            self.visit(params)
            return
        for param in params.named_children:
            if param.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            type_node = param.child_by_field_name("type")
            self.visit(type_node)
            if not define:
                continue
            param_type = self.type_of(type_node)
            if param.type == "variadic_parameter_declaration":
                param_type = Slice(param_type)
            for name_node in param.children_by_field_name("name"):
                self.define(name_node, LocalBinding(param_type))

    def _visit_function(self, node: Node, receiver: Node | None) -> None:
        self.push()
        if receiver is not None:
            _, receiver_type_params = receiver_base_name(receiver)
            for ident in receiver_type_params:
                self.define(ident, LocalBinding(None, is_type=True))
        self._define_type_params(node.child_by_field_name("type_parameters"))
        self._visit_params(receiver, define=True)
        self._visit_params(node.child_by_field_name("parameters"), define=True)
        self._visit_params(node.child_by_field_name("result"), define=True)
        body = node.child_by_field_name("body")
        if body is not None:
            for child in body.named_children:
                self.visit(child)
        self.pop()

    def _visit_func_literal(self, node: Node) -> None:
        self._visit_function(node, receiver=None)

    def _visit_signature_type(self, node: Node) -> None:
        self._visit_params(node.child_by_field_name("parameters"), define=False)
        self._visit_params(node.child_by_field_name("result"), define=False)

    def _visit_package_values(self, node: Node) -> None:
        spec_type = "const_spec" if node.type == "const_declaration" else "var_spec"
        for spec in iter_specs(node, spec_type):
            self.visit(spec.child_by_field_name("type"))
            self.visit(spec.child_by_field_name("value"))

    def _visit_package_types(self, node: Node) -> None:
        for spec in node.named_children:
            if spec.type not in ("type_spec", "type_alias"):
                continue
            self.push()
            self._define_type_params(spec.child_by_field_name("type_parameters"))
            self.visit(spec.child_by_field_name("type"))
            self.pop()

    def _visit_anonymous_struct(self, node: Node) -> None:
        for field_list in node.named_children:
            for field_decl in field_list.named_children:
                if field_decl.type == "field_declaration":
                    self.visit(field_decl.child_by_field_name("type"))

    def _visit_interface_type(self, node: Node) -> None:
        for elem in node.named_children:
            if elem.type in ("method_elem", "method_spec"):
                self._visit_params(elem.child_by_field_name("parameters"), define=False)
                self._visit_params(elem.child_by_field_name("result"), define=False)
            else:
                self.visit(elem)

    def _visit_local_values(self, node: Node) -> None:
        spec_type = "const_spec" if node.type == "const_declaration" else "var_spec"
        for spec in iter_specs(node, spec_type):
            type_node = spec.child_by_field_name("type")
            value_list = spec.child_by_field_name("value")
            self.visit(type_node)
            self.visit(value_list)
            names = spec.children_by_field_name("name")
            types = self._assigned_types(names, value_list, type_node)
            for name_node, name_type in zip(names, types):
                self.define(name_node, LocalBinding(name_type))

    def _visit_local_types(self, node: Node) -> None:
        for spec in node.named_children:
            if spec.type not in ("type_spec", "type_alias"):
                continue
            name_node = spec.child_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            local_type: GoType | None = None
            if spec.type == "type_alias":
                local_type = self.type_of(type_node)
            if name_node is not None:
                self.define(name_node, LocalBinding(local_type, is_type=True))
            self.push()
            self._define_type_params(spec.child_by_field_name("type_parameters"))
            self.visit(type_node)
            self.pop()

    def _assigned_types(
        self,
        names: list[Node],
        value_list: Node | None,
        type_node: Node | None = None,
    ) -> list[GoType | None]:
        if type_node is not None:
            declared = self.type_of(type_node)
            return [declared] * len(names)
        values = list(value_list.named_children) if value_list is not None else []
        if len(values) == len(names):
            return [self.infer(value) for value in values]
        if len(values) == 1:
            results = self.engine.infer_tuple(values[0], self.ctx, self.lookup)
            return [results[i] if i < len(results) else None for i in range(len(names))]
        return [None] * len(names)

    # -- statements --------------------------------------------------------

    def _visit_block(self, node: Node) -> None:
        self.push()
        for child in node.named_children:
            self.visit(child)
        self.pop()

    def _visit_scoped(self, node: Node) -> None:
        self.push()
        for child in node.named_children:
            self.visit(child)
        self.pop()

    def _visit_short_var(self, node: Node) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        self.visit(right)
        names = list(left.named_children) if left is not None else []
        for name_node, name_type in zip(names, self._assigned_types(names, right)):
            if name_node.type == "identifier":
                self.define(name_node, LocalBinding(name_type))

    def _visit_range(self, node: Node) -> None:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        self.visit(right)
        if left is None:
            return
        if not has_token(node, ":="):
            self.visit(left)
            return
        ranged = self.engine.underlying(self.infer(right))
        if isinstance(ranged, Map):
            types: list[GoType | None] = [ranged.key, ranged.value]
        elif isinstance(ranged, Slice):
            types = [OPAQUE, ranged.elem]
        elif isinstance(ranged, Chan):
            types = [ranged.elem]
        elif isinstance(ranged, Opaque):
            types = [OPAQUE, OPAQUE]
        else:
            types = [None, None]
        for index, name_node in enumerate(left.named_children):
            name_type = types[index] if index < len(types) else None
            self.define(name_node, LocalBinding(name_type))

    def _visit_type_switch(self, node: Node) -> None:
        self.push()
        self.visit(node.child_by_field_name("initializer"))
        value = node.child_by_field_name("value")
        self.visit(value)
        alias = node.child_by_field_name("alias")
        alias_names = list(alias.named_children) if alias is not None else []
        for clause in node.named_children:
            if clause.type not in ("type_case", "default_case"):
                continue
            self.push()
            case_types = clause.children_by_field_name("type")
            for type_node in case_types:
                self.visit(type_node)
            if len(case_types) == 1:
                alias_type = self.type_of(case_types[0])
            else:
                alias_type = self.infer(value)
            for name_node in alias_names:
                self.define(name_node, LocalBinding(alias_type))
            case_type_ids = {(t.start_byte, t.end_byte) for t in case_types}
            for child in clause.named_children:
                if (child.start_byte, child.end_byte) not in case_type_ids:
                    self.visit(child)
            self.pop()
        self.pop()

    def _visit_communication_case(self, node: Node) -> None:
        self.push()
        communication = node.child_by_field_name("communication")
        if communication is not None and communication.type == "receive_statement" and has_token(
            communication, ":="
        ):
            right = communication.child_by_field_name("right")
            self.visit(right)
            left = communication.child_by_field_name("left")
            names = list(left.named_children) if left is not None else []
            received = self.engine.infer_tuple(right, self.ctx, self.lookup) if right is not None else ()
            for index, name_node in enumerate(names):
                name_type = received[index] if index < len(received) else None
                self.define(name_node, LocalBinding(name_type))
        else:
            self.visit(communication)
        for child in node.named_children:
            if communication is not None and child.start_byte == communication.start_byte:
                continue
            self.visit(child)
        self.pop()

    # -- expressions -------------------------------------------------------

    def _visit_identifier(self, node: Node) -> None:
        binding = self.lookup(node_text(node))
        if isinstance(binding, Decl):
            self.bind(node, binding.symbol)

    def _visit_qualified_type(self, node: Node) -> None:
        pkg_node = node.child_by_field_name("package")
        name_node = node.child_by_field_name("name")
        if pkg_node is None or name_node is None:
            return
        binding = self.lookup(node_text(pkg_node))
        if isinstance(binding, ImportBinding):
            decl = self.engine.imported_decl(binding.path, node_text(name_node))
            if decl is not None:
                self.bind(name_node, decl.symbol)

    def _record_member(self, node: Node, result: MemberResult) -> None:
        if isinstance(result, MemberHit):
            self.bind(node, result.symbol)
        elif result is UNKNOWN:
            self.package.unresolved_members.add(node_text(node))

    def _visit_selector(self, node: Node) -> None:
        operand = node.child_by_field_name("operand")
        field_node = node.child_by_field_name("field")
        if operand is None or field_node is None:
            return
        if operand.type == "identifier":
            binding = self.lookup(node_text(operand))
            if isinstance(binding, ImportBinding):
                decl = self.engine.imported_decl(binding.path, node_text(field_node))
                if decl is not None:
                    self.bind(field_node, decl.symbol)
                return
        self.visit(operand)
        result = self.engine.lookup_member(self.infer(operand), node_text(field_node))
        self._record_member(field_node, result)

    def _visit_composite_literal(self, node: Node, elided: GoType | None = None) -> None:
        type_node = node.child_by_field_name("type")
        literal_type = elided
        if type_node is not None:
            self.visit(type_node)
            literal_type = self.type_of(type_node)
        body = node.child_by_field_name("body")
        if body is not None:
            anonymous = type_node is not None and type_node.type == "struct_type"
            self._visit_literal_value(body, literal_type, anonymous=anonymous)

    def _visit_literal_value(
        self, body: Node, literal_type: GoType | None, *, anonymous: bool = False
    ) -> None:
        composite = self.engine.underlying(deref(literal_type))
        type_decl = self.engine.type_decl(composite) if isinstance(composite, Named) else None
        for element in body.named_children:
            if element.type == "comment":
                continue
            if element.type != "keyed_element":
                self._visit_element(element, self._element_type(composite, None))
                continue
            parts = [child for child in element.named_children if child.type != "comment"]
            if len(parts) != 2:
                self.visit_all(parts)
                continue
            key, value = _unwrap_element(parts[0]), parts[1]
            if type_decl is not None and type_decl.is_struct:
                value_type = self._visit_field_key(key, composite)
            elif isinstance(composite, Map):
                self._visit_element(parts[0], composite.key)
                value_type = composite.value
            elif isinstance(composite, Slice):
                self.visit(key)
                value_type = composite.elem
            elif key.type in ("identifier", "field_identifier"):
                # keys of an anonymous struct literal name its own fields
                if composite is None and not anonymous:
                    self.package.unresolved_members.add(node_text(key))
                value_type = OPAQUE if isinstance(composite, Opaque) else None
            else:
                self._visit_element(parts[0], None)
                value_type = None
            self._visit_element(value, value_type)

    def _visit_field_key(self, key: Node, struct_type: Named) -> GoType | None:
        if key.type not in ("identifier", "field_identifier"):
            self.visit(key)
            return None
        result = self.engine.lookup_member(struct_type, node_text(key))
        self._record_member(key, result)
        if isinstance(result, MemberHit):
            return result.type
        return OPAQUE if result is FOREIGN else None

    def _element_type(self, composite: GoType | None, default: GoType | None) -> GoType | None:
        if isinstance(composite, Slice):
            return composite.elem
        if isinstance(composite, Map):
            return composite.value
        if isinstance(composite, Opaque):
            return OPAQUE
        return default

    def _visit_element(self, node: Node, element_type: GoType | None) -> None:
        node = _unwrap_element(node)
        if node.type == "literal_value":
            self._visit_literal_value(node, element_type)
        elif node.type == "composite_literal" and node.child_by_field_name("type") is None:
            self._visit_composite_literal(node, elided=element_type)
        else:
            self.visit(node)


def resolve_package(engine: TypeEngine, package: Package, decls: PackageDecls) -> None:
    """Bind every use site in the files of one package."""
    for ctx in decls.files:
        FileResolver(engine, package, ctx).resolve()


__all__ = [
    "FOREIGN",
    "UNKNOWN",
    "FileResolver",
    "ImportBinding",
    "LocalBinding",
    "MemberHit",
    "TypeEngine",
    "UniverseBinding",
    "resolve_package",
]
