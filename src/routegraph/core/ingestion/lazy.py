"""Lazy and dynamic import bindings.

Recognises the declarator shapes that bind a local name to a module loaded
at runtime::

    const Users = lazy(() => import("./pages/Users"));
    const Admin = React.lazy(() => import("@/pages/Admin"));
    const Chart = loadable(() => import("./Chart"));
    const mod = import("./mod");
    const mod = await import("./mod");

These bind a component to a name differently from static imports, so they
are matched here rather than by the import pass of the extractor.
"""

from __future__ import annotations

from dataclasses import dataclass

from tree_sitter import Node

from routegraph.core.parsers.base import (
    SyntaxTree,
    dynamic_import_specifier,
    node_line,
    node_text,
)

@dataclass(frozen=True)
class LazyBinding:
    local_name: str
    specifier: str
    import_type: str  # "lazy" or "dynamic"
    line: int

def loader_specifier(node: Node | None) -> str | None:
    """Return the specifier loaded by an ``() => import("x")`` style loader.

    Accepts an arrow function whose body is the import call (optionally
    wrapped in parentheses) or a block that returns it.
    """
    if node is None or node.type != "arrow_function":
        return None
    body = node.child_by_field_name("body")
    while body is not None and body.type == "parenthesized_expression":
        body = body.named_children[0] if body.named_children else None
    if body is None:
        return None
    if body.type == "statement_block":
        for stmt in body.named_children:
            if stmt.type == "return_statement" and stmt.named_children:
                return dynamic_import_specifier(_unwrap(stmt.named_children[0]))
        return None
    return dynamic_import_specifier(_unwrap(body))

def lazy_call_specifier(node: Node | None) -> str | None:
    """Return the specifier of ``wrapper(() => import("x"))``, else ``None``."""
    if node is None or node.type != "call_expression":
        return None
    func = node.child_by_field_name("function")
    if func is None or func.type not in ("identifier", "member_expression"):
        return None
    args = node.child_by_field_name("arguments")
    if args is None:
        return None
    for arg in args.named_children:
        specifier = loader_specifier(arg)
        if specifier is not None:
            return specifier
    return None

def find_lazy_bindings(tree: SyntaxTree) -> list[LazyBinding]:
    """Return every lazy or dynamic binding declared anywhere in *tree*."""
    bindings: list[LazyBinding] = []
    for declarator in tree.nodes_of_type("variable_declarator"):
        name_node = declarator.child_by_field_name("name")
        value = _unwrap(declarator.child_by_field_name("value"))
        if name_node is None or name_node.type != "identifier" or value is None:
            continue

        specifier = lazy_call_specifier(value)
        if specifier is not None:
            bindings.append(
                LazyBinding(node_text(name_node), specifier, "lazy", node_line(declarator))
            )
            continue

        specifier = dynamic_import_specifier(value)
        if specifier is not None:
            bindings.append(
                LazyBinding(node_text(name_node), specifier, "dynamic", node_line(declarator))
            )
    return bindings

def _unwrap(node: Node | None) -> Node | None:
    """Strip ``await``, parentheses and ``as`` casts around an expression."""
    while node is not None and node.type in (
        "await_expression",
        "parenthesized_expression",
        "as_expression",
        "satisfies_expression",
        "non_null_expression",
    ):
        children = node.named_children
        node = children[0] if children else None
    return node
