"""Parse outcomes and shared syntax-tree helpers.

:class:`SyntaxTree` wraps a tree-sitter tree together with a lazily built
index of node types so that the import, export and route passes share a
single traversal of the tree.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field

from tree_sitter import Node

@dataclass
class SyntaxTree:
    """A parsed file.  May contain ``ERROR`` nodes; consumers tolerate them."""

    root: Node
    grammar: str
    _index: dict[str, list[Node]] | None = field(default=None, repr=False)

    @property
    def has_errors(self) -> bool:
        return self.root.has_error

    def nodes_of_type(self, *node_types: str) -> list[Node]:
        """Return all descendants of the given types, in document order."""
        index = self._build_index()
        if len(node_types) == 1:
            return list(index.get(node_types[0], ()))
        wanted = set(node_types)
        return [node for node in index["*"] if node.type in wanted]

    def _build_index(self) -> dict[str, list[Node]]:
        if self._index is not None:
            return self._index

        index: dict[str, list[Node]] = defaultdict(list)
        ordered = index["*"]
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_named:
                index[node.type].append(node)
                ordered.append(node)
            stack.extend(reversed(node.children))
        self._index = index
        return index

@dataclass
class ParseFailure:
    """Explicit signal that no tree could be produced for a file.

    ``reason`` is one of ``"binary"``, ``"unsupported"``,
    ``"convention-only"`` or ``"parser-error"``.
    """

    reason: str
    detail: str = ""

    def __bool__(self) -> bool:
        return False

def node_text(node: Node | None) -> str:
    """Return the source text of *node* (``""`` for ``None``)."""
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")

def node_line(node: Node) -> int:
    """1-based line of *node*'s first character."""
    return node.start_point[0] + 1

def string_value(node: Node | None) -> str | None:
    """Return the literal value of a string or substitution-free template.

    Returns ``None`` for any other node type, including template strings
    with ``${...}`` substitutions.
    """
    if node is None:
        return None
    if node.type == "string":
        fragments = [node_text(c) for c in node.children if c.type in ("string_fragment", "escape_sequence")]
        if fragments:
            return "".join(fragments)
        text = node_text(node)
        if len(text) >= 2 and text[0] in ("'", '"') and text[-1] == text[0]:
            return text[1:-1]
        return text
    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.children):
            return None
        text = node_text(node)
        return text[1:-1] if len(text) >= 2 else ""
    return None

def first_named_child(node: Node, *node_types: str) -> Node | None:
    """Return the first named child of *node* whose type is in *node_types*."""
    for child in node.named_children:
        if child.type in node_types:
            return child
    return None

def dynamic_import_specifier(node: Node | None) -> str | None:
    """Return ``"x"`` for an ``import("x")`` call node, else ``None``."""
    if node is None or node.type != "call_expression":
        return None
    func = node.child_by_field_name("function")
    if func is None or func.type != "import":
        return None
    args = node.child_by_field_name("arguments")
    if args is None:
        return None
    for arg in args.named_children:
        return string_value(arg)
    return None
