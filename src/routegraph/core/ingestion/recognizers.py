"""Route recognizers.

Each recognizer turns one file into :class:`RouteDecl` entries for a single
declaration style.  The extractor runs an ordered list of them and unions
the results, so supporting a new routing convention means adding a class
here and registering it in :func:`default_recognizers`.

Syntax-based recognizers (JSX elements, route objects) need a parsed tree;
path-convention recognizers (Next.js, SvelteKit) look only at the file path
and run even when the file could not be parsed.
"""

from __future__ import annotations

import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from tree_sitter import Node

from routegraph.core.graph.model import (
    CONVENTION_LINE,
    INDEX_ROUTE,
    UNKNOWN_COMPONENT,
    RouteDecl,
)
from routegraph.core.ingestion.lazy import lazy_call_specifier, loader_specifier
from routegraph.core.parsers.base import (
    SyntaxTree,
    dynamic_import_specifier,
    node_line,
    node_text,
    string_value,
)

NEXT_PAGE_COMPONENT = "Next.js Page"
SVELTEKIT_PAGE_COMPONENT = "SvelteKit Page"

_ROUTE_OBJECT_KEYS = frozenset({"path", "index", "element", "component"})
_COMPONENT_KEYS = ("element", "component", "Component")
_PAGE_EXTENSIONS = (".tsx", ".jsx", ".ts", ".js")
_NEXT_SPECIAL_PAGES = frozenset({"_app", "_document", "_error"})

_OPTIONAL_CATCH_ALL = re.compile(r"\[\[\.\.\.[^\]]+\]\]")
_CATCH_ALL = re.compile(r"\[\.\.\.[^\]]+\]")
_OPTIONAL_PARAM = re.compile(r"\[\[([^\]]+)\]\]")
_PARAM = re.compile(r"\[([^\]]+)\]")

@dataclass
class RecognizerContext:
    """Everything a recognizer may look at for one file.

    ``tree`` is ``None`` when the file could not be parsed.  ``framework``
    is the detected project framework (``"unknown"`` when undetected).
    """

    path: str
    tree: SyntaxTree | None
    content: str = ""
    framework: str = "unknown"

class RouteRecognizer(ABC):
    """One route declaration style."""

    name: str = ""

    @abstractmethod
    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]: ...

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

def rewrite_dynamic_segments(route: str) -> str:
    """Rewrite bracketed file-system segments into route parameters.

    ``[[...x]]`` and ``[...x]`` become ``*``, ``[[x]]`` and ``[x]`` become
    ``:x``.  Catch-alls are rewritten first so the single-bracket rule
    never sees them.
    """
    route = _OPTIONAL_CATCH_ALL.sub("*", route)
    route = _CATCH_ALL.sub("*", route)
    route = _OPTIONAL_PARAM.sub(r":\1", route)
    return _PARAM.sub(r":\1", route)

def join_route(parent: str, child: str) -> str:
    """Join a nested route path onto its parent's path.

    Absolute children are kept as written; an empty parent leaves the child
    untouched.
    """
    if not parent or child.startswith("/"):
        return child
    if not child:
        return parent
    return f"{parent.rstrip('/')}/{child}"

def _segments_after(path: str, marker: str) -> list[str] | None:
    """Return the path segments that follow the first *marker* directory."""
    parts = path.split("/")
    try:
        idx = parts.index(marker, 0, len(parts) - 1)
    except ValueError:
        return None
    return parts[idx + 1 :]

def _is_invisible_segment(segment: str) -> bool:
    """Route groups ``(name)`` and parallel slots ``@name`` add no URL segment."""
    return (segment.startswith("(") and segment.endswith(")")) or segment.startswith("@")

def _url_from_segments(segments: list[str]) -> str:
    return rewrite_dynamic_segments("/" + "/".join(segments))

# ---------------------------------------------------------------------------
# Component naming
# ---------------------------------------------------------------------------

def _element_name(node: Node) -> str | None:
    if node.type == "jsx_self_closing_element":
        return node_text(node.child_by_field_name("name")) or None
    if node.type == "jsx_element":
        opening = node.child_by_field_name("open_tag")
        if opening is None:
            opening = next((c for c in node.named_children if c.type == "jsx_opening_element"), None)
        if opening is not None:
            return node_text(opening.child_by_field_name("name")) or None
    return None

def _specifier_stem(specifier: str) -> str:
    stem = posixpath.basename(specifier.rstrip("/"))
    return posixpath.splitext(stem)[0] or specifier

def component_from_value(node: Node | None) -> str | None:
    """Derive a component name from a route's component value.

    Handles ``<X />``, ``<X>...</X>``, ``X``, ``Ns.X``, ``X()``,
    ``lazy(() => import("./X"))`` and ``() => import("./X")``.  Inline
    loaders are named after the imported module's file stem.
    """
    if node is None:
        return None
    if node.type == "jsx_expression":
        inner = node.named_children
        return component_from_value(inner[0]) if inner else None
    if node.type in ("jsx_self_closing_element", "jsx_element"):
        return _element_name(node)
    if node.type in ("identifier", "member_expression"):
        return node_text(node)
    if node.type == "arrow_function":
        specifier = loader_specifier(node)
        return _specifier_stem(specifier) if specifier else None
    if node.type == "call_expression":
        specifier = lazy_call_specifier(node) or dynamic_import_specifier(node)
        if specifier:
            return _specifier_stem(specifier)
        func = node.child_by_field_name("function")
        if func is not None and func.type in ("identifier", "member_expression"):
            return node_text(func)
    return None

def _literal_or_text(node: Node | None) -> str:
    """String literal value, else the raw expression text."""
    if node is None:
        return ""
    if node.type == "jsx_expression":
        inner = node.named_children
        return _literal_or_text(inner[0]) if inner else ""
    value = string_value(node)
    return value if value is not None else node_text(node)

# ---------------------------------------------------------------------------
# Syntax-based recognizers
# ---------------------------------------------------------------------------

class JsxRouteRecognizer(RouteRecognizer):
    """``<Route path="/about" element={<About />} />`` and paired elements.

    Any element with a ``path`` (or bare ``index``) attribute qualifies.
    Relative paths of elements nested inside another route element are
    joined onto the enclosing route's path.
    """

    name = "jsx"

    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]:
        if ctx.tree is None:
            return []
        routes: list[RouteDecl] = []
        for element in ctx.tree.nodes_of_type("jsx_element", "jsx_self_closing_element"):
            attrs = self._attributes(element)
            own = self._own_path(attrs)
            if own is None:
                continue
            route = join_route(self._parent_path(element), own)
            routes.append(
                RouteDecl(
                    path=route,
                    component=self._component(element, attrs) or UNKNOWN_COMPONENT,
                    declaring_file=ctx.path,
                    line=node_line(element),
                    recognizer=self.name,
                )
            )
        return routes

    @staticmethod
    def _tag(element: Node) -> Node | None:
        if element.type == "jsx_self_closing_element":
            return element
        for child in element.named_children:
            if child.type == "jsx_opening_element":
                return child
        return None

    def _attributes(self, element: Node) -> dict[str, Node | None]:
        """Map attribute name to its value node (``None`` for bare flags)."""
        tag = self._tag(element)
        attrs: dict[str, Node | None] = {}
        if tag is None:
            return attrs
        for attr in tag.named_children:
            if attr.type != "jsx_attribute" or not attr.named_children:
                continue
            parts = attr.named_children
            value = parts[-1] if len(parts) > 1 else None
            attrs.setdefault(node_text(parts[0]), value)
        return attrs

    @staticmethod
    def _own_path(attrs: dict[str, Node | None]) -> str | None:
        if "path" in attrs:
            return _literal_or_text(attrs["path"])
        if "index" in attrs:
            value = attrs["index"]
            if value is None or _literal_or_text(value) == "true":
                return INDEX_ROUTE
        return None

    def _parent_path(self, element: Node) -> str:
        """Path of the nearest enclosing route element, fully joined."""
        segments: list[str] = []
        node = element.parent
        while node is not None:
            if node.type == "jsx_element":
                own = self._own_path(self._attributes(node))
                if own is not None:
                    segments.append(own)
                    if own.startswith("/"):
                        break
            node = node.parent
        route = ""
        for segment in reversed(segments):
            route = join_route(route, segment)
        return route

    def _component(self, element: Node, attrs: dict[str, Node | None]) -> str | None:
        for key in _COMPONENT_KEYS:
            if key in attrs:
                name = component_from_value(attrs[key])
                if name:
                    return name
        if element.type != "jsx_element":
            return None
        for child in element.named_children:
            if child.type not in ("jsx_element", "jsx_self_closing_element"):
                continue
            if self._own_path(self._attributes(child)) is None:
                return _element_name(child)
        return None

class ObjectRouteRecognizer(RouteRecognizer):
    """Route objects such as ``{ path: "/about", element: <About /> }``.

    Objects with any of ``path``, ``index``, ``element`` or ``component``
    qualify; only those with a path or ``index: true`` yield a route.
    Objects listed in another route object's ``children`` array are
    emitted once, with their path joined onto the parent's.
    """

    name = "object"

    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]:
        if ctx.tree is None:
            return []
        routes: list[RouteDecl] = []
        nested: set[int] = set()
        for obj in ctx.tree.nodes_of_type("object"):
            if obj.id in nested:
                continue
            self._visit(ctx, obj, "", routes, nested)
        return routes

    def _visit(
        self,
        ctx: RecognizerContext,
        obj: Node,
        parent: str,
        routes: list[RouteDecl],
        nested: set[int],
    ) -> None:
        pairs = self._pairs(obj)
        if not _ROUTE_OBJECT_KEYS.intersection(pairs):
            return

        own: str | None = None
        if "path" in pairs:
            own = _literal_or_text(pairs["path"])
        elif "index" in pairs and node_text(pairs["index"]) == "true":
            own = INDEX_ROUTE

        full = parent
        if own is not None:
            full = join_route(parent, own)
            component = None
            for key in _COMPONENT_KEYS:
                if key in pairs:
                    component = component_from_value(pairs[key])
                    if component:
                        break
            routes.append(
                RouteDecl(
                    path=full,
                    component=component or UNKNOWN_COMPONENT,
                    declaring_file=ctx.path,
                    line=node_line(obj),
                    recognizer=self.name,
                )
            )

        children = pairs.get("children")
        if children is not None and children.type == "array":
            for child in children.named_children:
                if child.type == "object":
                    nested.add(child.id)
                    self._visit(ctx, child, full, routes, nested)

    @staticmethod
    def _pairs(obj: Node) -> dict[str, Node]:
        """Direct ``key: value`` pairs of *obj*; nested objects are not searched."""
        pairs: dict[str, Node] = {}
        for child in obj.named_children:
            if child.type != "pair":
                continue
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or value is None:
                continue
            name = string_value(key)
            if name is None:
                name = node_text(key)
            pairs.setdefault(name, value)
        return pairs

# ---------------------------------------------------------------------------
# Path-convention recognizers
# ---------------------------------------------------------------------------

class NextAppRouterRecognizer(RouteRecognizer):
    """``app/**/page.tsx`` files of the Next.js app router."""

    name = "next-app"

    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]:
        filename = posixpath.basename(ctx.path)
        stem, ext = posixpath.splitext(filename)
        if stem != "page" or ext not in _PAGE_EXTENSIONS:
            return []
        segments = _segments_after(ctx.path, "app")
        if segments is None:
            return []
        visible = [s for s in segments[:-1] if not _is_invisible_segment(s)]
        return [
            RouteDecl(
                path=_url_from_segments(visible),
                component=NEXT_PAGE_COMPONENT,
                declaring_file=ctx.path,
                line=CONVENTION_LINE,
                recognizer=self.name,
            )
        ]

class NextPagesRecognizer(RouteRecognizer):
    """``pages/**`` files of the Next.js pages router.

    ``_app``, ``_document``, ``_error`` and ``pages/api`` are not pages.
    Skipped for projects detected as another framework.
    """

    name = "next-pages"

    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]:
        if ctx.framework not in ("unknown", "nextjs"):
            return []
        stem, ext = posixpath.splitext(ctx.path)
        if ext not in _PAGE_EXTENSIONS:
            return []
        segments = _segments_after(stem, "pages")
        if not segments or segments[0] == "api":
            return []
        if segments[-1] in _NEXT_SPECIAL_PAGES:
            return []
        if segments[-1] == "index":
            segments = segments[:-1]
        return [
            RouteDecl(
                path=_url_from_segments(segments),
                component=NEXT_PAGE_COMPONENT,
                declaring_file=ctx.path,
                line=CONVENTION_LINE,
                recognizer=self.name,
            )
        ]

class SvelteKitRecognizer(RouteRecognizer):
    """``routes/**/+page.svelte`` files."""

    name = "sveltekit"

    def recognize(self, ctx: RecognizerContext) -> list[RouteDecl]:
        if posixpath.basename(ctx.path) != "+page.svelte":
            return []
        segments = _segments_after(ctx.path, "routes")
        if segments is None:
            return []
        visible = [s for s in segments[:-1] if not _is_invisible_segment(s)]
        return [
            RouteDecl(
                path=_url_from_segments(visible),
                component=SVELTEKIT_PAGE_COMPONENT,
                declaring_file=ctx.path,
                line=CONVENTION_LINE,
                recognizer=self.name,
            )
        ]

def default_recognizers() -> list[RouteRecognizer]:
    """The built-in recognizers, in the order their results are reported."""
    return [
        JsxRouteRecognizer(),
        ObjectRouteRecognizer(),
        NextAppRouterRecognizer(),
        NextPagesRecognizer(),
        SvelteKitRecognizer(),
    ]
