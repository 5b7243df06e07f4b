"""Fact extraction.

Turns one parsed file into a :class:`FileFact`: its resolved imports, its
exported names and the routes it declares.  Extraction never raises; a
file that cannot be read or parsed simply yields fewer (or no) facts.
"""

from __future__ import annotations

import logging
import posixpath
import time

from tree_sitter import Node

from routegraph.core.graph.model import FileFact, ImportEdge, RouteDecl, empty_fact
from routegraph.core.ingestion.imports import ImportResolver
from routegraph.core.ingestion.recognizers import (
    RecognizerContext,
    RouteRecognizer,
    default_recognizers,
)
from routegraph.core.parsers.base import (
    ParseFailure,
    SyntaxTree,
    dynamic_import_specifier,
    node_line,
    node_text,
    string_value,
)
from routegraph.core.parsers.typescript import SyntaxParser
from routegraph.core.storage.graph_store import content_hash

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024

_DECLARATION_NAME_TYPES = (
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
)

class FactExtractor:
    """Extract :class:`FileFact` objects from source files.

    Args:
        resolver: Resolves every import specifier found in a file.
        recognizers: Route recognizers, run in order.  Defaults to
            :func:`default_recognizers`.
        framework: Detected project framework, passed to recognizers.
        max_file_size: Content longer than this many bytes is skipped.
    """

    def __init__(
        self,
        resolver: ImportResolver,
        recognizers: list[RouteRecognizer] | None = None,
        framework: str = "unknown",
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        parser: SyntaxParser | None = None,
    ) -> None:
        self.resolver = resolver
        self.recognizers = recognizers if recognizers is not None else default_recognizers()
        self.framework = framework
        self.max_file_size = max_file_size
        self.parser = parser or SyntaxParser()

    def is_skippable(self, content: str) -> bool:
        """Return ``True`` for oversize or binary content."""
        if "\0" in content:
            return True
        return len(content.encode("utf-8", errors="replace")) > self.max_file_size

    def parse(self, file_path: str, content: str) -> SyntaxTree | None:
        """Parse *content* for *file_path*; ``None`` when no tree is available."""
        result = self.parser.parse(content, posixpath.splitext(file_path)[1])
        if isinstance(result, ParseFailure):
            if result.reason != "convention-only":
                logger.debug("No syntax tree for %s: %s %s", file_path, result.reason, result.detail)
            return None
        return result

    def extract_source(self, file_path: str, content: str) -> FileFact:
        """Parse and extract *content* in one step."""
        if self.is_skippable(content):
            logger.debug("Skipping %s: binary or larger than %d bytes", file_path, self.max_file_size)
            return empty_fact(file_path)
        return self.extract(self.parse(file_path, content), file_path, content)

    def extract(self, tree: SyntaxTree | None, file_path: str, content: str) -> FileFact:
        """Build the fact for *file_path* from an already parsed *tree*.

        *tree* may be ``None`` (convention-only or unparsable files); in
        that case only path-convention routes are reported.
        """
        if self.is_skippable(content):
            return empty_fact(file_path)

        imports: list[ImportEdge] = []
        exports: list[str] = []
        if tree is not None:
            imports = self.extract_imports(tree, file_path)
            exports = extract_exports(tree)

        return FileFact(
            path=file_path,
            imports=imports,
            exports=exports,
            routes=self.extract_routes(tree, file_path, content),
            content_hash=content_hash(content),
            last_seen_at=time.time(),
        )

    def extract_routes(self, tree: SyntaxTree | None, file_path: str, content: str) -> list[RouteDecl]:
        ctx = RecognizerContext(path=file_path, tree=tree, content=content, framework=self.framework)
        routes: list[RouteDecl] = []
        for recognizer in self.recognizers:
            try:
                routes.extend(recognizer.recognize(ctx))
            except Exception:
                logger.debug("Recognizer %s failed on %s", recognizer.name, file_path, exc_info=True)
        return routes

    def extract_imports(self, tree: SyntaxTree, file_path: str) -> list[ImportEdge]:
        """Collect static, re-export, ``require`` and ``import()`` edges."""
        edges: list[ImportEdge] = []
        for node in tree.nodes_of_type("import_statement", "export_statement", "call_expression"):
            specifier: str | None = None
            kind = "static"
            if node.type == "call_expression":
                specifier = dynamic_import_specifier(node)
                if specifier is not None:
                    kind = "dynamic"
                else:
                    specifier = _require_specifier(node)
            else:
                specifier = string_value(node.child_by_field_name("source"))

            if specifier is None:
                continue
            edges.append(
                ImportEdge(
                    source=self.resolver.resolve(file_path, specifier),
                    line=node_line(node),
                    specifier=specifier,
                    kind=kind,
                )
            )
        return edges

def extract_exports(tree: SyntaxTree) -> list[str]:
    """Return exported names in declaration order; ``default`` for default exports."""
    names: list[str] = []
    for stmt in tree.nodes_of_type("export_statement"):
        if any(child.type == "default" for child in stmt.children):
            names.append("default")
            continue
        declaration = stmt.child_by_field_name("declaration")
        if declaration is not None:
            names.extend(_declared_names(declaration))
            continue
        for child in stmt.named_children:
            if child.type == "export_clause":
                for spec in child.named_children:
                    if spec.type != "export_specifier":
                        continue
                    alias = spec.child_by_field_name("alias")
                    names.append(node_text(alias or spec.child_by_field_name("name")))
    return [name for name in names if name]

def _declared_names(declaration: Node) -> list[str]:
    if declaration.type in ("lexical_declaration", "variable_declaration"):
        return [
            node_text(d.child_by_field_name("name"))
            for d in declaration.named_children
            if d.type == "variable_declarator"
        ]
    if declaration.type in _DECLARATION_NAME_TYPES:
        return [node_text(declaration.child_by_field_name("name"))]
    return []

def _require_specifier(node: Node) -> str | None:
    func = node.child_by_field_name("function")
    if func is None or func.type != "identifier" or node_text(func) != "require":
        return None
    args = node.child_by_field_name("arguments")
    if args is None or not args.named_children:
        return None
    return string_value(args.named_children[0])
