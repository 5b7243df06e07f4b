"""Component-route mapping.

Ties the component named in a route declaration to the file it comes from,
using only the route file's own imports.  This answers "does route R in file
F render component C" exactly, instead of "F imports something near C".
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass

from routegraph.core.graph.graph import ImportGraph
from routegraph.core.graph.model import ImportBinding
from routegraph.core.ingestion.extractor import FactExtractor
from routegraph.core.ingestion.lazy import find_lazy_bindings
from routegraph.core.parsers.base import SyntaxTree, node_line, node_text, string_value
from routegraph.core.storage.graph_store import content_hash

logger = logging.getLogger(__name__)

ComponentImportMap = dict[str, ImportBinding]

_SOURCE_EXT = re.compile(r"\.(tsx?|jsx?|mjs|cjs|vue|svelte)$")

@dataclass(frozen=True)
class RouteComponentMapping:
    route_path: str
    component_name: str
    component_path: str | None
    line: int

def collect_import_bindings(
    tree: SyntaxTree,
    file_path: str,
    resolve: Callable[[str, str], str | None],
) -> ComponentImportMap:
    """Return every local name bound by an import in *tree*.

    Static bindings come first; a lazy or dynamic declarator that reuses a
    name overrides it.
    """
    bindings: ComponentImportMap = {}

    for stmt in tree.nodes_of_type("import_statement"):
        specifier = string_value(stmt.child_by_field_name("source"))
        if specifier is None:
            continue
        resolved = resolve(file_path, specifier)
        line = node_line(stmt)
        for clause in stmt.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    name = node_text(part)
                    bindings[name] = ImportBinding(name, specifier, resolved, "default", "default", line)
                elif part.type == "namespace_import":
                    for ident in part.named_children:
                        if ident.type == "identifier":
                            name = node_text(ident)
                            bindings[name] = ImportBinding(name, specifier, resolved, "namespace", "*", line)
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        imported = node_text(spec.child_by_field_name("name"))
                        alias = spec.child_by_field_name("alias")
                        name = node_text(alias) if alias is not None else imported
                        bindings[name] = ImportBinding(name, specifier, resolved, "named", imported, line)

    for lazy in find_lazy_bindings(tree):
        imported = "default" if lazy.import_type == "lazy" else "*"
        bindings[lazy.local_name] = ImportBinding(
            lazy.local_name,
            lazy.specifier,
            resolve(file_path, lazy.specifier),
            lazy.import_type,
            imported,
            lazy.line,
        )
    return bindings

def _strip_ext(path: str) -> str:
    return _SOURCE_EXT.sub("", path)

class ComponentRouteMapper:
    """Map route declarations of route files to component files.

    Import maps are cached against the content hash recorded in the route
    file's :class:`FileFact`, so route declarations and import bindings
    always come from the same version of the file.  Coroutines should call
    :meth:`prepare` first; the synchronous queries then never touch disk.

    Args:
        graph: Supplies the facts (and therefore route declarations) of
            each route file.
        extractor: Parses route files and resolves their imports.
        read_source: Returns a file's current content, or ``None`` when it
            cannot be read.
        aliases: Import alias prefixes, used to normalise specifiers when
            matching them against file paths.
    """

    def __init__(
        self,
        graph: ImportGraph,
        extractor: FactExtractor,
        read_source: Callable[[str], str | None],
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.graph = graph
        self.extractor = extractor
        self.read_source = read_source
        self._aliases = sorted((aliases or {}).items(), key=lambda item: len(item[0]), reverse=True)
        self._maps: dict[str, tuple[str, ComponentImportMap]] = {}

    def _fact_hash(self, route_file: str) -> str:
        fact = self.graph.get_fact(route_file)
        return fact.content_hash if fact is not None else ""

    def is_stale(self, route_file: str) -> bool:
        cached = self._maps.get(route_file)
        return cached is None or cached[0] != self._fact_hash(route_file)

    def load_source(self, route_file: str, content: str | None) -> bool:
        """Build the import map of *route_file* from *content*.

        Returns ``False`` when *content* is readable but differs from the
        version recorded in the graph; that file maps to ``{}`` until its
        fact is refreshed.
        """
        expected = self._fact_hash(route_file)
        bindings: ComponentImportMap = {}
        matches = True
        if content is not None and expected:
            matches = content_hash(content) == expected
            if matches:
                tree = self.extractor.parse(route_file, content)
                if tree is not None:
                    bindings = collect_import_bindings(tree, route_file, self.extractor.resolver.resolve)
            else:
                logger.debug("%s changed since its facts were extracted", route_file)
        self._maps[route_file] = (expected, bindings)
        return matches

    async def prepare(self, route_files: Iterable[str]) -> list[str]:
        """Read every stale route file in a worker thread and cache its map.

        Returns the route files whose content on disk no longer matches
        their recorded facts.
        """
        stale = [path for path in route_files if self.is_stale(path)]
        if not stale:
            return []
        contents = await asyncio.gather(*(asyncio.to_thread(self.read_source, path) for path in stale))
        return [
            path for path, content in zip(stale, contents) if not self.load_source(path, content)
        ]

    def import_map(self, route_file: str) -> ComponentImportMap:
        """Return the local-name -> import map of *route_file*.

        Reads the file only when no map matches its current fact; an
        unreadable file maps to ``{}``.
        """
        if self.is_stale(route_file):
            self.load_source(route_file, self.read_source(route_file))
        return self._maps[route_file][1]

    def map_route_file(self, route_file: str) -> list[RouteComponentMapping]:
        """Return one mapping per route declared in *route_file*."""
        fact = self.graph.get_fact(route_file)
        if fact is None or not fact.routes:
            return []
        bindings = self.import_map(route_file)
        mappings: list[RouteComponentMapping] = []
        for route in fact.routes:
            binding = bindings.get(route.component.split(".", 1)[0])
            mappings.append(
                RouteComponentMapping(
                    route_path=route.path,
                    component_name=route.component,
                    component_path=binding.resolved_path if binding is not None else None,
                    line=route.line,
                )
            )
        return mappings

    def local_name_of(self, route_file: str, component_file: str) -> str | None:
        """Return the name *route_file* binds *component_file* to, if any.

        Tries, in order: an exact resolved-path match, an extension-insensitive
        suffix match of the import specifier, and a base-name match of named
        imports.
        """
        bindings = self.import_map(route_file)
        if not bindings:
            return None

        for binding in bindings.values():
            if binding.resolved_path == component_file:
                return binding.local_name

        target = _strip_ext(component_file).lower()
        stem = posixpath.basename(target)
        for binding in bindings.values():
            if not self._specifier_matches(binding.specifier, target):
                continue
            if binding.import_type != "named" or binding.imported_name.lower() == stem:
                return binding.local_name

        for binding in bindings.values():
            if binding.import_type != "named" or binding.imported_name.lower() != stem:
                continue
            if binding.resolved_path is None:
                return binding.local_name
            barrel_dir = posixpath.dirname(binding.resolved_path)
            if not barrel_dir or component_file.startswith(barrel_dir + "/"):
                return binding.local_name
        return None

    def invalidate(self, paths: list[str] | set[str]) -> None:
        for path in paths:
            self._maps.pop(path, None)

    def clear(self) -> None:
        self._maps.clear()

    def _specifier_matches(self, specifier: str, target: str) -> bool:
        spec = _strip_ext(specifier.split("?", 1)[0]).lower()
        for prefix, replacement in self._aliases:
            if spec.startswith(prefix.lower()):
                spec = replacement.lower() + spec[len(prefix):]
                break
        while spec.startswith(("./", "../")):
            spec = spec.split("/", 1)[1]
        spec = spec.rstrip("/")
        if not spec:
            return False
        return (
            target == spec
            or target.endswith("/" + spec)
            or target.endswith("/" + spec + "/index")
            or target == spec + "/index"
        )
