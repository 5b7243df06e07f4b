"""Route impact analysis for a front-end project.

:class:`RouteAnalyzer` is the query surface used by the CLI, the MCP server
and library callers.  It owns every piece of state for one project root:
the import graph with its facts, the impact cache, the component maps and
the persisted graph blob.  Nothing is kept at module level, so several
analyzers can coexist in one process.

Typical use::

    analyzer = RouteAnalyzer(Path("~/web").expanduser())
    await analyzer.initialize()
    routes = await analyzer.detect_routes(["src/components/Button.tsx"])
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from routegraph.config.settings import AnalyzerConfig
from routegraph.config.tsconfig import load_tsconfig_aliases
from routegraph.core.analysis.component_map import ComponentRouteMapper
from routegraph.core.analysis.impact import RouteImpactResolver
from routegraph.core.graph.graph import ImportGraph
from routegraph.core.graph.model import FileFact, empty_fact
from routegraph.core.ingestion.extractor import FactExtractor
from routegraph.core.ingestion.framework import UNKNOWN, detect_framework
from routegraph.core.ingestion.imports import ImportResolver
from routegraph.core.ingestion.pipeline import PipelineResult, build_graph
from routegraph.core.ingestion.walker import read_source, to_relative
from routegraph.core.storage.base import ByteStore
from routegraph.core.storage.graph_store import GraphStore, content_hash
from routegraph.core.storage.local import LocalDirectoryStore

logger = logging.getLogger(__name__)

ROUTE_FILE_TEST = "test"
ROUTE_FILE_PRIMARY = "primary"
ROUTE_FILE_COMPONENT = "component-with-routes"

_TEST_SEGMENTS = frozenset({"test", "tests", "__tests__", "__mocks__", "spec", "specs", "e2e"})
_ROUTER_WORDS = ("router", "routes", "routing")

@dataclass
class RouteInfo:
    routes: list[str] = field(default_factory=list)
    is_route_definer: bool = False
    route_file_type: str | None = None

@dataclass
class GraphMetrics:
    total_files: int = 0
    route_files: int = 0
    entry_points: int = 0
    import_edges: int = 0

@dataclass(frozen=True)
class ServingRoute:
    """A route that renders a given component file."""

    route_path: str
    component: str
    route_file: str
    line: int

def classify_route_file(file_path: str) -> str:
    """Classify a route-declaring file by its path.

    Returns ``"test"`` for files under test directories or named
    ``*.test.*`` / ``*.spec.*``, ``"primary"`` for router configuration
    files and the top-level ``App`` component, and ``"component-with-routes"``
    for any other file that happens to declare routes.
    """
    path = PurePosixPath(file_path.lower())
    name = path.name
    if any(part in _TEST_SEGMENTS for part in path.parts[:-1]) or ".test." in name or ".spec." in name:
        return ROUTE_FILE_TEST

    stem = name.split(".", 1)[0]
    if any(word in stem for word in _ROUTER_WORDS) or stem == "app":
        return ROUTE_FILE_PRIMARY
    if any(part in _ROUTER_WORDS for part in path.parts[:-1]):
        return ROUTE_FILE_PRIMARY
    return ROUTE_FILE_COMPONENT

class RouteAnalyzer:
    """Answer "which routes does a change to this file affect?".

    Args:
        root: Project root directory.
        config: Analyzer settings; defaults to :class:`AnalyzerConfig`.
        store: Byte store for the persisted graph.  Defaults to a
            :class:`LocalDirectoryStore` under ``<root>/<config.cache_dir>``.

    All query methods are coroutines and lazily call :meth:`initialize`.
    Mutations are expected to come from a single task at a time.
    """

    def __init__(
        self,
        root: Path | str,
        config: AnalyzerConfig | None = None,
        store: ByteStore | None = None,
    ) -> None:
        self.root = Path(root).resolve()
        config = config or AnalyzerConfig()
        if config.load_tsconfig_paths:
            config = config.with_aliases(load_tsconfig_aliases(self.root))
        self.config = config
        self.framework = UNKNOWN

        self.graph = ImportGraph(prune_stale_edges=config.prune_stale_edges)
        self.resolver = ImportResolver(self.root, config.aliases, config.extensions)
        self.extractor = FactExtractor(self.resolver, max_file_size=config.max_file_size)
        self.impact = RouteImpactResolver(self.graph, early_stop_depth=config.early_stop_depth)
        self.mapper = ComponentRouteMapper(self.graph, self.extractor, self._read_now, config.aliases)

        if store is None:
            store = LocalDirectoryStore(self.root / config.cache_dir)
        self.graph_store = GraphStore(store, self.root, namespace=config.cache_namespace)

        self.last_build: PipelineResult | None = None
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, force_rebuild: bool = False) -> None:
        """Load the persisted graph, or build and persist a fresh one.

        With *force_rebuild* every in-memory and persisted cache is cleared
        first.  A persisted graph that cannot be loaded triggers a rebuild.
        """
        self.framework = detect_framework(self.root)
        self.extractor.framework = self.framework
        logger.info("Initializing route analysis for %s (%s)", self.root, self.framework)

        if force_rebuild:
            await self.clear_cache()
        else:
            loaded = await self.graph_store.load(prune_stale_edges=self.config.prune_stale_edges)
            if loaded is not None:
                graph, facts = loaded
                self._reset_memory()
                self.graph.load_nodes(list(graph.iter_nodes()), list(facts.values()))
                self.graph.recompute_entry_points()
                self._initialized = True
                return

        await self.rebuild()

    async def rebuild(self) -> PipelineResult:
        """Rebuild the graph from every project file and persist it."""
        self._reset_memory()
        _, result = await build_graph(
            self.root,
            self.extractor,
            self.graph,
            batch_size=self.config.batch_size,
        )
        self.last_build = result
        self._initialized = True
        await self.persist()
        return result

    async def persist(self) -> bool:
        """Write the current graph to the byte store.  Never raises."""
        return await self.graph_store.save(self.graph, list(self.graph.iter_facts()))

    async def clear_cache(self) -> None:
        """Drop in-memory state and the persisted graph."""
        self._reset_memory()
        self._initialized = False
        await self.graph_store.delete()

    def _reset_memory(self) -> None:
        self.graph.clear()
        self.impact.clear()
        self.mapper.clear()

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    async def refresh_files(self, paths: list[str]) -> list[str]:
        """Re-extract *paths* whose content changed since they were last seen.

        Returns the project-relative paths whose facts were replaced.  Cached
        impact results that the change may affect are invalidated; all others
        are kept.
        """
        await self._ensure_initialized()
        changed: list[str] = []
        for raw in paths:
            rel = self.normalize(raw)
            if rel is None:
                continue
            fact = await self._fresh_fact(rel)
            if fact is None:
                continue

            node = self.graph.get_node(rel)
            old_targets = set(node.imports) if node is not None else set()
            new_node = self.graph.upsert(rel, fact)
            self.impact.invalidate([rel], reaching=old_targets | new_node.imports)
            self.mapper.invalidate([rel])
            changed.append(rel)

        if changed:
            self.graph.recompute_entry_points()
            logger.debug("Refreshed %d file(s): %s", len(changed), ", ".join(changed))
        return changed

    async def _fresh_fact(self, rel: str) -> FileFact | None:
        """Return a new fact for *rel*, or ``None`` if its content is unchanged."""
        content = await asyncio.to_thread(read_source, self.root, rel, self.config.max_file_size)
        old = self.graph.get_fact(rel)
        if content is None:
            # Unknown paths stay out of the graph; known files lose their facts once.
            if old is None or not old.content_hash:
                return None
            return empty_fact(rel)
        if old is not None and old.content_hash == content_hash(content):
            return None
        return self.extractor.extract_source(rel, content)

    def normalize(self, file_path: str) -> str | None:
        """Return *file_path* relative to the project root, or ``None``."""
        if not file_path:
            return None
        rel = to_relative(self.root, file_path)
        if rel is None:
            return None
        rel = posixpath.normpath(rel)
        if rel == "." or rel.startswith("../"):
            return None
        return rel

    def _read_now(self, rel_path: str) -> str | None:
        return read_source(self.root, rel_path, self.config.max_file_size)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def detect_routes(
        self, changed_files: list[str], precise: bool = False
    ) -> dict[str, list[str]]:
        """Return the routes affected by each changed file.

        Facts of the given files are refreshed first.  Files that affect no
        route are omitted.  With *precise*, a file whose component is bound
        to specific routes (``element={<X />}`` where ``X`` is imported from
        the file) reports only those routes.
        """
        await self.refresh_files(changed_files)
        if precise:
            await self._prepare_component_maps()
        results: dict[str, list[str]] = {}
        for raw in changed_files:
            rel = self.normalize(raw)
            if rel is None:
                continue
            routes = self.impact.impact_of(rel)
            if precise:
                serving = sorted({s.route_path for s in self._serving_routes(rel)})
                if serving:
                    routes = serving
            if routes:
                results[raw] = routes
        return results

    async def get_route_info(self, changed_files: list[str]) -> dict[str, RouteInfo]:
        """Like :meth:`detect_routes`, with route-file classification."""
        await self.refresh_files(changed_files)
        results: dict[str, RouteInfo] = {}
        for raw in changed_files:
            rel = self.normalize(raw)
            if rel is None:
                results[raw] = RouteInfo()
                continue
            node = self.graph.get_node(rel)
            is_definer = bool(node is not None and node.is_route_file)
            results[raw] = RouteInfo(
                routes=self.impact.impact_of(rel),
                is_route_definer=is_definer,
                route_file_type=classify_route_file(rel) if is_definer else None,
            )
        return results

    async def get_metrics(self) -> GraphMetrics:
        await self._ensure_initialized()
        return GraphMetrics(
            total_files=len(self.graph),
            route_files=len(self.graph.all_route_files()),
            entry_points=sum(1 for node in self.graph.iter_nodes() if node.is_entry_point),
            import_edges=self.graph.edge_count(),
        )

    async def find_routes_serving_component(self, component_file: str) -> list[ServingRoute]:
        """Return every route, in any route file, that renders *component_file*."""
        await self._ensure_initialized()
        rel = self.normalize(component_file)
        if rel is None:
            return []
        await self._prepare_component_maps()
        return self._serving_routes(rel)

    async def _prepare_component_maps(self) -> None:
        """Load the import maps of every route file without blocking the loop.

        Route files edited since their facts were extracted are refreshed
        first.
        """
        changed = await self.mapper.prepare(self.graph.all_route_files())
        if changed:
            await self.refresh_files(changed)
            await self.mapper.prepare(self.graph.all_route_files())

    def _serving_routes(self, rel: str) -> list[ServingRoute]:
        component_name = posixpath.splitext(posixpath.basename(rel))[0]
        serving: list[ServingRoute] = []
        for route_file in self.graph.all_route_files():
            try:
                alias = self.mapper.local_name_of(route_file, rel)
            except Exception:
                logger.debug("Could not map components of %s", route_file, exc_info=True)
                continue
            if alias is None:
                continue
            for mapping in self.mapper.map_route_file(route_file):
                if mapping.component_name.split(".", 1)[0] == alias:
                    serving.append(
                        ServingRoute(
                            route_path=mapping.route_path,
                            component=f"{alias} ({component_name})",
                            route_file=route_file,
                            line=mapping.line,
                        )
                    )
        return serving
