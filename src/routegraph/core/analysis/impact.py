"""Route impact resolution.

Walks the import graph *upwards* (from a file to the files that import it)
and collects the routes declared by every route file reached.  Results are
memoised per input path; :meth:`RouteImpactResolver.invalidate` drops only
the entries a changed file can have affected.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from collections.abc import Iterable

from routegraph.core.graph.graph import ImportGraph

logger = logging.getLogger(__name__)

class RouteImpactResolver:
    """Breadth-first route impact over an :class:`ImportGraph`.

    Args:
        graph: The graph to traverse.  Route paths come from the facts the
            graph holds for each route file.
        early_stop_depth: Once at least one route has been found, nodes
            deeper than this are not visited.  ``None`` visits every
            reachable importer.
    """

    def __init__(self, graph: ImportGraph, early_stop_depth: int | None = 3) -> None:
        self.graph = graph
        self.early_stop_depth = early_stop_depth
        self._cache: dict[str, list[str]] = {}
        # visited file -> cache keys whose traversal passed through it
        self._visited_by: dict[str, set[str]] = defaultdict(set)

    def __len__(self) -> int:
        return len(self._cache)

    def is_cached(self, file_path: str) -> bool:
        return file_path in self._cache

    def impact_of(self, file_path: str) -> list[str]:
        """Return the sorted route paths affected by a change to *file_path*."""
        cached = self._cache.get(file_path)
        if cached is not None:
            return list(cached)

        if self.graph.get_node(file_path) is None:
            return []

        routes: set[str] = set()
        visited: set[str] = {file_path}
        queue: deque[tuple[str, int]] = deque([(file_path, 0)])

        while queue:
            current, depth = queue.popleft()
            if (
                routes
                and self.early_stop_depth is not None
                and depth > self.early_stop_depth
            ):
                logger.debug(
                    "Stopping impact search for %s at depth %d (%d routes found)",
                    file_path,
                    depth,
                    len(routes),
                )
                break

            node = self.graph.get_node(current)
            if node is None:
                continue
            if node.is_route_file:
                fact = self.graph.get_fact(current)
                if fact is not None:
                    routes.update(fact.route_paths)

            for importer in sorted(node.imported_by):
                if importer not in visited:
                    visited.add(importer)
                    queue.append((importer, depth + 1))

        result = sorted(routes)
        self._cache[file_path] = result
        for path in visited:
            self._visited_by[path].add(file_path)
        return list(result)

    def invalidate(self, paths: Iterable[str], reaching: Iterable[str] = ()) -> int:
        """Drop cached results a change to *paths* may have made stale.

        Removes the entries of the files themselves, of their direct
        importers, and of every cached traversal that visited one of them.
        Traversals that visited a file in *reaching* are dropped as well;
        callers pass the old and new import targets of a changed file so
        that traversals through a newly added edge are recomputed.
        Returns the number of entries removed.
        """
        targets: set[str] = set()
        for path in paths:
            targets.add(path)
            targets.update(self.graph.importers_of(path))
        touched = targets | set(reaching)

        stale: set[str] = set(targets)
        for path in touched:
            stale.update(self._visited_by.get(path, ()))

        removed = 0
        for key in stale:
            if self._cache.pop(key, None) is not None:
                removed += 1
        for path in list(self._visited_by):
            keys = self._visited_by[path]
            keys.difference_update(stale)
            if not keys:
                del self._visited_by[path]

        if removed:
            logger.debug("Invalidated %d cached impact result(s)", removed)
        return removed

    def clear(self) -> None:
        self._cache.clear()
        self._visited_by.clear()
