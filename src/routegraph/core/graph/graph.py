"""Bidirectional import graph.

Every file that imports or is imported by another file has a
:class:`GraphNode`.  Forward edges (``imports``) are rebuilt from the
current :class:`FileFact` on each upsert; reverse edges (``imported_by``)
are added alongside them so that impact traversal never has to scan the
whole graph.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Iterator

from routegraph.core.graph.model import FileFact, GraphNode
from routegraph.errors import GraphInvariantError

logger = logging.getLogger(__name__)

_ENTRY_POINT_STEMS = frozenset({"index", "main", "App"})

class ImportGraph:
    """An in-memory directed graph of file-level imports.

    Nodes are keyed by project-relative path.  For every ``B`` in
    ``node(A).imports`` the graph holds ``A`` in ``node(B).imported_by``.
    Reverse edges left behind when ``A`` stops importing ``B`` are kept
    unless *prune_stale_edges* is set; they can only widen an impact set.
    """

    def __init__(self, prune_stale_edges: bool = False) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._facts: dict[str, FileFact] = {}
        self.prune_stale_edges = prune_stale_edges

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def iter_nodes(self) -> Iterator[GraphNode]:
        """Yield all nodes without creating an intermediate list."""
        return iter(self._nodes.values())

    def get_node(self, path: str) -> GraphNode | None:
        """Return the node for *path*, or ``None`` if it was never referenced."""
        return self._nodes.get(path)

    def get_fact(self, path: str) -> FileFact | None:
        """Return the most recent fact upserted for *path*."""
        return self._facts.get(path)

    def iter_facts(self) -> Iterator[FileFact]:
        return iter(self._facts.values())

    def ensure_node(self, path: str) -> GraphNode:
        """Return the node for *path*, creating an empty one if needed."""
        node = self._nodes.get(path)
        if node is None:
            node = GraphNode(file=path)
            self._nodes[path] = node
        return node

    def upsert(self, file_path: str, fact: FileFact) -> GraphNode:
        """Insert or replace the node for *file_path* from *fact*.

        The node's outgoing edges are replaced by the fact's resolved
        imports; a reverse edge is added on each target, creating target
        nodes as needed.  Self-imports are ignored.
        """
        node = self.ensure_node(file_path)
        previous = node.imports

        targets = {target for target in fact.resolved_imports if target != file_path}
        node.imports = targets
        node.is_route_file = bool(fact.routes)
        self._facts[file_path] = fact

        for target in targets:
            self.ensure_node(target).imported_by.add(file_path)

        dropped = previous - targets
        if dropped and self.prune_stale_edges:
            for target in dropped:
                target_node = self._nodes.get(target)
                if target_node is not None:
                    target_node.imported_by.discard(file_path)
            logger.debug("Pruned %d stale reverse edge(s) from %s", len(dropped), file_path)

        return node

    def importers_of(self, path: str) -> set[str]:
        """Return the direct importers of *path* (a copy)."""
        node = self._nodes.get(path)
        return set(node.imported_by) if node is not None else set()

    def all_route_files(self) -> list[str]:
        """Return every file whose latest fact declares at least one route."""
        return sorted(path for path, node in self._nodes.items() if node.is_route_file)

    def recompute_entry_points(self) -> list[str]:
        """Flag files that nothing imports and whose path looks like an entry.

        The file name without its extension must be ``index``, ``main`` or
        ``App``.  Returns the sorted entry-point paths.
        """
        entries: list[str] = []
        for path, node in self._nodes.items():
            stem = posixpath.splitext(posixpath.basename(path))[0]
            node.is_entry_point = not node.imported_by and stem in _ENTRY_POINT_STEMS
            if node.is_entry_point:
                entries.append(path)
        return sorted(entries)

    def edge_count(self) -> int:
        """Return the number of forward import edges."""
        return sum(len(node.imports) for node in self._nodes.values())

    def check_invariants(self) -> None:
        """Verify that every forward edge has its reverse edge.

        Raises:
            GraphInvariantError: On the first missing node or reverse edge.
        """
        for path, node in self._nodes.items():
            for target in node.imports:
                target_node = self._nodes.get(target)
                if target_node is None:
                    raise GraphInvariantError(f"{path} imports {target}, which has no node")
                if path not in target_node.imported_by:
                    raise GraphInvariantError(
                        f"{path} imports {target} but is missing from its importers"
                    )

    def load_nodes(self, nodes: list[GraphNode], facts: list[FileFact] | None = None) -> None:
        """Replace the graph contents with previously persisted *nodes*.

        Nodes referenced by an edge but absent from *nodes* are created empty.
        """
        self.clear()
        for node in nodes:
            self._nodes[node.file] = node
        for node in nodes:
            for target in node.imports:
                self.ensure_node(target).imported_by.add(node.file)
        for fact in facts or ():
            self._facts[fact.path] = fact

    def clear(self) -> None:
        self._nodes.clear()
        self._facts.clear()
