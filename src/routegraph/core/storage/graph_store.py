"""Persistence of the import graph and file facts as one JSON blob.

The blob is written through any :class:`ByteStore` under
``<namespace>/<project-name>/import-graph.json``::

    {
      "version": "1.0",
      "timestamp": 1700000000000,
      "graph": [{"file", "importedBy", "imports", "isRouteFile", "isEntryPoint"}],
      "fileCache": [{"path", "imports", "exports", "routes", "contentHash", "lastSeenAt"}]
    }

Every failure on the way in or out is logged and reported as a cache miss;
nothing here raises to the caller.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from routegraph.core.graph.graph import ImportGraph
from routegraph.core.graph.model import FileFact, GraphNode, ImportEdge, RouteDecl
from routegraph.core.storage.base import ByteStore
from routegraph.errors import StorageError

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"
GRAPH_FILENAME = "import-graph.json"

def content_hash(content: str) -> str:
    """Return the md5 hex digest used to detect changed files."""
    return hashlib.md5(content.encode("utf-8", errors="replace")).hexdigest()

# ---------------------------------------------------------------------------
# (De)serialisation
# ---------------------------------------------------------------------------

def node_to_dict(node: GraphNode) -> dict[str, Any]:
    return {
        "file": node.file,
        "importedBy": sorted(node.imported_by),
        "imports": sorted(node.imports),
        "isRouteFile": node.is_route_file,
        "isEntryPoint": node.is_entry_point,
    }

def node_from_dict(data: dict[str, Any]) -> GraphNode:
    return GraphNode(
        file=data["file"],
        imported_by=set(data.get("importedBy", [])),
        imports=set(data.get("imports", [])),
        is_route_file=bool(data.get("isRouteFile", False)),
        is_entry_point=bool(data.get("isEntryPoint", False)),
    )

def fact_to_dict(fact: FileFact) -> dict[str, Any]:
    return {
        "path": fact.path,
        "imports": [
            {"source": e.source, "line": e.line, "specifier": e.specifier, "kind": e.kind}
            for e in fact.imports
        ],
        "exports": list(fact.exports),
        "routes": [
            {
                "path": r.path,
                "component": r.component,
                "declaringFile": r.declaring_file,
                "line": r.line,
                "recognizer": r.recognizer,
            }
            for r in fact.routes
        ],
        "contentHash": fact.content_hash,
        "lastSeenAt": fact.last_seen_at,
    }

def fact_from_dict(data: dict[str, Any]) -> FileFact:
    path = data["path"]
    return FileFact(
        path=path,
        imports=[
            ImportEdge(
                source=e.get("source"),
                line=int(e.get("line", 0)),
                specifier=e.get("specifier", ""),
                kind=e.get("kind", "static"),
            )
            for e in data.get("imports", [])
        ],
        exports=list(data.get("exports", [])),
        routes=[
            RouteDecl(
                path=r["path"],
                component=r.get("component", "unknown"),
                declaring_file=r.get("declaringFile", path),
                line=int(r.get("line", 0)),
                recognizer=r.get("recognizer", ""),
            )
            for r in data.get("routes", [])
        ],
        content_hash=data.get("contentHash", ""),
        last_seen_at=float(data.get("lastSeenAt", 0.0)),
    )

def encode_graph(graph: ImportGraph, facts: Iterable[FileFact]) -> bytes:
    """Serialise *graph* and *facts* into the persisted JSON document."""
    document = {
        "version": FORMAT_VERSION,
        "timestamp": int(time.time() * 1000),
        "graph": [node_to_dict(n) for n in sorted(graph.iter_nodes(), key=lambda n: n.file)],
        "fileCache": [fact_to_dict(f) for f in sorted(facts, key=lambda f: f.path)],
    }
    return json.dumps(document, separators=(",", ":")).encode("utf-8")

def decode_graph(
    data: bytes, prune_stale_edges: bool = False
) -> tuple[ImportGraph, dict[str, FileFact]]:
    """Inverse of :func:`encode_graph`.

    Raises:
        ValueError: If the document is malformed or of another version.
    """
    document = json.loads(data.decode("utf-8"))
    if not isinstance(document, dict):
        raise ValueError("graph document is not an object")
    version = document.get("version")
    if version != FORMAT_VERSION:
        raise ValueError(f"unsupported graph version {version!r}")

    try:
        nodes = [node_from_dict(item) for item in document.get("graph", [])]
        facts = {fact.path: fact for fact in map(fact_from_dict, document.get("fileCache", []))}
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"malformed graph document: {exc}") from exc

    graph = ImportGraph(prune_stale_edges=prune_stale_edges)
    graph.load_nodes(nodes, list(facts.values()))
    return graph, facts

# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class GraphStore:
    """Load and save one project's graph through a :class:`ByteStore`.

    Args:
        store: Where blobs live.
        project_root: The analysed project; its directory name becomes part
            of the key.
        namespace: First key segment.
    """

    def __init__(
        self,
        store: ByteStore,
        project_root: Path,
        namespace: str = "routegraph-cache",
    ) -> None:
        self.store = store
        self.project_name = project_root.resolve().name or "root"
        self.namespace = namespace.strip("/")

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.project_name}/{GRAPH_FILENAME}"

    async def save(self, graph: ImportGraph, facts: Iterable[FileFact]) -> bool:
        """Persist *graph* and *facts*; returns ``False`` if the store failed."""
        payload = encode_graph(graph, facts)
        try:
            await self.store.upload(self.key, payload)
        except StorageError as exc:
            logger.warning("Could not persist import graph: %s", exc)
            return False
        except Exception:
            logger.warning("Byte store failed while persisting %s", self.key, exc_info=True)
            return False
        logger.info("Persisted import graph (%d nodes) to %s", len(graph), self.key)
        return True

    async def load(
        self, prune_stale_edges: bool = False
    ) -> tuple[ImportGraph, dict[str, FileFact]] | None:
        """Return the persisted graph and facts, or ``None`` on any failure."""
        try:
            data = await self.store.download(self.key)
        except StorageError as exc:
            logger.info("No persisted import graph at %s (%s)", self.key, exc.reason or exc)
            return None
        except Exception:
            logger.warning("Byte store failed while loading %s", self.key, exc_info=True)
            return None

        try:
            graph, facts = decode_graph(data, prune_stale_edges=prune_stale_edges)
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring persisted import graph at %s: %s", self.key, exc)
            return None

        logger.info("Loaded import graph with %d nodes from %s", len(graph), self.key)
        return graph, facts

    async def delete(self) -> None:
        try:
            await self.store.delete(self.key)
        except StorageError as exc:
            logger.warning("Could not delete persisted import graph: %s", exc)
        except Exception:
            logger.warning("Byte store failed while deleting %s", self.key, exc_info=True)
