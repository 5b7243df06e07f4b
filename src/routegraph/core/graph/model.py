"""Data model for routegraph.

:class:`FileFact` is the extracted summary of one source file;
:class:`GraphNode` is that file's place in the bidirectional import graph.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

INDEX_ROUTE = "(index)"
UNKNOWN_COMPONENT = "unknown"
# Line recorded for routes inferred from a file's path alone.
CONVENTION_LINE = 0

@dataclass(frozen=True)
class ImportEdge:
    """One import statement or ``import()`` call.

    ``source`` is the resolved project-relative path, or ``None`` for
    external packages and unresolvable specifiers.  Null edges never enter
    the graph but are kept for diagnostics.
    """

    source: str | None
    line: int
    specifier: str = ""
    kind: str = "static"  # "static" or "dynamic"

@dataclass(frozen=True)
class RouteDecl:
    """A route declared by a file, normalised across declaration syntaxes."""

    path: str
    component: str
    declaring_file: str
    line: int
    recognizer: str = ""

@dataclass
class FileFact:
    """Imports, exports and routes of one file at one content hash.

    Facts are replaced wholesale when the content hash changes, never patched.
    """

    path: str
    imports: list[ImportEdge] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    routes: list[RouteDecl] = field(default_factory=list)
    content_hash: str = ""
    last_seen_at: float = field(default_factory=time.time)

    @property
    def resolved_imports(self) -> list[str]:
        """Resolved import targets in statement order, without duplicates."""
        seen: dict[str, None] = {}
        for edge in self.imports:
            if edge.source is not None:
                seen.setdefault(edge.source, None)
        return list(seen)

    @property
    def route_paths(self) -> list[str]:
        return [route.path for route in self.routes]

def empty_fact(path: str) -> FileFact:
    """Fact for a file that was skipped, unreadable or unparsable."""
    return FileFact(path=path)

@dataclass
class GraphNode:
    """A file reference in the import graph.

    Nodes exist for every referenced path, including files that could not
    be read, so that edges are preserved.
    """

    file: str
    imported_by: set[str] = field(default_factory=set)
    imports: set[str] = field(default_factory=set)
    is_route_file: bool = False
    is_entry_point: bool = False

@dataclass(frozen=True)
class ImportBinding:
    """A local name introduced by one of a file's imports.

    ``import_type`` is ``"default"``, ``"named"``, ``"namespace"``,
    ``"lazy"`` or ``"dynamic"``; ``imported_name`` is the exported name for
    named imports and ``"default"`` / ``"*"`` otherwise.
    """

    local_name: str
    specifier: str
    resolved_path: str | None
    import_type: str
    imported_name: str
    line: int
