"""Graph build pipeline.

Reads, parses and extracts files in fixed-width batches.  Files within a
batch are read concurrently; batches run one after another so that open
file handles and memory stay bounded.  Each fact is upserted into the
graph as soon as it is ready.

Phases executed:
    1. File walking
    2. Reading + fact extraction (batched)
    3. Entry-point classification
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from routegraph.config.ignore import load_gitignore
from routegraph.core.graph.graph import ImportGraph
from routegraph.core.graph.model import FileFact, empty_fact
from routegraph.core.ingestion.extractor import FactExtractor
from routegraph.core.ingestion.walker import discover_files, read_source

logger = logging.getLogger(__name__)

@dataclass
class PipelineResult:
    """Summary of a pipeline run."""

    files: int = 0
    route_files: int = 0
    import_edges: int = 0
    entry_points: int = 0
    duration_seconds: float = 0.0

async def load_fact(repo_path: Path, rel_path: str, extractor: FactExtractor) -> FileFact:
    """Read and extract one file; any failure yields an empty fact."""
    try:
        content = await asyncio.to_thread(read_source, repo_path, rel_path, extractor.max_file_size)
    except Exception:
        logger.debug("Reading %s failed", rel_path, exc_info=True)
        content = None
    if content is None:
        return empty_fact(rel_path)
    return extractor.extract_source(rel_path, content)

async def build_graph(
    repo_path: Path,
    extractor: FactExtractor,
    graph: ImportGraph,
    files: list[str] | None = None,
    batch_size: int = 50,
    progress_callback: Callable[[str, float], None] | None = None,
) -> tuple[dict[str, FileFact], PipelineResult]:
    """Populate *graph* with the facts of every project file.

    Parameters
    ----------
    repo_path:
        Root directory of the project.
    extractor:
        Extracts a :class:`FileFact` from each file.
    graph:
        Graph to upsert into.  It is not cleared first.
    files:
        Project-relative paths to process.  Discovered from *repo_path*
        (honouring ``.gitignore``) when ``None``.
    batch_size:
        Number of files processed concurrently.
    progress_callback:
        Optional ``(phase_name, progress)`` callback where *progress* is a
        float in ``[0.0, 1.0]``.

    Returns
    -------
    tuple[dict[str, FileFact], PipelineResult]
        Facts keyed by path, and a summary with counts and timings.
    """
    start = time.monotonic()
    result = PipelineResult()

    def report(phase: str, pct: float) -> None:
        if progress_callback is not None:
            progress_callback(phase, pct)

    if files is None:
        report("Walking files", 0.0)
        files = discover_files(repo_path, load_gitignore(repo_path))
        report("Walking files", 1.0)
    result.files = len(files)

    facts: dict[str, FileFact] = {}

    async def process(rel_path: str) -> None:
        fact = await load_fact(repo_path, rel_path, extractor)
        facts[rel_path] = fact
        graph.upsert(rel_path, fact)

    report("Extracting facts", 0.0)
    total = max(len(files), 1)
    for offset in range(0, len(files), batch_size):
        batch = files[offset : offset + batch_size]
        await asyncio.gather(*(process(rel_path) for rel_path in batch))
        done = min(offset + batch_size, len(files))
        logger.debug("Processed %d/%d files", done, len(files))
        report("Extracting facts", done / total)
    report("Extracting facts", 1.0)

    entries = graph.recompute_entry_points()

    result.route_files = len(graph.all_route_files())
    result.import_edges = graph.edge_count()
    result.entry_points = len(entries)
    result.duration_seconds = time.monotonic() - start
    logger.info(
        "Built import graph: %d files, %d route files, %d edges in %.2fs",
        result.files,
        result.route_files,
        result.import_edges,
        result.duration_seconds,
    )
    return facts, result
