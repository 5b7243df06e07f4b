"""Watch mode for routegraph: refreshes facts on file changes.

Uses ``watchfiles`` (Rust-backed) for efficient file system monitoring with
native debouncing.  Each batch of changes is fed to
:meth:`RouteAnalyzer.refresh_files`, and the graph is persisted once the
batch has been applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

import watchfiles

from routegraph.config.ignore import load_gitignore, should_ignore
from routegraph.config.languages import is_supported

if TYPE_CHECKING:
    from routegraph.core.analyzer import RouteAnalyzer

logger = logging.getLogger(__name__)

def relevant_paths(
    changes: Iterable[tuple[object, str]],
    repo_path: Path,
    gitignore_patterns: list[str] | None = None,
) -> list[str]:
    """Filter a ``watchfiles`` change set down to analysable project paths.

    Returns project-relative POSIX paths in first-seen order, without
    duplicates.  Deleted files are kept so that their facts are emptied.
    """
    repo_path = repo_path.resolve()
    seen: dict[str, None] = {}
    for _change_type, path_str in changes:
        try:
            relative = Path(path_str).resolve().relative_to(repo_path)
        except ValueError:
            continue
        if should_ignore(relative, gitignore_patterns):
            continue
        if not is_supported(relative.as_posix()):
            continue
        seen.setdefault(relative.as_posix(), None)
    return list(seen)

async def watch_repo(
    analyzer: RouteAnalyzer,
    *,
    stop_event: asyncio.Event | None = None,
    lock: asyncio.Lock | None = None,
) -> int:
    """Main watch loop: monitor files and refresh their facts on change.

    Parameters
    ----------
    analyzer:
        An analyzer for the project to watch.  Initialised if needed.
    stop_event:
        Optional event to signal shutdown (useful for testing).
        When set, the watch loop exits gracefully.
    lock:
        Optional async lock for coordinating graph access with concurrent
        readers (e.g. the MCP server in combined mode).

    Returns
    -------
    int
        Total number of file refreshes applied.
    """
    repo_path = analyzer.root
    gitignore = load_gitignore(repo_path)
    files_changed = 0

    if not analyzer.initialized:
        await analyzer.initialize()

    logger.info("Watching %s for changes...", repo_path)

    async for changes in watchfiles.awatch(
        repo_path,
        rust_timeout=500,
        stop_event=stop_event,
    ):
        paths = relevant_paths(changes, repo_path, gitignore)
        if not paths:
            continue

        if lock is not None:
            async with lock:
                refreshed = await analyzer.refresh_files(paths)
        else:
            refreshed = await analyzer.refresh_files(paths)

        if refreshed:
            files_changed += len(refreshed)
            logger.info("Refreshed %d file(s)", len(refreshed))
            await analyzer.persist()

    logger.info("Watch stopped. Total files refreshed: %d", files_changed)
    return files_changed
