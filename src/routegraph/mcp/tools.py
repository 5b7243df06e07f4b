"""MCP tool handler implementations for routegraph.

Each function accepts a :class:`RouteAnalyzer` and the tool-specific
arguments, runs the query, and returns a human-readable string suitable for
inclusion in an MCP ``TextContent`` response.
"""

from __future__ import annotations

import re

from routegraph.core.analyzer import RouteAnalyzer

_DIFF_FILE_PATTERN = re.compile(r"^diff --git a/(.+?) b/(.+?)$", re.MULTILINE)

def _as_file_list(files: object) -> list[str]:
    if isinstance(files, str):
        return [f.strip() for f in files.split(",") if f.strip()]
    if isinstance(files, list):
        return [str(f) for f in files if str(f).strip()]
    return []

async def handle_detect_routes(analyzer: RouteAnalyzer, files: object, precise: bool = False) -> str:
    """List the routes affected by changes to *files*.

    Args:
        analyzer: The project's analyzer.
        files: Changed file paths (list, or comma-separated string).
        precise: Prefer routes whose component is imported from the file.

    Returns:
        One block per file that affects routes, or a message saying none do.
    """
    paths = _as_file_list(files)
    if not paths:
        return "No files given."

    results = await analyzer.detect_routes(paths, precise=precise)
    if not results:
        return f"No routes affected by {len(paths)} changed file(s)."

    all_routes = sorted({route for routes in results.values() for route in routes})
    lines = [f"Affected routes ({len(all_routes)}):"]
    lines.extend(f"  {route}" for route in all_routes)
    lines.append("")
    for path in paths:
        routes = results.get(path)
        if routes:
            lines.append(f"{path} -> {', '.join(routes)}")
    return "\n".join(lines)

async def handle_route_info(analyzer: RouteAnalyzer, files: object) -> str:
    """Describe each file's affected routes and whether it declares routes."""
    paths = _as_file_list(files)
    if not paths:
        return "No files given."

    info = await analyzer.get_route_info(paths)
    lines: list[str] = []
    for path in paths:
        entry = info[path]
        lines.append(path)
        if entry.is_route_definer:
            lines.append(f"  Declares routes ({entry.route_file_type})")
        lines.append(f"  Routes: {', '.join(entry.routes) if entry.routes else '(none)'}")
    return "\n".join(lines)

async def handle_routes_serving_component(analyzer: RouteAnalyzer, file_path: str) -> str:
    """List the routes that render the component defined in *file_path*."""
    if not file_path:
        return "No component file given."

    serving = await analyzer.find_routes_serving_component(file_path)
    if not serving:
        return f"No route renders {file_path}."

    lines = [f"Routes serving {file_path} ({len(serving)}):"]
    for route in serving:
        lines.append(f"  {route.route_path}  {route.component}  -- {route.route_file}:{route.line}")
    return "\n".join(lines)

async def handle_metrics(analyzer: RouteAnalyzer) -> str:
    metrics = await analyzer.get_metrics()
    return "\n".join(
        [
            f"Import graph for {analyzer.root.name}",
            f"  Files:         {metrics.total_files}",
            f"  Route files:   {metrics.route_files}",
            f"  Entry points:  {metrics.entry_points}",
            f"  Import edges:  {metrics.import_edges}",
        ]
    )

async def handle_detect_changes(analyzer: RouteAnalyzer, diff: str) -> str:
    """Map ``git diff`` output to the routes it affects.

    Args:
        analyzer: The project's analyzer.
        diff: Raw unified diff text containing ``diff --git`` headers.

    Returns:
        The affected routes of every file touched by the diff.
    """
    files: dict[str, None] = {}
    for match in _DIFF_FILE_PATTERN.finditer(diff):
        files.setdefault(match.group(2), None)
    if not files:
        return "Could not find any changed files in the diff."
    return await handle_detect_routes(analyzer, list(files))
