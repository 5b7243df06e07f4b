"""MCP server for routegraph: exposes route impact queries over stdio.

Registers the route tools for AI test-selection agents and other MCP
clients.  The server lazily creates a :class:`RouteAnalyzer` for the current
working directory; the persisted graph under ``.routegraph-cache`` is
reused when present.

Usage::

    # MCP server only
    routegraph mcp

    # MCP server with live file watching
    routegraph mcp --watch
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from routegraph.core.analyzer import RouteAnalyzer
from routegraph.mcp.tools import (
    handle_detect_changes,
    handle_detect_routes,
    handle_metrics,
    handle_route_info,
    handle_routes_serving_component,
)

logger = logging.getLogger(__name__)

server = Server("routegraph")

_analyzer: RouteAnalyzer | None = None
_lock: asyncio.Lock | None = None

def set_analyzer(analyzer: RouteAnalyzer) -> None:
    """Inject a pre-built analyzer (e.g. from ``routegraph mcp --watch``)."""
    global _analyzer  # noqa: PLW0603
    _analyzer = analyzer

def set_lock(lock: asyncio.Lock) -> None:
    """Inject a shared lock for coordinating graph access with the file watcher."""
    global _lock  # noqa: PLW0603
    _lock = lock

def _get_analyzer() -> RouteAnalyzer:
    global _analyzer  # noqa: PLW0603
    if _analyzer is None:
        _analyzer = RouteAnalyzer(Path.cwd())
        logger.info("Created analyzer for %s", _analyzer.root)
    return _analyzer

_FILES_SCHEMA = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Changed file paths, relative to the project root.",
}

TOOLS: list[Tool] = [
    Tool(
        name="routegraph_detect_routes",
        description=(
            "Return the user-visible routes affected by changes to the given files. "
            "Walks the import graph from each file up to the files declaring routes."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "files": _FILES_SCHEMA,
                "precise": {
                    "type": "boolean",
                    "description": "Only report routes that render a component imported from the file, when any exist.",
                    "default": False,
                },
            },
            "required": ["files"],
        },
    ),
    Tool(
        name="routegraph_route_info",
        description=(
            "For each file, list affected routes and whether the file itself declares "
            "routes (test, primary or component-with-routes)."
        ),
        inputSchema={
            "type": "object",
            "properties": {"files": _FILES_SCHEMA},
            "required": ["files"],
        },
    ),
    Tool(
        name="routegraph_routes_serving_component",
        description="Find the routes, across all route files, that render the component in a file.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Component file, relative to the project root.",
                },
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="routegraph_detect_changes",
        description="Map git diff output to the routes affected by the changed files.",
        inputSchema={
            "type": "object",
            "properties": {
                "diff": {
                    "type": "string",
                    "description": "Raw output of `git diff`.",
                },
            },
            "required": ["diff"],
        },
    ),
    Tool(
        name="routegraph_metrics",
        description="Summary counts of the import graph: files, route files, entry points, edges.",
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
]

@server.list_tools()
async def list_tools() -> list[Tool]:
    """Return the list of available routegraph tools."""
    return TOOLS

async def _dispatch_tool(name: str, arguments: dict, analyzer: RouteAnalyzer) -> str:
    if name == "routegraph_detect_routes":
        return await handle_detect_routes(
            analyzer, arguments.get("files", []), precise=bool(arguments.get("precise", False))
        )
    elif name == "routegraph_route_info":
        return await handle_route_info(analyzer, arguments.get("files", []))
    elif name == "routegraph_routes_serving_component":
        return await handle_routes_serving_component(analyzer, arguments.get("file_path", ""))
    elif name == "routegraph_detect_changes":
        return await handle_detect_changes(analyzer, arguments.get("diff", ""))
    elif name == "routegraph_metrics":
        return await handle_metrics(analyzer)
    else:
        return f"Unknown tool: {name}"

@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Dispatch a tool call to the appropriate handler."""
    analyzer = _get_analyzer()

    if _lock is not None:
        async with _lock:
            result = await _dispatch_tool(name, arguments or {}, analyzer)
    else:
        result = await _dispatch_tool(name, arguments or {}, analyzer)

    return [TextContent(type="text", text=result)]

async def main() -> None:
    """Run the routegraph MCP server over stdio transport."""
    async with stdio_server() as (read, write):
        await server.run(read, write, server.create_initialization_options())

if __name__ == "__main__":
    asyncio.run(main())
